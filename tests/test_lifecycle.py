"""
Tests for the service registry and core service wiring.
"""

import pytest

from domains.core import ConfigurationError, ServiceRegistry, get_service_registry, register_core_services
from domains.note_hub.core import ContentStoreAdapter, InMemoryContentStore
from domains.note_hub.services import AccessGuard, NoteService, VersionManager


class Closeable:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class TestServiceRegistry:

    def test_lazy_creation_and_caching(self):
        registry = ServiceRegistry()
        calls = []
        registry.register("thing", lambda: calls.append(1) or object())

        assert calls == []
        first = registry.get("thing")
        assert registry.get("thing") is first
        assert calls == [1]

    def test_dependencies_initialise_first(self):
        registry = ServiceRegistry()
        registry.register("b", lambda: "b", dependencies=["a"])
        registry.register("a", lambda: "a")

        registry.get("b")

        assert registry.initialized_services == ["a", "b"]

    def test_unknown_service_raises(self):
        with pytest.raises(KeyError):
            ServiceRegistry().get("missing")

    def test_set_overrides_factory(self):
        registry = ServiceRegistry()
        registry.register("thing", lambda: "real")
        registry.set("thing", "fake")
        assert registry.get("thing") == "fake"

    @pytest.mark.asyncio
    async def test_shutdown_closes_in_reverse_order(self):
        registry = ServiceRegistry()
        order = []
        first, second = Closeable(), Closeable()
        registry.register("first", lambda: first, cleanup=lambda s: order.append("first"))
        registry.register(
            "second",
            lambda: second,
            dependencies=["first"],
            async_cleanup=lambda s: order.append("second"),
        )
        registry.get("second")

        await registry.shutdown()

        assert order == ["second", "first"]
        assert second.closed is False
        assert registry.initialized_services == []

    def test_reset_closes_and_recreates(self):
        registry = ServiceRegistry()
        registry.register("thing", Closeable)
        old = registry.get("thing")

        registry.reset("thing")

        assert old.closed is True
        assert registry.get("thing") is not old


class TestCoreServices:

    def test_memory_backend_wiring(self):
        registry = register_core_services(storage_backend="memory")

        service = registry.get("note_service")

        assert isinstance(service, NoteService)
        assert isinstance(service.store, InMemoryContentStore)
        assert isinstance(service.store, ContentStoreAdapter)
        assert service.version_manager is registry.get("version_manager")
        assert service.access_guard is registry.get("access_guard")
        assert registry.get("content_store") is service.store
        assert registry is get_service_registry()

    def test_settings_flow_into_services(self, monkeypatch):
        from domains.platform_core.settings import reload_settings

        monkeypatch.setenv("NOTEPAD_VERSIONS_HISTORY_LIMIT", "7")
        monkeypatch.setenv("NOTEPAD_SECURITY_BCRYPT_ROUNDS", "5")
        reload_settings()
        try:
            registry = register_core_services(storage_backend="memory")
            version_manager: VersionManager = registry.get("version_manager")
            access_guard: AccessGuard = registry.get("access_guard")

            assert version_manager.history_limit == 7
            assert access_guard.rounds == 5
        finally:
            monkeypatch.undo()
            reload_settings()

    def test_unknown_storage_backend_is_rejected(self):
        with pytest.raises(ConfigurationError):
            register_core_services(storage_backend="sqlite")
        assert get_service_registry().registered_services == []
