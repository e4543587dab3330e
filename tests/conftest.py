"""
Shared fixtures for the notepad engine test-suite.

所有测试都运行在 InMemoryContentStore 上，使用较短的防抖窗口和较低的 bcrypt 成本。
"""

import asyncio

import pytest

from domains.core import TransientStoreError, reset_service_registry
from domains.note_hub.core import InMemoryContentStore
from domains.note_hub.services import AccessGuard, NoteService, NoteSession, VersionManager

FAST_DEBOUNCE = 0.05
TEST_ROUNDS = 4


class RecordingContentStore(InMemoryContentStore):
    """记录正文写入，并可按需注入存储失败"""

    def __init__(self, latency: float = 0.0):
        super().__init__(latency=latency)
        self.upserts: list[tuple[str, str]] = []
        self.upsert_attempts = 0
        self.fail_upserts = False
        self.fail_version_inserts = False
        self.fail_counter_updates = False

    async def upsert(self, note_id, content):
        self.upsert_attempts += 1
        await asyncio.sleep(self.latency)
        if self.fail_upserts:
            raise TransientStoreError("upsert", "connection reset")
        self.upserts.append((note_id, content))
        return await super().upsert(note_id, content)

    async def insert_version(self, version):
        if self.fail_version_inserts:
            raise TransientStoreError("insert_version", "timeout")
        return await super().insert_version(version)

    async def update_version_counter(self, note_id, version):
        if self.fail_counter_updates:
            raise TransientStoreError("update_version_counter", "timeout")
        return await super().update_version_counter(note_id, version)

    def contents_saved(self, note_id: str) -> list[str]:
        return [content for nid, content in self.upserts if nid == note_id]


# ========== Registry ==========

@pytest.fixture(autouse=True)
def _isolated_registry():
    """Every test starts with an empty service registry."""
    reset_service_registry()
    yield
    reset_service_registry()


# ========== Engine Fixtures ==========

@pytest.fixture
def store():
    return RecordingContentStore()


@pytest.fixture
def version_manager(store):
    return VersionManager(store)


@pytest.fixture
def access_guard(store):
    return AccessGuard(store, rounds=TEST_ROUNDS)


@pytest.fixture
def make_session(store, version_manager, access_guard):
    """Factory for sessions sharing one store; all are closed on teardown."""
    sessions: list[NoteSession] = []

    def _make(debounce_seconds: float = FAST_DEBOUNCE, **kwargs) -> NoteSession:
        session = NoteSession(
            store,
            version_manager=version_manager,
            access_guard=access_guard,
            debounce_seconds=debounce_seconds,
            **kwargs,
        )
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.close()


@pytest.fixture
def session(make_session):
    return make_session()


@pytest.fixture
def note_service(store, version_manager, access_guard):
    return NoteService(
        store,
        version_manager=version_manager,
        access_guard=access_guard,
        debounce_seconds=FAST_DEBOUNCE,
    )
