"""
服务生命周期管理

提供集中式的服务注册、获取和清理，替代分散的全局单例。

使用示例:
    # 注册服务
    registry = get_service_registry()
    registry.register("content_store", lambda: InMemoryContentStore())
    registry.register(
        "version_manager",
        lambda: VersionManager(registry.get("content_store")),
        dependencies=["content_store"],
    )

    # 获取服务
    versions = registry.get("version_manager")

    # 应用关闭时
    await registry.shutdown()
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STORAGE_BACKENDS = ("postgres", "memory")


@dataclass
class ServiceDefinition:
    """服务定义"""
    name: str
    factory: Callable[[], Any]
    instance: Any | None = None
    dependencies: list[str] = field(default_factory=list)
    cleanup: Callable[[Any], None] | None = None
    async_cleanup: Callable[[Any], Any] | None = None
    initialized: bool = False


class ServiceRegistry:
    """
    服务注册表

    集中管理所有服务的生命周期，提供:
    - 延迟初始化（首次访问时创建）
    - 依赖注入（按顺序创建依赖）
    - 统一关闭（逆序清理资源）
    - 测试支持（服务替换/重置）
    """

    def __init__(self):
        self._services: dict[str, ServiceDefinition] = {}
        self._init_order: list[str] = []

    def register(
        self,
        name: str,
        factory: Callable[[], T],
        dependencies: list[str] | None = None,
        cleanup: Callable[[T], None] | None = None,
        async_cleanup: Callable[[T], Any] | None = None,
    ) -> "ServiceRegistry":
        """
        注册服务

        Args:
            name: 服务名称（唯一标识）
            factory: 服务工厂函数（无参数，返回服务实例）
            dependencies: 依赖的其他服务名称
            cleanup: 同步清理函数（接收服务实例）
            async_cleanup: 异步清理函数（接收服务实例）

        Returns:
            self，支持链式调用
        """
        if name in self._services:
            logger.warning(f"服务 {name} 已注册，将被覆盖")

        self._services[name] = ServiceDefinition(
            name=name,
            factory=factory,
            dependencies=dependencies or [],
            cleanup=cleanup,
            async_cleanup=async_cleanup,
        )
        return self

    def get(self, name: str) -> Any:
        """
        获取服务实例

        首次访问时创建实例，后续返回缓存的实例。
        会自动先初始化依赖的服务。

        Raises:
            KeyError: 服务未注册
        """
        if name not in self._services:
            raise KeyError(f"服务未注册: {name}")

        definition = self._services[name]

        if definition.initialized and definition.instance is not None:
            return definition.instance

        for dep_name in definition.dependencies:
            self.get(dep_name)

        try:
            definition.instance = definition.factory()
            definition.initialized = True
            self._init_order.append(name)
            logger.debug(f"服务 {name} 已初始化")
        except Exception as e:
            logger.error(f"服务 {name} 初始化失败: {e}")
            raise

        return definition.instance

    def set(self, name: str, instance: Any) -> None:
        """
        直接设置服务实例（用于测试或外部注入）

        Args:
            name: 服务名称
            instance: 服务实例
        """
        if name not in self._services:
            self._services[name] = ServiceDefinition(
                name=name,
                factory=lambda: instance,
            )

        self._services[name].instance = instance
        self._services[name].initialized = True

        if name not in self._init_order:
            self._init_order.append(name)

    def reset(self, name: str) -> None:
        """重置单个服务（清理并标记为未初始化）"""
        if name not in self._services:
            return

        definition = self._services[name]
        if definition.initialized and definition.instance is not None:
            self._cleanup_service(definition)
            definition.instance = None
            definition.initialized = False

            if name in self._init_order:
                self._init_order.remove(name)

    def reset_all(self) -> None:
        """重置所有服务（同步清理）"""
        for name in reversed(self._init_order.copy()):
            self.reset(name)
        self._init_order.clear()

    async def shutdown(self) -> None:
        """
        关闭所有服务（异步清理）

        按初始化的逆序关闭服务，确保依赖关系正确。
        """
        logger.info("开始关闭所有服务...")

        for name in reversed(self._init_order.copy()):
            definition = self._services.get(name)
            if definition and definition.initialized:
                await self._cleanup_service_async(definition)
                definition.instance = None
                definition.initialized = False
                logger.debug(f"服务 {name} 已关闭")

        self._init_order.clear()
        logger.info("所有服务已关闭")

    def _cleanup_service(self, definition: ServiceDefinition) -> None:
        """同步清理服务"""
        if definition.instance is None:
            return

        if definition.cleanup:
            try:
                definition.cleanup(definition.instance)
            except Exception as e:
                logger.warning(f"服务 {definition.name} 清理失败: {e}")
            return

        if hasattr(definition.instance, "close"):
            try:
                result = definition.instance.close()
                if asyncio.iscoroutine(result):
                    # 同步清理路径无法等待协程，直接关闭避免 "never awaited" 警告
                    result.close()
            except Exception as e:
                logger.warning(f"服务 {definition.name} close() 失败: {e}")

    async def _cleanup_service_async(self, definition: ServiceDefinition) -> None:
        """异步清理服务"""
        if definition.instance is None:
            return

        if definition.async_cleanup:
            try:
                result = definition.async_cleanup(definition.instance)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning(f"服务 {definition.name} 异步清理失败: {e}")
            return

        self._cleanup_service(definition)

    @property
    def registered_services(self) -> list[str]:
        """获取所有已注册的服务名称"""
        return list(self._services.keys())

    @property
    def initialized_services(self) -> list[str]:
        """获取所有已初始化的服务名称"""
        return self._init_order.copy()

    def __contains__(self, name: str) -> bool:
        return name in self._services


# ==================== 全局注册表 ====================

_registry: ServiceRegistry | None = None


def get_service_registry() -> ServiceRegistry:
    """获取全局服务注册表"""
    global _registry
    if _registry is None:
        _registry = ServiceRegistry()
    return _registry


def reset_service_registry() -> None:
    """重置全局服务注册表（用于测试）"""
    global _registry
    if _registry is not None:
        _registry.reset_all()
    _registry = ServiceRegistry()


# ==================== 服务注册辅助函数 ====================

def register_core_services(storage_backend: str = "postgres") -> ServiceRegistry:
    """
    注册核心服务

    在应用启动时调用，注册所有核心服务。
    使用延迟导入避免循环依赖。

    Args:
        storage_backend: 存储后端，"postgres" 或 "memory"

    Raises:
        ConfigurationError: 未知的存储后端
    """
    if storage_backend not in STORAGE_BACKENDS:
        raise ConfigurationError(
            "storage_backend",
            f"未知的存储后端: {storage_backend}，可选 {', '.join(STORAGE_BACKENDS)}",
        )

    registry = get_service_registry()

    # ============ Store 层 ============
    def _create_content_store():
        if storage_backend == "memory":
            from domains.note_hub.core.memory_store import InMemoryContentStore
            return InMemoryContentStore()
        from domains.note_hub.core.adapter import PostgresContentStore
        from domains.note_hub.core.store import get_note_store
        return PostgresContentStore(get_note_store())

    def _cleanup_content_store(store):
        # 关闭连接并清除 NoteStore 单例，下次启动按最新配置重连
        if storage_backend != "memory":
            from domains.note_hub.core.store import reset_note_store
            reset_note_store()

    registry.register(
        "content_store",
        _create_content_store,
        cleanup=_cleanup_content_store,
    )

    # ============ Service 层 ============
    def _create_version_manager():
        from domains.note_hub.services import VersionManager
        from domains.platform_core.settings import get_settings
        return VersionManager(
            registry.get("content_store"),
            history_limit=get_settings().versions.history_limit,
        )

    def _create_access_guard():
        from domains.note_hub.services import AccessGuard
        from domains.platform_core.settings import get_settings
        security = get_settings().security
        return AccessGuard(
            registry.get("content_store"),
            rounds=security.bcrypt_rounds,
            min_length=security.min_password_length,
        )

    def _create_note_service():
        from domains.note_hub.services import NoteService
        return NoteService(
            store=registry.get("content_store"),
            version_manager=registry.get("version_manager"),
            access_guard=registry.get("access_guard"),
        )

    registry.register(
        "version_manager",
        _create_version_manager,
        dependencies=["content_store"]
    )

    registry.register(
        "access_guard",
        _create_access_guard,
        dependencies=["content_store"]
    )

    registry.register(
        "note_service",
        _create_note_service,
        dependencies=["content_store", "version_manager", "access_guard"]
    )

    logger.info(f"已注册 {len(registry.registered_services)} 个服务")
    return registry


# ==================== 导出 ====================

__all__ = [
    "ServiceRegistry",
    "ServiceDefinition",
    "get_service_registry",
    "reset_service_registry",
    "register_core_services",
]
