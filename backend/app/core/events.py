"""Application lifecycle event handlers.

使用 ServiceRegistry 统一管理生命周期。
"""

from typing import Callable

from app.core.config import settings
from domains.core import get_service_registry, register_core_services
from domains.platform_core.logging import get_logger

logger = get_logger(__name__)


def create_start_handler() -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("api_starting", component="api", storage_backend=settings.STORAGE_BACKEND)

        registry = get_service_registry()
        if not registry.registered_services:
            register_core_services(storage_backend=settings.STORAGE_BACKEND)

        # 预热存储层；postgres 后端在此建表，失败时后续请求返回 502
        try:
            registry.get("note_service")
            logger.info(
                "services_initialized",
                component="registry",
                services=registry.initialized_services,
            )
        except Exception as e:
            logger.error("service_initialization_error", component="registry", error=str(e))

        logger.info("api_started", component="api", status="success")

    return start_app


def create_stop_handler() -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("api_stopping", component="api")

        try:
            registry = get_service_registry()
            await registry.shutdown()
        except Exception as e:
            logger.warning("service_registry_stop_error", component="registry", error=str(e))

        logger.info("api_stopped", component="api", status="success")

    return stop_app
