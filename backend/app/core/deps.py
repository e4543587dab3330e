"""Dependency injection for FastAPI routes.

使用 ServiceRegistry 统一管理服务生命周期，支持测试时的服务替换。
"""

from typing import Annotated, Optional

from fastapi import Depends, Header

from app.core.config import settings
from domains.core import get_service_registry, register_core_services


# ============================================================================
# 初始化服务注册表
# ============================================================================

def _ensure_services_registered():
    """确保服务已注册（延迟初始化）"""
    registry = get_service_registry()
    if not registry.registered_services:
        register_core_services(storage_backend=settings.STORAGE_BACKEND)
    return registry


# ============================================================================
# Service getters - 使用 ServiceRegistry
# ============================================================================

def get_note_service():
    """Get NoteService singleton instance."""
    registry = _ensure_services_registered()
    return registry.get("note_service")


async def get_note_password(
    x_note_password: Annotated[Optional[str], Header(alias=settings.PASSWORD_HEADER)] = None,
) -> Optional[str]:
    """读取受保护笔记的密码请求头"""
    return x_note_password or None


NotePassword = Annotated[Optional[str], Depends(get_note_password)]

