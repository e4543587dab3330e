"""
Core - 通用应用基础设施

提供与具体存储无关的基础设施组件:
- 统一异常体系
- 服务生命周期管理
"""

from .exceptions import (
    AccessDeniedError,
    ApplicationError,
    BusinessError,
    ConfigurationError,
    ConflictError,
    ErrorCategory,
    ExternalServiceError,
    NotFoundError,
    # 笔记相关
    NoteNotFoundError,
    SessionNotReadyError,
    TransientStoreError,
    ValidationError,
    VersionNotFoundError,
)
from .lifecycle import (
    ServiceDefinition,
    ServiceRegistry,
    get_service_registry,
    register_core_services,
    reset_service_registry,
)

__all__ = [
    # Exceptions
    "ErrorCategory",
    "ApplicationError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "AccessDeniedError",
    "BusinessError",
    "ExternalServiceError",
    "ConfigurationError",
    "NoteNotFoundError",
    "VersionNotFoundError",
    "TransientStoreError",
    "SessionNotReadyError",
    # Lifecycle
    "ServiceDefinition",
    "ServiceRegistry",
    "get_service_registry",
    "reset_service_registry",
    "register_core_services",
]
