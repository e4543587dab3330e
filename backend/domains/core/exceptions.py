"""
统一异常体系

提供笔记同步引擎的统一错误处理，包括:
- 业务异常基类 (ApplicationError)
- 常用业务异常类型
- HTTP 状态码映射

错误分类与处理策略:
- ValidationError: 同步返回给调用方，绝不触达存储
- ConflictError: insert-if-absent 竞争失败时由调用方本地恢复
- TransientStoreError: 存储层网络/超时/服务端失败，不自动重试
- AccessDeniedError: 密码不匹配
"""

from enum import Enum
from typing import Any, Dict, Optional, List
from dataclasses import dataclass


class ErrorCategory(str, Enum):
    """错误分类"""
    VALIDATION = "validation"      # 参数验证错误
    NOT_FOUND = "not_found"        # 资源不存在
    CONFLICT = "conflict"          # 资源冲突
    PERMISSION = "permission"      # 权限不足
    BUSINESS = "business"          # 业务逻辑错误
    EXTERNAL = "external"          # 外部服务错误
    INTERNAL = "internal"          # 内部错误


@dataclass
class ApplicationError(Exception):
    """
    应用层异常基类

    所有业务相关的异常都应继承此类。
    提供统一的错误结构，支持 HTTP 协议转换。

    使用示例:
        raise NotFoundError("笔记", "abc123")
        raise ValidationError("密码至少需要 6 个字符", field="password")
        raise TransientStoreError("upsert", "connection reset")
    """
    code: str                                    # 错误码 (如 "NOT_FOUND", "VALIDATION_ERROR")
    message: str                                 # 用户可读的错误信息
    category: ErrorCategory = ErrorCategory.INTERNAL
    details: Optional[Dict[str, Any]] = None    # 附加详情
    cause: Optional[Exception] = None           # 原始异常

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    @property
    def http_status_code(self) -> int:
        """映射到 HTTP 状态码"""
        mapping = {
            ErrorCategory.VALIDATION: 400,
            ErrorCategory.NOT_FOUND: 404,
            ErrorCategory.CONFLICT: 409,
            ErrorCategory.PERMISSION: 403,
            ErrorCategory.BUSINESS: 422,
            ErrorCategory.EXTERNAL: 502,
            ErrorCategory.INTERNAL: 500,
        }
        return mapping.get(self.category, 500)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（用于 API 响应）"""
        result = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
        }
        if self.details:
            result["details"] = self.details
        return result


# ==================== 常用业务异常 ====================

class NotFoundError(ApplicationError):
    """资源不存在"""
    def __init__(
        self,
        resource_type: str,
        resource_id: Any,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource_type}不存在: {resource_id}",
            category=ErrorCategory.NOT_FOUND,
            details=details or {"resource_type": resource_type, "resource_id": str(resource_id)}
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ValidationError(ApplicationError):
    """参数验证错误"""
    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        field: Optional[str] = None
    ):
        details = {}
        if errors:
            details["validation_errors"] = errors
        if field:
            details["field"] = field

        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            category=ErrorCategory.VALIDATION,
            details=details or None
        )
        self.errors = errors
        self.field = field


class ConflictError(ApplicationError):
    """资源冲突（如重复创建）"""
    def __init__(
        self,
        resource_type: str,
        conflict_field: str,
        conflict_value: Any,
        message: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            code="CONFLICT",
            message=message or f"{resource_type}已存在: {conflict_field}={conflict_value}",
            category=ErrorCategory.CONFLICT,
            details={
                "resource_type": resource_type,
                "conflict_field": conflict_field,
                "conflict_value": str(conflict_value)
            },
            cause=cause
        )


class AccessDeniedError(ApplicationError):
    """
    访问被拒绝（密码不匹配）

    不区分"笔记不存在"与"笔记存在但已加锁"，只报告拒绝本身。
    """
    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            code="ACCESS_DENIED",
            message=message or "密码错误",
            category=ErrorCategory.PERMISSION,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class BusinessError(ApplicationError):
    """业务逻辑错误"""
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            code=code,
            message=message,
            category=ErrorCategory.BUSINESS,
            details=details,
            cause=cause
        )


class ExternalServiceError(ApplicationError):
    """外部服务错误"""
    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[Dict] = None,
        cause: Optional[Exception] = None,
        code: str = "EXTERNAL_SERVICE_ERROR"
    ):
        super().__init__(
            code=code,
            message=f"{service_name}: {message}",
            category=ErrorCategory.EXTERNAL,
            details=details or {"service": service_name},
            cause=cause
        )


class ConfigurationError(ApplicationError):
    """配置错误"""
    def __init__(
        self,
        config_key: str,
        message: str,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code="CONFIGURATION_ERROR",
            message=f"配置错误 [{config_key}]: {message}",
            category=ErrorCategory.INTERNAL,
            details=details or {"config_key": config_key}
        )


# ==================== 笔记相关异常 ====================

class NoteNotFoundError(NotFoundError):
    """笔记不存在"""
    def __init__(self, note_id: str):
        super().__init__("笔记", note_id)
        self.note_id = note_id


class VersionNotFoundError(NotFoundError):
    """版本不存在"""
    def __init__(self, note_id: str, version_number: int):
        super().__init__(
            "版本",
            f"{note_id}@{version_number}",
            details={"note_id": note_id, "version_number": version_number}
        )
        self.note_id = note_id
        self.version_number = version_number


class TransientStoreError(ExternalServiceError):
    """
    存储层暂时性失败（网络、超时、服务端错误）

    不自动重试：内容保存由下一次防抖周期覆盖，
    版本快照需要调用方重新触发。
    """
    def __init__(
        self,
        operation: str,
        message: str,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            service_name="content_store",
            message=f"{operation} 失败: {message}",
            details={"service": "content_store", "operation": operation},
            cause=cause,
            code="STORE_UNAVAILABLE",
        )
        self.operation = operation


class SessionNotReadyError(BusinessError):
    """会话未处于可编辑状态（未打开或已加锁）"""
    def __init__(self, note_id: Optional[str], state: str):
        super().__init__(
            code="SESSION_NOT_READY",
            message=f"笔记会话不可编辑: state={state}",
            details={"note_id": note_id, "state": state}
        )
        self.state = state


# ==================== 导出 ====================

__all__ = [
    # 基类
    "ErrorCategory",
    "ApplicationError",
    # 通用异常
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "AccessDeniedError",
    "BusinessError",
    "ExternalServiceError",
    "ConfigurationError",
    # 笔记异常
    "NoteNotFoundError",
    "VersionNotFoundError",
    "TransientStoreError",
    "SessionNotReadyError",
]
