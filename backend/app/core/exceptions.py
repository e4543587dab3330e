"""Exception handling utilities for FastAPI routes.

统一异常处理，集成 domains.core 的 ApplicationError 体系。

提供:
- 异常到 HTTP 响应的自动转换
- FastAPI exception_handler 注册
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.schemas.common import ErrorResponse
from domains.core import ApplicationError, ErrorCategory

logger = logging.getLogger(__name__)


# ============================================================================
# FastAPI 异常处理器
# ============================================================================

def register_exception_handlers(app: FastAPI) -> None:
    """
    注册 FastAPI 异常处理器

    将 ApplicationError 及其子类自动转换为 HTTP 响应。

    使用示例:
        app = FastAPI()
        register_exception_handlers(app)
    """

    @app.exception_handler(ApplicationError)
    async def application_error_handler(
        request: Request,
        exc: ApplicationError
    ) -> JSONResponse:
        """处理 ApplicationError 及其子类"""
        if exc.category == ErrorCategory.EXTERNAL:
            logger.error(
                f"Store error: [{exc.code}] {exc.message}",
                extra={"details": exc.details, "path": request.url.path},
            )
        else:
            logger.warning(
                f"Application error: [{exc.code}] {exc.message}",
                extra={"details": exc.details}
            )

        body = ErrorResponse(error=exc.message, code=exc.code, details=exc.details)
        return JSONResponse(
            status_code=exc.http_status_code,
            content=body.model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """全局异常处理器 - 捕获所有未处理的异常"""
        # 记录完整的异常堆栈
        logger.exception(
            f"Unhandled exception: {type(exc).__name__}: {exc}",
            extra={
                "path": request.url.path,
                "method": request.method,
            }
        )

        body = ErrorResponse(
            error=f"Internal server error: {type(exc).__name__}",
            code="INTERNAL_ERROR",
        )
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


__all__ = [
    "register_exception_handlers",
]
