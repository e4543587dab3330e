"""
Platform Core - 笔记服务的通用基础设施

- base: PostgreSQL 存储基类（psycopg2）
- settings: pydantic-settings 配置
- logging: structlog 结构化日志
- async_utils: 同步调用的线程池包装
"""

from .async_utils import run_sync
from .logging import configure_logging, get_logger
from .settings import NotepadSettings, get_settings, reload_settings

__all__ = [
    "run_sync",
    "configure_logging",
    "get_logger",
    "NotepadSettings",
    "get_settings",
    "reload_settings",
]
