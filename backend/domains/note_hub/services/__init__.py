"""
服务层：会话控制、版本管理、访问控制和面向 API 的服务封装
"""

from .access_guard import AccessGuard
from .note_service import NoteService, get_note_service
from .session import NoteSession
from .version_manager import VersionManager

__all__ = [
    'AccessGuard',
    'NoteService',
    'NoteSession',
    'VersionManager',
    'get_note_service',
]
