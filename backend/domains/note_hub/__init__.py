"""
笔记同步与版本领域模块

以 URL 标识符作为唯一凭证的共享记事本：
- 打开即创建：访问不存在的标识符时创建空笔记（并发创建只会成功一次）
- 防抖自动保存：连续编辑只持久化静默期结束时的最新内容
- 显式版本：用户"保存版本"时生成不可变快照，可随时恢复
- 可选密码：bcrypt 哈希保护，未解锁时不返回任何内容
"""

from .core.adapter import ContentStoreAdapter, PostgresContentStore
from .core.memory_store import InMemoryContentStore
from .core.models import Collection, Note, NoteVersion, OpenResult, OpenState, SaveStatus
from .core.store import NoteStore, get_note_store
from .services import AccessGuard, NoteService, NoteSession, VersionManager, get_note_service

__all__ = [
    'Note',
    'NoteVersion',
    'Collection',
    'OpenResult',
    'OpenState',
    'SaveStatus',
    'ContentStoreAdapter',
    'PostgresContentStore',
    'InMemoryContentStore',
    'NoteStore',
    'get_note_store',
    'AccessGuard',
    'NoteService',
    'NoteSession',
    'VersionManager',
    'get_note_service',
]
