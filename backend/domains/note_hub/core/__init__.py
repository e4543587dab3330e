"""
核心层：数据模型、标识符、指纹和存储适配器
"""

from .adapter import ContentStoreAdapter, PostgresContentStore
from .fingerprint import EMPTY_FINGERPRINT, compute_fingerprint
from .identifiers import generate_note_id, validate_note_id
from .memory_store import InMemoryContentStore
from .models import (
    Collection,
    InsertResult,
    Note,
    NoteVersion,
    OpenResult,
    OpenState,
    SaveState,
    SaveStatus,
    VerifyResult,
)
from .store import NoteStore, get_note_store

__all__ = [
    'Note',
    'NoteVersion',
    'Collection',
    'OpenResult',
    'OpenState',
    'SaveState',
    'SaveStatus',
    'InsertResult',
    'VerifyResult',
    'generate_note_id',
    'validate_note_id',
    'compute_fingerprint',
    'EMPTY_FINGERPRINT',
    'ContentStoreAdapter',
    'PostgresContentStore',
    'InMemoryContentStore',
    'NoteStore',
    'get_note_store',
]
