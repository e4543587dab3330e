"""
内容存储适配器

引擎只依赖 ContentStoreAdapter 协议，视其为"至少一次、可能失败"的远程服务：
- 失败一律以异常抛出（TransientStoreError / ConflictError），不返回错误码
- 超时由适配器负责，引擎不做重试

实现:
- PostgresContentStore: psycopg2 同步存储 + run_sync 线程池包装
- InMemoryContentStore: 进程内实现（memory_store 模块），用于开发和测试
"""

import logging
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

import psycopg2

from domains.core.exceptions import TransientStoreError, ValidationError
from domains.platform_core.async_utils import run_sync

from .models import Collection, InsertResult, Note, NoteVersion
from .store import NoteStore

logger = logging.getLogger(__name__)


@runtime_checkable
class ContentStoreAdapter(Protocol):
    """笔记引擎消费的存储能力"""

    async def get(self, note_id: str) -> Optional[Note]:
        """读取笔记，不存在返回 None"""
        ...

    async def insert_if_absent(self, note: Note) -> InsertResult:
        """原子地创建笔记；已存在时返回 ALREADY_EXISTS 而不是覆盖"""
        ...

    async def upsert(self, note_id: str, content: str) -> datetime:
        """写入正文（后写者胜），返回提交时间"""
        ...

    async def insert_version(self, version: NoteVersion) -> NoteVersion:
        """写入版本快照；版本号重复时抛出 ConflictError"""
        ...

    async def list_versions(self, note_id: str, limit: int = 50) -> list[NoteVersion]:
        """按版本号降序列出版本"""
        ...

    async def get_version(self, note_id: str, version_number: int) -> Optional[NoteVersion]:
        ...

    async def update_version_counter(self, note_id: str, version: int) -> None:
        """推进版本计数器，不会降低已有值"""
        ...

    async def update_access_credential(
        self,
        note_id: str,
        password_hash: Optional[str],
        is_protected: bool,
    ) -> None:
        ...

    async def update_metadata(self, note_id: str, collection: Optional[str], tags: str) -> None:
        ...

    async def list_collections(self) -> list[Collection]:
        ...

    async def create_collection(self, collection: Collection) -> Collection:
        ...


class PostgresContentStore:
    """
    PostgreSQL 适配器

    在线程池中调用同步的 NoteStore，并把驱动层异常统一转换为 TransientStoreError。
    驱动拒绝的参数值（如含 NUL 的字符串）转换为 ValidationError。
    ConflictError 等业务异常原样透传。
    """

    def __init__(self, store: NoteStore):
        self._store = store

    async def _call(self, operation: str, func, *args):
        try:
            return await run_sync(func, *args)
        except psycopg2.Error as e:
            logger.warning(f"store_operation_failed: {operation}, {type(e).__name__}")
            raise TransientStoreError(operation, str(e).strip() or type(e).__name__, cause=e) from e
        except ValueError as e:
            logger.warning(f"store_value_rejected: {operation}, {e}")
            raise ValidationError(f"存储拒绝该值: {e}") from e

    @staticmethod
    def _check_text(content: str) -> None:
        # PostgreSQL TEXT 不能保存 NUL 字符
        if "\x00" in content:
            raise ValidationError("内容不能包含 NUL (0x00) 字符", field="content")

    async def get(self, note_id: str) -> Optional[Note]:
        return await self._call("get", self._store.get, note_id)

    async def insert_if_absent(self, note: Note) -> InsertResult:
        created = await self._call("insert_if_absent", self._store.insert_if_absent, note)
        return InsertResult.CREATED if created else InsertResult.ALREADY_EXISTS

    async def upsert(self, note_id: str, content: str) -> datetime:
        self._check_text(content)
        return await self._call("upsert", self._store.upsert_content, note_id, content)

    async def insert_version(self, version: NoteVersion) -> NoteVersion:
        self._check_text(version.content)
        return await self._call("insert_version", self._store.insert_version, version)

    async def list_versions(self, note_id: str, limit: int = 50) -> list[NoteVersion]:
        return await self._call("list_versions", self._store.list_versions, note_id, limit)

    async def get_version(self, note_id: str, version_number: int) -> Optional[NoteVersion]:
        return await self._call("get_version", self._store.get_version, note_id, version_number)

    async def update_version_counter(self, note_id: str, version: int) -> None:
        await self._call(
            "update_version_counter", self._store.update_version_counter, note_id, version
        )

    async def update_access_credential(
        self,
        note_id: str,
        password_hash: Optional[str],
        is_protected: bool,
    ) -> None:
        await self._call(
            "update_access_credential",
            self._store.update_access_credential,
            note_id, password_hash, is_protected,
        )

    async def update_metadata(self, note_id: str, collection: Optional[str], tags: str) -> None:
        await self._call(
            "update_metadata", self._store.update_metadata, note_id, collection, tags
        )

    async def list_collections(self) -> list[Collection]:
        return await self._call("list_collections", self._store.list_collections)

    async def create_collection(self, collection: Collection) -> Collection:
        return await self._call("create_collection", self._store.create_collection, collection)
