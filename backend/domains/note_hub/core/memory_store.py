"""
进程内存储适配器

实现完整的 ContentStoreAdapter 协议，用于本地开发和测试。
所有状态变更都在单次事件循环调度内完成（变更前后没有 await），
因此 insert_if_absent 与 upsert 在单线程事件循环下天然原子。
"""

import asyncio
import dataclasses
import itertools
from datetime import datetime, timezone
from typing import Optional

from domains.core.exceptions import ConflictError

from .models import Collection, InsertResult, Note, NoteVersion


class InMemoryContentStore:
    """
    内存存储

    Args:
        latency: 每次调用前的模拟延迟（秒）。为 0 时仍会让出一次事件循环，
            以便并发场景（如两个会话同时打开新笔记）能真实交错执行。
    """

    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self._notes: dict[str, Note] = {}
        self._versions: dict[str, dict[int, NoteVersion]] = {}
        self._collections: dict[str, Collection] = {}
        self._collection_ids = itertools.count(1)

    async def _yield(self) -> None:
        await asyncio.sleep(self.latency)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # ==================== 笔记 ====================

    async def get(self, note_id: str) -> Optional[Note]:
        await self._yield()
        note = self._notes.get(note_id)
        return dataclasses.replace(note) if note else None

    async def insert_if_absent(self, note: Note) -> InsertResult:
        await self._yield()
        if note.id in self._notes:
            return InsertResult.ALREADY_EXISTS
        now = self._now()
        self._notes[note.id] = dataclasses.replace(
            note,
            created_at=note.created_at or now,
            updated_at=note.updated_at or now,
        )
        return InsertResult.CREATED

    async def upsert(self, note_id: str, content: str) -> datetime:
        await self._yield()
        now = self._now()
        existing = self._notes.get(note_id)
        if existing is None:
            self._notes[note_id] = Note(id=note_id, content=content, created_at=now, updated_at=now)
        else:
            existing.content = content
            existing.updated_at = now
        return now

    async def update_version_counter(self, note_id: str, version: int) -> None:
        await self._yield()
        note = self._notes.get(note_id)
        if note is not None:
            note.version = max(note.version, version)

    async def update_access_credential(
        self,
        note_id: str,
        password_hash: Optional[str],
        is_protected: bool,
    ) -> None:
        await self._yield()
        note = self._notes.get(note_id)
        if note is not None:
            note.password_hash = password_hash
            note.is_protected = is_protected
            note.updated_at = self._now()

    async def update_metadata(self, note_id: str, collection: Optional[str], tags: str) -> None:
        await self._yield()
        note = self._notes.get(note_id)
        if note is not None:
            note.collection = collection
            note.tags = tags
            note.updated_at = self._now()

    # ==================== 版本 ====================

    async def insert_version(self, version: NoteVersion) -> NoteVersion:
        await self._yield()
        versions = self._versions.setdefault(version.note_id, {})
        if version.version_number in versions:
            raise ConflictError("版本", "version_number", version.version_number)
        stored = dataclasses.replace(version, created_at=version.created_at or self._now())
        versions[version.version_number] = stored
        return dataclasses.replace(stored)

    async def list_versions(self, note_id: str, limit: int = 50) -> list[NoteVersion]:
        await self._yield()
        versions = self._versions.get(note_id, {})
        ordered = sorted(versions.values(), key=lambda v: v.version_number, reverse=True)
        return [dataclasses.replace(v) for v in ordered[:limit]]

    async def get_version(self, note_id: str, version_number: int) -> Optional[NoteVersion]:
        await self._yield()
        version = self._versions.get(note_id, {}).get(version_number)
        return dataclasses.replace(version) if version else None

    # ==================== 分组 ====================

    async def list_collections(self) -> list[Collection]:
        await self._yield()
        return [
            dataclasses.replace(c)
            for c in sorted(self._collections.values(), key=lambda c: c.name)
        ]

    async def create_collection(self, collection: Collection) -> Collection:
        await self._yield()
        if collection.name in self._collections:
            raise ConflictError("分组", "name", collection.name)
        stored = dataclasses.replace(
            collection,
            id=next(self._collection_ids),
            created_at=self._now(),
        )
        self._collections[stored.name] = stored
        return dataclasses.replace(stored)

    # ==================== 测试辅助 ====================

    def note_count(self) -> int:
        return len(self._notes)

    def version_numbers(self, note_id: str) -> list[int]:
        """升序返回某笔记的全部版本号"""
        return sorted(self._versions.get(note_id, {}))
