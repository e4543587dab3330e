"""
笔记服务层

面向无状态调用方（HTTP API）的业务封装：每次请求独立完成一次
打开/保存/版本/密码操作，不持有防抖计时器。
需要防抖自动保存的长连接调用方使用 new_session() 获取 NoteSession。

受保护笔记的所有变更操作都要求调用方提供正确密码。
"""

from datetime import datetime
from typing import Optional

from domains.core.exceptions import AccessDeniedError, NoteNotFoundError, ValidationError
from domains.platform_core.logging import get_logger

from ..core.adapter import ContentStoreAdapter
from ..core.identifiers import generate_note_id, validate_note_id
from ..core.models import Collection, Note, NoteVersion, OpenResult, VerifyResult
from .access_guard import AccessGuard
from .session import NoteSession
from .version_manager import VersionManager

logger = get_logger(__name__)

MAX_COLLECTION_NAME_LENGTH = 100


class NoteService:
    """
    笔记服务

    Args:
        store: 内容存储适配器
        version_manager: 版本管理器
        access_guard: 访问控制
        debounce_seconds: 新建会话使用的防抖窗口
    """

    def __init__(
        self,
        store: ContentStoreAdapter,
        version_manager: VersionManager | None = None,
        access_guard: AccessGuard | None = None,
        debounce_seconds: float | None = None,
    ):
        self.store = store
        self.version_manager = version_manager or VersionManager(store)
        self.access_guard = access_guard or AccessGuard(store)
        self.debounce_seconds = debounce_seconds

    def new_session(self) -> NoteSession:
        """创建共享本服务依赖的编辑会话"""
        return NoteSession(
            self.store,
            version_manager=self.version_manager,
            access_guard=self.access_guard,
            debounce_seconds=self.debounce_seconds,
        )

    def new_note_id(self) -> str:
        return generate_note_id()

    # ==================== 访问控制 ====================

    async def _require_note(self, note_id: str) -> Note:
        validate_note_id(note_id)
        note = await self.store.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    async def _require_access(self, note_id: str, password: Optional[str]) -> Note:
        """笔记存在，且未受保护或密码正确"""
        note = await self._require_note(note_id)
        if not note.is_protected:
            return note
        if not password:
            raise AccessDeniedError(note_id, "笔记受密码保护")
        if await self.access_guard.verify(note_id, password) != VerifyResult.VERIFIED:
            raise AccessDeniedError(note_id)
        return note

    async def verify_password(self, note_id: str, password: str) -> VerifyResult:
        await self._require_note(note_id)
        return await self.access_guard.verify(note_id, password)

    # ==================== 打开与保存 ====================

    async def open_note(self, note_id: str, password: Optional[str] = None) -> OpenResult:
        """
        打开（不存在则创建）笔记

        提供密码时对受保护笔记尝试解锁；密码错误时仍返回 LOCKED。
        """
        session = self.new_session()
        try:
            result = await session.open(note_id)
            if result.is_locked and password:
                try:
                    result = await session.unlock(password)
                except AccessDeniedError:
                    logger.info("open_password_rejected", note_id=note_id)
            return result
        finally:
            session.close()

    async def unlock_note(self, note_id: str, password: str) -> OpenResult:
        """
        校验密码并返回内容

        Raises:
            NoteNotFoundError: 笔记不存在
            AccessDeniedError: 密码错误或笔记未设置密码
        """
        await self._require_note(note_id)
        session = self.new_session()
        try:
            await session.open(note_id)
            return await session.unlock(password)
        finally:
            session.close()

    async def save_content(
        self,
        note_id: str,
        content: str,
        password: Optional[str] = None,
    ) -> datetime:
        """
        立即保存正文（不生成版本）

        Returns:
            存储返回的更新时间
        """
        await self._require_access(note_id, password)
        saved_at = await self.store.upsert(note_id, content)
        logger.info("content_saved", note_id=note_id, chars=len(content))
        return saved_at

    # ==================== 版本 ====================

    async def create_version(
        self,
        note_id: str,
        content: Optional[str] = None,
        password: Optional[str] = None,
    ) -> int:
        """
        创建版本快照

        未提供 content 时对当前已保存正文做快照。
        """
        note = await self._require_access(note_id, password)
        if content is None:
            content = note.content
        return await self.version_manager.snapshot(note_id, content)

    async def list_versions(
        self,
        note_id: str,
        password: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[NoteVersion]:
        await self._require_access(note_id, password)
        return await self.version_manager.list_versions(note_id, limit=limit)

    async def get_version(
        self,
        note_id: str,
        version_number: int,
        password: Optional[str] = None,
    ) -> NoteVersion:
        await self._require_access(note_id, password)
        return await self.version_manager.get_version(note_id, version_number)

    async def restore_version(
        self,
        note_id: str,
        version_number: int,
        password: Optional[str] = None,
    ) -> str:
        """
        恢复历史版本为当前正文

        恢复本身不生成新版本；恢复后的正文与普通编辑一样保存。
        """
        await self._require_access(note_id, password)
        content = await self.version_manager.restore(note_id, version_number)
        await self.store.upsert(note_id, content)
        return content

    # ==================== 密码 ====================

    async def set_password(
        self,
        note_id: str,
        password: str,
        confirm_password: Optional[str] = None,
        current_password: Optional[str] = None,
    ) -> None:
        """设置或更换密码；已受保护的笔记需提供当前密码"""
        self.access_guard.validate_password(password, confirm_password)
        await self._require_access(note_id, current_password)
        await self.access_guard.set_password(note_id, password, confirm_password)

    async def remove_password(self, note_id: str, password: Optional[str] = None) -> None:
        await self._require_access(note_id, password)
        await self.access_guard.remove_password(note_id)

    # ==================== 元数据与分组 ====================

    async def update_metadata(
        self,
        note_id: str,
        collection: Optional[str] = None,
        tags: Optional[list[str]] = None,
        password: Optional[str] = None,
    ) -> Note:
        """更新笔记所属分组和标签"""
        note = await self._require_access(note_id, password)
        note.collection = collection.strip() if collection and collection.strip() else None
        note.set_tags(tags or [])
        await self.store.update_metadata(note_id, note.collection, note.tags)
        logger.info("metadata_updated", note_id=note_id, collection=note.collection)
        return note

    async def list_collections(self) -> list[Collection]:
        return await self.store.list_collections()

    async def create_collection(self, name: str, description: str = "") -> Collection:
        name = name.strip()
        if not name:
            raise ValidationError("分组名称不能为空", field="name")
        if len(name) > MAX_COLLECTION_NAME_LENGTH:
            raise ValidationError(
                f"分组名称不能超过 {MAX_COLLECTION_NAME_LENGTH} 个字符",
                field="name",
            )
        collection = await self.store.create_collection(
            Collection(name=name, description=description)
        )
        logger.info("collection_created", name=name)
        return collection


def get_note_service() -> NoteService:
    """从服务注册表获取笔记服务"""
    from domains.core.lifecycle import get_service_registry
    return get_service_registry().get("note_service")
