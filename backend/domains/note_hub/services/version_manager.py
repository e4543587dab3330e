"""
版本管理

决定何时生成不可变快照，并提供版本列表与恢复。

规则:
- 新笔记首次创建成功时记录版本 1（空内容，指纹为空串的真实哈希）
- 用户显式"保存版本"时生成新版本，自动保存永不生成版本
- snapshot 不做内容去重：相同内容连续保存两次会得到两个版本
- 版本号 = max(笔记计数器, 已存最新版本号) + 1，计数器更新失败可在下次快照时自愈
- 快照失败显式抛给调用方，由用户重新触发
"""

from domains.core.exceptions import NoteNotFoundError, VersionNotFoundError
from domains.platform_core.logging import get_logger

from ..core.adapter import ContentStoreAdapter
from ..core.fingerprint import compute_fingerprint
from ..core.models import NoteVersion

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class VersionManager:
    """
    版本管理器

    Args:
        store: 内容存储适配器
        history_limit: list_versions 返回的最大条数
    """

    def __init__(self, store: ContentStoreAdapter, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.store = store
        self.history_limit = history_limit

    async def record_initial(self, note_id: str, content: str = "") -> NoteVersion:
        """记录新笔记的初始版本（版本 1）"""
        version = NoteVersion(
            note_id=note_id,
            version_number=1,
            content=content,
            content_hash=compute_fingerprint(content),
        )
        stored = await self.store.insert_version(version)
        logger.info("initial_version_recorded", note_id=note_id)
        return stored

    async def _next_version_number(self, note_id: str) -> int:
        note = await self.store.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)

        latest = await self.store.list_versions(note_id, limit=1)
        latest_number = latest[0].version_number if latest else 0
        return max(note.version, latest_number) + 1

    async def snapshot(self, note_id: str, content: str) -> int:
        """
        创建新版本并推进笔记的版本计数器

        Returns:
            新版本号

        Raises:
            NoteNotFoundError: 笔记不存在
            ConflictError: 另一会话同时写入了相同版本号
            TransientStoreError: 存储失败
        """
        number = await self._next_version_number(note_id)
        version = NoteVersion(
            note_id=note_id,
            version_number=number,
            content=content,
            content_hash=compute_fingerprint(content),
        )

        try:
            await self.store.insert_version(version)
            await self.store.update_version_counter(note_id, number)
        except Exception as e:
            logger.warning(
                "snapshot_failed",
                note_id=note_id,
                version=number,
                error=str(e),
            )
            raise

        logger.info("snapshot_created", note_id=note_id, version=number)
        return number

    async def list_versions(self, note_id: str, limit: int | None = None) -> list[NoteVersion]:
        """按版本号降序列出版本（最多 history_limit 条）"""
        limit = min(limit or self.history_limit, self.history_limit)
        return await self.store.list_versions(note_id, limit=limit)

    async def get_version(self, note_id: str, version_number: int) -> NoteVersion:
        version = await self.store.get_version(note_id, version_number)
        if version is None:
            raise VersionNotFoundError(note_id, version_number)
        return version

    async def restore(self, note_id: str, version_number: int) -> str:
        """
        返回指定版本的内容

        不创建新版本，也不修改当前正文；是否把结果当作新编辑由调用方决定。
        """
        version = await self.get_version(note_id, version_number)
        logger.info("version_restored", note_id=note_id, version=version_number)
        return version.content

    async def has_changes(self, note_id: str, content: str) -> bool:
        """
        当前内容是否不同于最新版本（提示用）

        只比较原文，指纹仅作展示。
        """
        latest = await self.store.list_versions(note_id, limit=1)
        if not latest:
            return True
        return latest[0].content != content
