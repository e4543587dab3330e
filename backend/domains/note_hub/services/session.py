"""
笔记会话控制器

负责:
- 打开笔记：加载已有笔记，或以 insert-if-absent 创建新笔记
- 并发创建竞争：insert 报告已存在时重新读取，按"已找到"处理
- 访问控制：受保护且未解锁时只返回 LOCKED，不返回任何内容
- 防抖自动保存：只持久化每个静默期结束时的最新内容

自动保存状态机: IDLE -> SAVING -> {SAVED, ERROR}
失败不重试，由下一次编辑的防抖周期自然覆盖。

调度模型为单线程事件循环：record_edit 必须在运行中的事件循环内调用。
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

from domains.core.exceptions import (
    AccessDeniedError,
    ApplicationError,
    SessionNotReadyError,
    TransientStoreError,
)
from domains.platform_core.logging import get_logger

from ..core.adapter import ContentStoreAdapter
from ..core.identifiers import generate_note_id, validate_note_id
from ..core.models import (
    InsertResult,
    Note,
    OpenResult,
    OpenState,
    SaveState,
    SaveStatus,
    VerifyResult,
)
from .access_guard import AccessGuard
from .version_manager import VersionManager

logger = get_logger(__name__)

SaveObserver = Callable[[SaveState], None]


class NoteSession:
    """
    单个笔记的编辑会话

    Args:
        store: 内容存储适配器
        version_manager: 版本管理器，默认基于同一 store 创建
        access_guard: 访问控制，默认基于同一 store 创建
        debounce_seconds: 防抖窗口（秒），默认读取 NOTEPAD_AUTOSAVE__DEBOUNCE_MS
        id_generator: 标识符生成函数
    """

    def __init__(
        self,
        store: ContentStoreAdapter,
        version_manager: VersionManager | None = None,
        access_guard: AccessGuard | None = None,
        debounce_seconds: float | None = None,
        id_generator: Callable[[], str] = generate_note_id,
    ):
        if debounce_seconds is None:
            from domains.platform_core.settings import get_settings
            debounce_seconds = get_settings().autosave.debounce_seconds

        self.store = store
        self.version_manager = version_manager or VersionManager(store)
        self.access_guard = access_guard or AccessGuard(store)
        self.debounce_seconds = debounce_seconds
        self._id_generator = id_generator

        self.note_id: str | None = None
        self.open_state: OpenState | None = None
        self.version: int | None = None
        self.updated_at: datetime | None = None

        self._content = ""
        self._unlocked = False
        self._closed = False
        self._save_state = SaveState()
        self._observers: list[SaveObserver] = []
        self._timer: asyncio.TimerHandle | None = None
        self._save_tasks: set[asyncio.Task] = set()
        self._save_lock = asyncio.Lock()

    # ==================== 状态 ====================

    @property
    def content(self) -> str:
        """当前工作内容（含尚未持久化的编辑）"""
        return self._content

    @property
    def save_state(self) -> SaveState:
        return self._save_state

    @property
    def status(self) -> SaveStatus:
        return self._save_state.status

    @property
    def is_ready(self) -> bool:
        return not self._closed and self.open_state == OpenState.READY

    @property
    def has_pending_save(self) -> bool:
        """是否有尚未触发的防抖计时器"""
        return self._timer is not None

    def subscribe(self, observer: SaveObserver) -> Callable[[], None]:
        """
        订阅保存状态变化

        Returns:
            取消订阅函数
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _transition(self, state: SaveState) -> None:
        # 会话关闭后，迟到的保存回调不得改变可观察状态
        if self._closed:
            return
        self._save_state = state
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception as e:
                logger.warning("save_observer_failed", note_id=self.note_id, error=str(e))

    def _ensure_ready(self) -> str:
        if not self.is_ready or self.note_id is None:
            state = "closed" if self._closed else (
                self.open_state.value if self.open_state else "unopened"
            )
            raise SessionNotReadyError(self.note_id, state)
        return self.note_id

    # ==================== 打开 ====================

    async def open(self, note_id: str | None = None) -> OpenResult:
        """
        打开笔记

        - 未提供标识符：生成新标识符并返回 REDIRECT，不访问存储
        - 已存在：受保护且未解锁返回 LOCKED，否则返回内容
        - 不存在：insert-if-absent 创建空笔记并记录版本 1；
          若插入时已被其他会话创建，重新读取后按已存在处理
        """
        if self._closed:
            raise SessionNotReadyError(note_id, "closed")

        if not note_id:
            new_id = self._id_generator()
            self._switch_note(new_id)
            self.open_state = OpenState.REDIRECT
            logger.info("note_redirect", note_id=new_id)
            return OpenResult.redirect(new_id)

        validate_note_id(note_id)
        if note_id != self.note_id:
            self._switch_note(note_id)
        else:
            # 重新打开同一笔记：先落库待保存的编辑，再读取
            await self.flush()

        note = await self.store.get(note_id)
        created = False
        if note is None:
            note, created = await self._create(note_id)

        return self._apply_loaded(note, created)

    def _switch_note(self, note_id: str) -> None:
        self._cancel_timer()
        self.note_id = note_id
        self.open_state = None
        self.version = None
        self.updated_at = None
        self._content = ""
        self._unlocked = False
        self._transition(SaveState())

    async def _create(self, note_id: str) -> tuple[Note, bool]:
        fresh = Note(id=note_id, content="", version=1)
        result = await self.store.insert_if_absent(fresh)

        if result == InsertResult.ALREADY_EXISTS:
            # 另一会话在本次读取与插入之间创建了该笔记
            logger.info("note_create_conflict", note_id=note_id)
            note = await self.store.get(note_id)
            if note is None:
                raise TransientStoreError("get", f"笔记在创建冲突后不可读: {note_id}")
            return note, False

        logger.info("note_created", note_id=note_id)
        try:
            await self.version_manager.record_initial(note_id, fresh.content)
        except ApplicationError as e:
            # 笔记已可用，初始版本缺失不阻塞编辑
            logger.warning("initial_version_failed", note_id=note_id, error=str(e))

        note = await self.store.get(note_id)
        return note or fresh, True

    def _apply_loaded(self, note: Note, created: bool) -> OpenResult:
        if note.is_protected and not self._unlocked:
            self.open_state = OpenState.LOCKED
            self._content = ""
            self.version = None
            logger.info("note_locked", note_id=note.id)
            return OpenResult.locked(note.id)

        self.open_state = OpenState.READY
        self._content = note.content
        self.version = note.version
        self.updated_at = note.updated_at
        return OpenResult.ready(note, created=created)

    async def unlock(self, password: str) -> OpenResult:
        """
        校验密码并重新读取内容

        Raises:
            AccessDeniedError: 密码不匹配
        """
        if self._closed or self.note_id is None or self.open_state in (None, OpenState.REDIRECT):
            raise SessionNotReadyError(self.note_id, "unopened")

        result = await self.access_guard.verify(self.note_id, password)
        if result != VerifyResult.VERIFIED:
            raise AccessDeniedError(self.note_id)

        self._unlocked = True
        return await self.open(self.note_id)

    # ==================== 编辑与自动保存 ====================

    def record_edit(self, content: str) -> None:
        """
        记录一次本地编辑

        立即更新工作内容，并重置防抖计时器；窗口内较早的计时器被取消而非执行。
        """
        note_id = self._ensure_ready()
        self._content = content
        self._cancel_timer()

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer, note_id, content)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, note_id: str, content: str) -> None:
        self._timer = None
        self._start_save(note_id, content)

    def _start_save(self, note_id: str, content: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._persist(note_id, content))
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)
        return task

    async def _persist(self, note_id: str, content: str) -> None:
        # 同一会话的保存按顺序执行，较早的保存不会晚于较新的保存落库
        async with self._save_lock:
            previous = self._save_state.saved_at
            self._transition(SaveState(status=SaveStatus.SAVING, saved_at=previous))
            try:
                saved_at = await self.store.upsert(note_id, content)
            except Exception as e:
                # 任何适配器失败都视为一次失败的尝试，不重试
                message = e.message if isinstance(e, ApplicationError) else str(e)
                logger.warning(
                    "autosave_failed",
                    note_id=note_id,
                    error=message,
                    error_type=type(e).__name__,
                )
                self._transition(SaveState(status=SaveStatus.ERROR, saved_at=previous, error=message))
                return

            logger.debug("autosave_committed", note_id=note_id, chars=len(content))
            if not self._closed and note_id == self.note_id:
                self.updated_at = saved_at
            self._transition(SaveState(status=SaveStatus.SAVED, saved_at=saved_at))

    async def flush(self) -> SaveState:
        """
        立即持久化待保存的内容，并等待所有进行中的保存结束

        Returns:
            结束后的保存状态
        """
        if self._timer is not None and self.note_id is not None:
            self._cancel_timer()
            self._start_save(self.note_id, self._content)

        if self._save_tasks:
            await asyncio.gather(*list(self._save_tasks), return_exceptions=True)
        return self._save_state

    def close(self) -> None:
        """
        结束会话

        取消待触发的计时器；进行中的保存可以完成写入，但不再改变会话状态。
        """
        if self._closed:
            return
        self._cancel_timer()
        self._closed = True
        self._observers.clear()
        logger.debug("session_closed", note_id=self.note_id)

    # ==================== 版本与密码 ====================

    async def save_version(self) -> int:
        """
        将当前工作内容保存为新版本

        先落库待保存的编辑，再创建快照。快照失败直接抛出，由用户重试。
        """
        note_id = self._ensure_ready()
        await self.flush()
        number = await self.version_manager.snapshot(note_id, self._content)
        self.version = number
        return number

    async def restore_version(self, version_number: int) -> str:
        """取回指定版本内容，并作为一次新编辑进入自动保存"""
        note_id = self._ensure_ready()
        content = await self.version_manager.restore(note_id, version_number)
        self.record_edit(content)
        return content

    async def set_password(self, password: str, confirm_password: str | None = None) -> None:
        """为已解锁的笔记设置密码，本会话保持解锁"""
        note_id = self._ensure_ready()
        await self.access_guard.set_password(note_id, password, confirm_password)
        self._unlocked = True

    async def remove_password(self) -> None:
        """移除密码（持有已解锁笔记即可操作）"""
        note_id = self._ensure_ready()
        await self.access_guard.remove_password(note_id)
