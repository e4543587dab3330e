"""
密码保护

- 只持久化 bcrypt 哈希（自带盐，成本因子可调），不存储、不记录明文
- 校验使用 bcrypt.checkpw，比较过程为常数时间
- 无密码找回路径
- 任何持有已解锁笔记的人都可以移除密码（URL 即凭证）
"""

import bcrypt

from domains.core.exceptions import NoteNotFoundError, ValidationError
from domains.platform_core.async_utils import run_sync
from domains.platform_core.logging import get_logger

from ..core.adapter import ContentStoreAdapter
from ..core.models import VerifyResult

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
# bcrypt 只处理前 72 字节
MAX_PASSWORD_BYTES = 72
DEFAULT_ROUNDS = 10


def _hash_password(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds)).decode('ascii')


def _check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('ascii'))
    except ValueError:
        # 存储的哈希格式损坏
        logger.warning("password_hash_malformed")
        return False


class AccessGuard:
    """
    访问控制

    Args:
        store: 内容存储适配器
        rounds: bcrypt 成本因子
        min_length: 最小密码长度
    """

    def __init__(
        self,
        store: ContentStoreAdapter,
        rounds: int = DEFAULT_ROUNDS,
        min_length: int = MIN_PASSWORD_LENGTH,
    ):
        self.store = store
        self.rounds = rounds
        self.min_length = max(min_length, MIN_PASSWORD_LENGTH)

    def validate_password(self, password: str, confirm_password: str | None = None) -> None:
        """
        校验密码规则（不访问存储）

        Raises:
            ValidationError: 两次输入不一致、过短或过长
        """
        if confirm_password is not None and password != confirm_password:
            raise ValidationError("两次输入的密码不一致", field="confirm_password")
        if len(password) < self.min_length:
            raise ValidationError(
                f"密码至少需要 {self.min_length} 个字符",
                field="password",
            )
        if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"密码不能超过 {MAX_PASSWORD_BYTES} 字节",
                field="password",
            )

    async def set_password(
        self,
        note_id: str,
        password: str,
        confirm_password: str | None = None,
    ) -> None:
        """
        设置密码

        Raises:
            ValidationError: 密码不符合规则（不会触达存储）
            NoteNotFoundError: 笔记不存在
        """
        self.validate_password(password, confirm_password)

        note = await self.store.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)

        password_hash = await run_sync(_hash_password, password, self.rounds)
        await self.store.update_access_credential(note_id, password_hash, True)
        logger.info("password_set", note_id=note_id)

    async def verify(self, note_id: str, password: str) -> VerifyResult:
        """
        校验密码

        笔记不存在或未设置密码时同样返回 DENIED。
        """
        note = await self.store.get(note_id)
        if note is None or not note.is_protected or not note.password_hash:
            logger.info("password_verify_denied", note_id=note_id, reason="not_protected")
            return VerifyResult.DENIED

        if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
            return VerifyResult.DENIED

        matched = await run_sync(_check_password, password, note.password_hash)
        if matched:
            logger.info("password_verified", note_id=note_id)
            return VerifyResult.VERIFIED

        logger.info("password_verify_denied", note_id=note_id, reason="mismatch")
        return VerifyResult.DENIED

    async def remove_password(self, note_id: str) -> None:
        """清除密码哈希和保护标记"""
        note = await self.store.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)

        await self.store.update_access_credential(note_id, None, False)
        logger.info("password_removed", note_id=note_id)

    async def is_protected(self, note_id: str) -> bool:
        note = await self.store.get(note_id)
        return bool(note and note.is_protected)
