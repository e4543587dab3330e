"""
笔记标识符

- 系统生成：两段独立的 13 位 base36 随机串拼接，共 26 位小写字母数字
- 用户自定义：字母、数字、连字符、下划线，区分大小写
"""

import re
import secrets
import string

from domains.core.exceptions import ValidationError

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_CHUNK_LENGTH = 13
MAX_CUSTOM_ID_LENGTH = 64

_CUSTOM_ID_PATTERN = re.compile(r'[A-Za-z0-9_-]+')


def _random_chunk(length: int = ID_CHUNK_LENGTH) -> str:
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(length))


def generate_note_id() -> str:
    """生成新的笔记标识符（不访问存储）"""
    return _random_chunk() + _random_chunk()


def validate_note_id(note_id: str) -> str:
    """
    校验标识符格式

    Returns:
        原样返回的标识符（不做大小写归一化）

    Raises:
        ValidationError: 为空、过长或包含非法字符
    """
    if not note_id:
        raise ValidationError("笔记标识符不能为空", field="note_id")
    if len(note_id) > MAX_CUSTOM_ID_LENGTH:
        raise ValidationError(
            f"笔记标识符不能超过 {MAX_CUSTOM_ID_LENGTH} 个字符",
            field="note_id",
        )
    if not _CUSTOM_ID_PATTERN.fullmatch(note_id):
        raise ValidationError(
            "笔记标识符只能包含字母、数字、连字符和下划线",
            field="note_id",
        )
    return note_id
