"""
笔记同步引擎数据模型定义

- Note: 当前生效的笔记正文，由 URL 中的不透明标识符寻址
- NoteVersion: 笔记在某一时刻的不可变快照，按版本号顺序排列
- Collection: 笔记分组

密码只以单向哈希形式出现在 Note.password_hash 中，
to_dict() 及所有对外输出都不包含该字段。
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class SaveStatus(str, Enum):
    """
    自动保存状态机

    IDLE -> SAVING -> {SAVED, ERROR}
    失败不排队、不重试，由下一次编辑覆盖。
    """
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class OpenState(str, Enum):
    """打开笔记的结果状态"""
    REDIRECT = "redirect"  # 未提供标识符，已生成新标识符等待跳转
    LOCKED = "locked"      # 受密码保护且本会话尚未解锁
    READY = "ready"        # 内容已就绪


class InsertResult(str, Enum):
    """insert-if-absent 结果"""
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


class VerifyResult(str, Enum):
    """密码校验结果"""
    VERIFIED = "verified"
    DENIED = "denied"


@dataclass
class Note:
    """
    笔记数据类

    Attributes:
        id: 不透明标识符（URL 安全，区分大小写）
        content: 当前正文，可为空
        version: 当前版本号，从 1 开始，只由 VersionManager 推进
        password_hash: bcrypt 哈希（可选），不会出现在 to_dict() 中
        is_protected: 是否受密码保护
        collection: 所属分组名（可选）
        tags: 标签（逗号分隔的字符串）
        created_at: 创建时间
        updated_at: 最后更新时间
    """
    id: str
    content: str = ""
    version: int = 1
    password_hash: str | None = field(default=None, repr=False)
    is_protected: bool = False
    collection: str | None = None
    tags: str = ""

    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """转换为字典（不含密码哈希）"""
        return {
            'id': self.id,
            'content': self.content,
            'version': self.version,
            'is_protected': self.is_protected,
            'collection': self.collection,
            'tags': self.tags_list,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Note':
        """从字典创建笔记实例"""
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**valid_fields)

    @property
    def tags_list(self) -> list[str]:
        """获取标签列表（逗号分隔的字符串转为列表）"""
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(',') if t.strip()]

    def set_tags(self, tags: list[str]):
        """设置标签列表（去重并保留顺序）"""
        seen: list[str] = []
        for tag in tags:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        self.tags = ','.join(seen)


@dataclass
class NoteVersion:
    """
    笔记版本快照

    以 (note_id, version_number) 为标识，内容创建后不可变。
    content_hash 仅作展示和去重提示，不能作为内容相等的依据。
    """
    note_id: str
    version_number: int
    content: str = ""
    content_hash: str = ""
    created_at: datetime | None = None

    PREVIEW_LENGTH = 100

    def to_dict(self) -> dict[str, Any]:
        return {
            'note_id': self.note_id,
            'version_number': self.version_number,
            'content': self.content,
            'content_hash': self.content_hash,
            'created_at': self.created_at,
            'stats': self.stats,
            'preview': self.preview,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'NoteVersion':
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**valid_fields)

    @property
    def stats(self) -> dict[str, int]:
        """字符数、单词数、行数"""
        return {
            'chars': len(self.content),
            'words': len(self.content.split()),
            'lines': len(self.content.split('\n')),
        }

    @property
    def preview(self) -> str:
        """内容预览（前 100 字符）"""
        if len(self.content) <= self.PREVIEW_LENGTH:
            return self.content
        return self.content[:self.PREVIEW_LENGTH] + "..."


@dataclass
class Collection:
    """笔记分组"""
    name: str
    description: str | None = None
    id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': self.created_at,
        }


@dataclass
class SaveState:
    """自动保存状态快照，供观察者使用"""
    status: SaveStatus = SaveStatus.IDLE
    saved_at: datetime | None = None
    error: str | None = None


@dataclass
class OpenResult:
    """
    打开笔记的结果

    LOCKED 状态下 content 恒为 None。
    """
    state: OpenState
    note_id: str
    content: str | None = None
    version: int | None = None
    updated_at: datetime | None = None
    created: bool = False

    @classmethod
    def redirect(cls, note_id: str) -> 'OpenResult':
        return cls(state=OpenState.REDIRECT, note_id=note_id)

    @classmethod
    def locked(cls, note_id: str) -> 'OpenResult':
        return cls(state=OpenState.LOCKED, note_id=note_id)

    @classmethod
    def ready(cls, note: Note, created: bool = False) -> 'OpenResult':
        return cls(
            state=OpenState.READY,
            note_id=note.id,
            content=note.content,
            version=note.version,
            updated_at=note.updated_at,
            created=created,
        )

    @property
    def is_locked(self) -> bool:
        return self.state == OpenState.LOCKED

    def to_dict(self) -> dict[str, Any]:
        return {
            'state': self.state.value,
            'note_id': self.note_id,
            'content': self.content,
            'version': self.version,
            'updated_at': self.updated_at,
            'created': self.created,
        }
