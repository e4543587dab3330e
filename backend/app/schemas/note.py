"""Note-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field


class OpenState(str, Enum):
    """打开笔记的结果状态"""

    REDIRECT = "redirect"  # 未提供标识符，需跳转到新标识符
    LOCKED = "locked"      # 受密码保护且未解锁
    READY = "ready"        # 内容可用


class NoteId(BaseModel):
    """New note identifier."""

    note_id: str = Field(..., description="笔记标识符")


class NoteOpen(BaseModel):
    """Open note result. LOCKED 状态下不包含内容。"""

    state: OpenState
    note_id: str
    content: Optional[str] = Field(None, description="当前正文")
    version: Optional[int] = Field(None, description="当前版本号")
    updated_at: Optional[datetime] = None
    created: bool = Field(False, description="本次请求是否创建了笔记")


class UnlockRequest(BaseModel):
    """Unlock request."""

    password: str = Field(..., description="笔记密码")


class ContentUpdate(BaseModel):
    """Content save request."""

    content: str = Field("", description="笔记正文（纯文本）")


class ContentSaved(BaseModel):
    """Content save result."""

    note_id: str
    saved_at: datetime


class VersionCreate(BaseModel):
    """Version snapshot request."""

    content: Optional[str] = Field(None, description="快照内容，缺省时使用当前已保存正文")


class VersionCreated(BaseModel):
    """Version snapshot result."""

    note_id: str
    version_number: int


class VersionStats(BaseModel):
    """Version content statistics."""

    chars: int = 0
    words: int = 0
    lines: int = 0


class VersionSummary(BaseModel):
    """Version list item."""

    note_id: str
    version_number: int
    content_hash: str = Field("", description="内容指纹（SHA-256，仅作展示）")
    created_at: Optional[datetime] = None
    preview: str = ""
    stats: VersionStats = Field(default_factory=VersionStats)


class VersionDetail(VersionSummary):
    """Complete version including content."""

    content: str = ""


class RestoreResult(BaseModel):
    """Version restore result."""

    note_id: str
    version_number: int
    content: str


class PasswordSet(BaseModel):
    """Password set request. 规则校验由服务层完成。"""

    password: str
    confirm_password: Optional[str] = None


class MetadataUpdate(BaseModel):
    """Note metadata update request."""

    collection: Optional[str] = Field(None, description="分组名，空值表示移出分组")
    tags: List[str] = Field(default_factory=list, description="标签列表")


class NoteMetadata(BaseModel):
    """Note metadata."""

    note_id: str
    collection: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class CollectionCreate(BaseModel):
    """Collection create request."""

    name: str = Field(..., min_length=1, max_length=100, description="分组名称")
    description: str = Field("", description="分组描述")


class Collection(BaseModel):
    """Collection model for API responses."""

    id: Optional[int] = None
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
