"""Note API routes.

提供笔记的打开、保存、版本和密码接口。

支持:
- 新标识符分配与打开即创建
- 正文保存（立即写入，不生成版本）
- 版本快照、列表、查看与恢复
- 密码设置、解锁与移除
- 分组与标签

受保护笔记的读取和变更都需要 X-Note-Password 请求头。
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Path, Query

from app.core.deps import NotePassword, get_note_service
from app.schemas.common import ApiResponse, model_to_dict
from app.schemas.note import (
    ContentSaved,
    ContentUpdate,
    MetadataUpdate,
    NoteId,
    NoteMetadata,
    NoteOpen,
    PasswordSet,
    RestoreResult,
    UnlockRequest,
    VersionCreate,
    VersionCreated,
    VersionDetail,
    VersionSummary,
)

router = APIRouter()

NoteIdPath = Annotated[str, Path(description="笔记标识符", min_length=1, max_length=64)]


@router.post("/", response_model=ApiResponse[NoteId])
async def create_note_id(service=Depends(get_note_service)):
    """
    分配新笔记标识符

    只生成标识符，不写入存储；客户端随后以该标识符打开笔记。
    """
    return ApiResponse(data=NoteId(note_id=service.new_note_id()))


@router.get("/{note_id}", response_model=ApiResponse[NoteOpen])
async def open_note(
    password: NotePassword,
    note_id: NoteIdPath,
    service=Depends(get_note_service),
):
    """
    打开笔记

    不存在时创建空笔记；受保护且未提供正确密码时返回 locked，不含内容。
    """
    result = await service.open_note(note_id, password=password)
    return ApiResponse(data=NoteOpen(**model_to_dict(result)))


@router.post("/{note_id}/unlock", response_model=ApiResponse[NoteOpen])
async def unlock_note(
    request: UnlockRequest,
    note_id: NoteIdPath,
    service=Depends(get_note_service),
):
    """校验密码并返回内容，密码错误返回 403"""
    result = await service.unlock_note(note_id, request.password)
    return ApiResponse(data=NoteOpen(**model_to_dict(result)))


@router.put("/{note_id}/content", response_model=ApiResponse[ContentSaved])
async def save_content(
    request: ContentUpdate,
    password: NotePassword,
    note_id: NoteIdPath,
    service=Depends(get_note_service),
):
    """保存正文"""
    saved_at = await service.save_content(note_id, request.content, password=password)
    return ApiResponse(data=ContentSaved(note_id=note_id, saved_at=saved_at))


# ==================== 版本 ====================

@router.get("/{note_id}/versions", response_model=ApiResponse[List[VersionSummary]])
async def list_versions(
    password: NotePassword,
    note_id: NoteIdPath,
    limit: int = Query(50, ge=1, le=500),
    service=Depends(get_note_service),
):
    """版本列表（按版本号降序）"""
    versions = await service.list_versions(note_id, password=password, limit=limit)
    items = [VersionSummary(**model_to_dict(v)) for v in versions]
    return ApiResponse(data=items)


@router.post("/{note_id}/versions", response_model=ApiResponse[VersionCreated])
async def create_version(
    password: NotePassword,
    note_id: NoteIdPath,
    request: Optional[VersionCreate] = None,
    service=Depends(get_note_service),
):
    """创建版本快照"""
    content = request.content if request else None
    number = await service.create_version(note_id, content=content, password=password)
    return ApiResponse(
        data=VersionCreated(note_id=note_id, version_number=number),
        message=f"已保存版本 {number}",
    )


@router.get("/{note_id}/versions/{version_number}", response_model=ApiResponse[VersionDetail])
async def get_version(
    password: NotePassword,
    note_id: NoteIdPath,
    version_number: int = Path(..., ge=1, description="版本号"),
    service=Depends(get_note_service),
):
    """获取版本详情"""
    version = await service.get_version(note_id, version_number, password=password)
    return ApiResponse(data=VersionDetail(**model_to_dict(version)))


@router.post(
    "/{note_id}/versions/{version_number}/restore",
    response_model=ApiResponse[RestoreResult],
)
async def restore_version(
    password: NotePassword,
    note_id: NoteIdPath,
    version_number: int = Path(..., ge=1, description="版本号"),
    service=Depends(get_note_service),
):
    """恢复历史版本为当前正文（不生成新版本）"""
    content = await service.restore_version(note_id, version_number, password=password)
    return ApiResponse(
        data=RestoreResult(note_id=note_id, version_number=version_number, content=content),
        message=f"已恢复到版本 {version_number}",
    )


# ==================== 密码 ====================

@router.put("/{note_id}/password", response_model=ApiResponse[None])
async def set_password(
    request: PasswordSet,
    password: NotePassword,
    note_id: NoteIdPath,
    service=Depends(get_note_service),
):
    """
    设置或更换密码

    已受保护的笔记需在请求头中提供当前密码。
    """
    await service.set_password(
        note_id,
        request.password,
        confirm_password=request.confirm_password,
        current_password=password,
    )
    return ApiResponse(message="密码已设置")


@router.delete("/{note_id}/password", response_model=ApiResponse[None])
async def remove_password(
    password: NotePassword,
    note_id: NoteIdPath,
    service=Depends(get_note_service),
):
    """移除密码"""
    await service.remove_password(note_id, password=password)
    return ApiResponse(message="密码已移除")


# ==================== 元数据 ====================

@router.put("/{note_id}/metadata", response_model=ApiResponse[NoteMetadata])
async def update_metadata(
    request: MetadataUpdate,
    password: NotePassword,
    note_id: NoteIdPath,
    service=Depends(get_note_service),
):
    """更新分组和标签"""
    note = await service.update_metadata(
        note_id,
        collection=request.collection,
        tags=request.tags,
        password=password,
    )
    return ApiResponse(
        data=NoteMetadata(note_id=note.id, collection=note.collection, tags=note.tags_list)
    )
