"""Collection API routes."""

from typing import List

from fastapi import APIRouter, Depends

from app.core.deps import get_note_service
from app.schemas.common import ApiResponse, model_to_dict
from app.schemas.note import Collection, CollectionCreate

router = APIRouter()


@router.get("/", response_model=ApiResponse[List[Collection]])
async def list_collections(service=Depends(get_note_service)):
    """获取所有分组（按名称排序）"""
    collections = await service.list_collections()
    return ApiResponse(data=[Collection(**model_to_dict(c)) for c in collections])


@router.post("/", response_model=ApiResponse[Collection])
async def create_collection(
    request: CollectionCreate,
    service=Depends(get_note_service),
):
    """创建分组，名称重复返回 409"""
    collection = await service.create_collection(request.name, request.description)
    return ApiResponse(data=Collection(**model_to_dict(collection)), message="创建成功")
