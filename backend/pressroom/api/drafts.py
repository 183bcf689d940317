"""
草稿相关 API 路由
作者的草稿增删改查、自动保存、文档导入与提交审核
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from pressroom.api.deps import current_user_id
from pressroom.core.autosave import autosave_buffer
from pressroom.core.draft_repository import draft_repository
from pressroom.core.errors import ForbiddenError
from pressroom.core.review_gate import review_gate
from pressroom.schemas.draft import (
    DraftListResponse,
    DraftResponse,
    DraftUpdate,
    ImportResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/drafts", tags=["草稿管理"])

# 导入文档大小上限（字节）
MAX_IMPORT_BYTES = 2 * 1024 * 1024


@router.post("", response_model=DraftResponse, status_code=201, summary="新建草稿")
async def create_draft(
    request: Optional[DraftUpdate] = None,
    user_id: str = Depends(current_user_id),
):
    return await draft_repository.create(user_id, request)


@router.get("", response_model=DraftListResponse, summary="我的草稿列表")
async def list_my_drafts(user_id: str = Depends(current_user_id)):
    items = await draft_repository.list_for_user(user_id)
    return DraftListResponse(total=len(items), items=items)


@router.post("/import", response_model=ImportResponse, summary="导入文本/Markdown 文档")
async def import_document(
    file: UploadFile = File(...),
    user_id: str = Depends(current_user_id),
):
    """把 .txt / .md 文档转换为草稿标题与正文（不直接保存）"""
    raw = await file.read()
    if len(raw) > MAX_IMPORT_BYTES:
        raise HTTPException(status_code=413, detail="文件过大（最大 2MB）")
    text = raw.decode("utf-8", errors="replace")
    title, content_html = draft_repository.import_document(file.filename or "Untitled", text)
    logger.info(f"导入文档: user_id={user_id}, filename={file.filename}, size={len(raw)}")
    return ImportResponse(title=title, content_html=content_html)


@router.get("/{draft_id}", response_model=DraftResponse, summary="获取草稿详情")
async def get_draft(draft_id: str, user_id: str = Depends(current_user_id)):
    draft = await draft_repository.get(draft_id)
    if draft.user_id != user_id:
        raise ForbiddenError("只能查看自己的草稿")
    return draft


@router.put("/{draft_id}", response_model=DraftResponse, summary="保存草稿")
async def save_draft(
    draft_id: str,
    request: DraftUpdate,
    user_id: str = Depends(current_user_id),
):
    """显式保存，同时丢弃该草稿尚未写入的自动保存内容"""
    autosave_buffer.discard(draft_id)
    return await draft_repository.save(draft_id, user_id, request)


@router.post("/{draft_id}/autosave", status_code=202, summary="暂存自动保存内容")
async def autosave_draft(
    draft_id: str,
    request: DraftUpdate,
    user_id: str = Depends(current_user_id),
):
    autosave_buffer.stage(draft_id, user_id, request)
    return {"status": "staged", "draft_id": draft_id}


@router.post("/{draft_id}/submit", response_model=DraftResponse, summary="提交审核")
async def submit_draft(draft_id: str, user_id: str = Depends(current_user_id)):
    autosave_buffer.discard(draft_id)
    return await review_gate.submit(draft_id, user_id)


@router.delete("/{draft_id}", summary="删除草稿")
async def delete_draft(draft_id: str, user_id: str = Depends(current_user_id)):
    """已发布的草稿会连同文章、测验、点赞、评论一起删除"""
    autosave_buffer.discard(draft_id)
    await review_gate.delete(draft_id, user_id)
    return {"message": "草稿已删除", "id": draft_id}
