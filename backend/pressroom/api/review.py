"""
编辑审核 API 路由
审核队列、通过/驳回、精选与后台统计（仅编辑/管理员）
"""

import logging

from fastapi import APIRouter, Depends, Query

from pressroom.api.deps import require_editor
from pressroom.core.draft_repository import draft_repository
from pressroom.core.review_gate import review_gate
from pressroom.schemas.article import ArticleResponse
from pressroom.schemas.draft import (
    DraftResponse,
    EditorStatsResponse,
    FeatureRequest,
    RejectRequest,
    ReviewQueueItem,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/review", tags=["编辑审核"], dependencies=[Depends(require_editor)])


@router.get("/queue", response_model=list[ReviewQueueItem], summary="审核队列")
async def review_queue(
    status: list[str] = Query(["submitted"], description="按状态筛选，可多选"),
):
    return await draft_repository.list_for_review(status)


@router.get("/stats", response_model=EditorStatsResponse, summary="编辑后台统计")
async def editor_stats():
    return await review_gate.editor_stats()


@router.post("/{draft_id}/approve", response_model=ArticleResponse, summary="审核通过并发布")
async def approve_draft(draft_id: str):
    article = await review_gate.approve(draft_id)
    return ArticleResponse.model_validate(article)


@router.post("/{draft_id}/reject", response_model=DraftResponse, summary="驳回")
async def reject_draft(draft_id: str, request: RejectRequest):
    return await review_gate.reject(draft_id, request.reason)


@router.put("/articles/{article_id}/featured", response_model=ArticleResponse, summary="设置精选")
async def set_featured(article_id: str, request: FeatureRequest):
    article = await review_gate.set_featured(article_id, request.featured)
    return ArticleResponse.model_validate(article)
