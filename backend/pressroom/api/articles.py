"""
文章相关 API 路由
已发布文章的浏览与搜索，以及文章下的测验、排行榜、点赞、浏览计数与评论
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from pressroom.api.deps import current_user_id, optional_user_id
from pressroom.core.articles import article_service
from pressroom.core.engagement import engagement_service
from pressroom.core.leaderboard import leaderboard_ranker
from pressroom.core.quiz_recorder import quiz_recorder
from pressroom.core.quizzes import quiz_service
from pressroom.schemas.article import (
    ArticleListResponse,
    ArticleResponse,
    CommentCreateRequest,
    CommentResponse,
    LikeStateResponse,
    ViewTrackResponse,
)
from pressroom.schemas.quiz import AttemptResponse, LeaderboardEntry, QuizResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/articles", tags=["文章"])


@router.get("", response_model=ArticleListResponse, summary="已发布文章列表")
async def list_articles(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    featured: Optional[bool] = Query(None, description="只看精选"),
    author_id: Optional[str] = Query(None, description="按作者筛选"),
    tag: Optional[str] = Query(None, description="按标签筛选"),
):
    total, items = await article_service.list_published(page, page_size, featured, author_id, tag)
    return ArticleListResponse(
        total=total,
        items=[ArticleResponse.model_validate(a) for a in items],
    )


@router.get("/search", response_model=list[ArticleResponse], summary="搜索已发布文章")
async def search_articles(
    q: str = Query(..., min_length=1, description="关键词"),
    limit: int = Query(20, ge=1, le=100, description="最多返回条数"),
):
    articles = await article_service.search(q, limit)
    return [ArticleResponse.model_validate(a) for a in articles]


@router.get("/trending-tags", response_model=list[str], summary="热门标签")
async def get_trending_tags(limit: int = Query(5, ge=1, le=50, description="最多返回个数")):
    return await article_service.trending_tags(limit)


@router.delete("/comments/{comment_id}", summary="删除评论")
async def delete_comment(comment_id: str, user_id: str = Depends(current_user_id)):
    await engagement_service.delete_comment(comment_id, user_id)
    return {"message": "评论已删除", "id": comment_id}


@router.get("/{id_or_slug}", response_model=ArticleResponse, summary="文章详情（id 或 slug）")
async def get_article(id_or_slug: str):
    article = await article_service.get(id_or_slug)
    return ArticleResponse.model_validate(article)


# ==================== 测验 ====================


@router.get("/{article_id}/quiz", response_model=QuizResponse, summary="文章的测验")
async def get_article_quiz(article_id: str):
    quiz = await quiz_service.find_by_article(article_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="该文章没有测验")
    return QuizResponse.model_validate(quiz)


@router.get("/{article_id}/leaderboard", response_model=list[LeaderboardEntry], summary="测验排行榜")
async def get_article_leaderboard(
    article_id: str,
    limit: int = Query(10, ge=1, le=100, description="最多返回条数"),
):
    return await leaderboard_ranker.get_leaderboard_for_article(article_id, limit)


@router.get("/{article_id}/my-attempt", response_model=Optional[AttemptResponse], summary="我的答题成绩")
async def get_my_attempt(article_id: str, user_id: str = Depends(current_user_id)):
    attempt = await quiz_recorder.get_user_attempt(article_id, user_id)
    return attempt.to_response() if attempt else None


# ==================== 点赞 ====================


@router.get("/{article_id}/like", response_model=LikeStateResponse, summary="点赞状态")
async def get_like_state(article_id: str, user_id: str = Depends(current_user_id)):
    article = await article_service.get(article_id)
    liked = await engagement_service.has_liked(article.id, user_id)
    return LikeStateResponse(article_id=article.id, liked=liked, likes=article.likes)


@router.post("/{article_id}/like", response_model=LikeStateResponse, summary="点赞")
async def like_article(article_id: str, user_id: str = Depends(current_user_id)):
    liked, likes = await engagement_service.like(article_id, user_id)
    return LikeStateResponse(article_id=article_id, liked=liked, likes=likes)


@router.delete("/{article_id}/like", response_model=LikeStateResponse, summary="取消点赞")
async def unlike_article(article_id: str, user_id: str = Depends(current_user_id)):
    liked, likes = await engagement_service.unlike(article_id, user_id)
    return LikeStateResponse(article_id=article_id, liked=liked, likes=likes)


# ==================== 浏览 ====================


@router.post("/{article_id}/view", response_model=ViewTrackResponse, summary="记录浏览")
async def track_view(
    article_id: str,
    request: Request,
    user_id: Optional[str] = Depends(optional_user_id),
):
    ip_address = request.client.host if request.client else None
    counted, views = await engagement_service.track_view(article_id, user_id, ip_address)
    return ViewTrackResponse(article_id=article_id, counted=counted, views=views)


# ==================== 评论 ====================


@router.get("/{article_id}/comments", response_model=list[CommentResponse], summary="评论列表")
async def list_comments(article_id: str):
    comments = await engagement_service.list_comments(article_id)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post("/{article_id}/comments", response_model=CommentResponse, status_code=201, summary="发表评论")
async def add_comment(
    article_id: str,
    request: CommentCreateRequest,
    user_id: str = Depends(current_user_id),
):
    comment = await engagement_service.add_comment(article_id, user_id, request.content)
    return CommentResponse.model_validate(comment)
