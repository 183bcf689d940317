"""
文章与互动（点赞/浏览/评论/关注）相关的 Pydantic 模型
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ArticleResponse(BaseModel):
    """文章响应"""
    id: str
    title: str
    slug: str
    excerpt: str
    content_html: str
    cover_image_url: Optional[str] = None
    tags: list[str] | None = None
    author_id: str
    custom_author: Optional[str] = None
    status: str
    featured: bool = False
    likes: int = 0
    views: int = 0
    published_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ArticleListResponse(BaseModel):
    """文章列表响应"""
    total: int
    items: list[ArticleResponse]


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    id: str
    article_id: str
    user_id: str
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LikeStateResponse(BaseModel):
    """点赞状态"""
    article_id: str
    liked: bool
    likes: int


class FollowStateResponse(BaseModel):
    """关注状态"""
    followee_id: str
    following: bool


class ViewTrackResponse(BaseModel):
    """浏览计数结果"""
    article_id: str
    counted: bool
    views: int
