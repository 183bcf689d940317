"""
草稿与审核相关的 Pydantic 请求/响应模型
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


# ==================== 请求模型 ====================

class QuizQuestionDraft(BaseModel):
    """作者编辑中的测验题（审核通过时再做规范化）"""
    question: str = Field(default="", description="题干")
    options: list[str] = Field(default_factory=list, description="选项，发布时补齐为 4 个")
    correct_answer: int = Field(default=0, description="正确选项下标 0-3")
    explanation: Optional[str] = Field(default=None, description="答案解析")


class DraftUpdate(BaseModel):
    """更新草稿请求（只更新传入的字段）"""
    title: Optional[str] = Field(None, max_length=300)
    content_html: Optional[str] = None
    cover_image_url: Optional[str] = None
    tags: Optional[list[str]] = None
    custom_author: Optional[str] = Field(None, max_length=200)
    quiz_questions: Optional[list[QuizQuestionDraft]] = None


class RejectRequest(BaseModel):
    """驳回请求"""
    reason: Optional[str] = Field(default=None, description="驳回原因（原样保存）")


class FeatureRequest(BaseModel):
    """设置精选"""
    featured: bool = True


# ==================== 响应模型 ====================

class DraftResponse(BaseModel):
    """草稿响应（word_count / reading_time 每次读取时重新计算）"""
    id: str
    user_id: str
    title: str
    content_html: str
    cover_image_url: Optional[str] = None
    tags: list[str] = []
    custom_author: Optional[str] = None
    quiz_questions: list[QuizQuestionDraft] = []
    status: str
    rejection_reason: Optional[str] = None
    word_count: int = 0
    reading_time: int = 1
    created_at: datetime
    updated_at: datetime


class DraftListResponse(BaseModel):
    total: int
    items: list[DraftResponse]


class ReviewQueueItem(DraftResponse):
    """审核队列条目，附带作者信息与摘要"""
    author_name: str = "Unknown Author"
    author_avatar: Optional[str] = None
    excerpt: str = ""


class ImportResponse(BaseModel):
    """文档导入结果"""
    title: str
    content_html: str


class EditorStatsResponse(BaseModel):
    """编辑后台统计"""
    total_articles: int
    featured_articles: int
    pending_submissions: int
    published_today: int
    total_likes: int
