"""
测验、答题记录、排行榜以及 AI 远程函数的 Pydantic 模型
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class QuizQuestion(BaseModel):
    """规范化后的测验题"""
    question: str
    options: list[str]
    correct_answer: int = Field(..., ge=0, le=3)
    explanation: Optional[str] = None


class QuizResponse(BaseModel):
    id: str
    article_id: str
    title: str
    questions: list[QuizQuestion]

    model_config = {"from_attributes": True}


class AttemptSubmitRequest(BaseModel):
    """提交答题结果"""
    score: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=1, le=10)
    time_spent_seconds: int = Field(default=0, ge=0)


class AttemptResponse(BaseModel):
    """
    答题记录响应

    降级（未持久化）的结果与正常结果形状一致，调用方无法从响应中区分
    """
    id: str
    quiz_id: str
    user_id: str
    score: int
    total_questions: Optional[int] = None
    time_spent_seconds: Optional[int] = None
    completed_at: datetime


class LeaderboardEntry(BaseModel):
    """排行榜条目（派生视图，不持久化）"""
    id: str
    rank: int
    user_id: str
    user_name: str
    user_avatar: str
    score: int
    total_questions: int
    time_spent_seconds: Optional[int] = None
    completed_at: datetime


# ==================== AI 远程函数 ====================

class GenerateQuizRequest(BaseModel):
    html: str = Field(..., min_length=1)
    num_questions: int = Field(default=5, ge=1, le=10)


class OrganizeContentRequest(BaseModel):
    html: str = Field(..., min_length=1)
    user_prompt: Optional[str] = Field(default=None, max_length=1000)


class OrganizeContentResponse(BaseModel):
    rewritten_html: str
    suggested_tags: list[str] = []
