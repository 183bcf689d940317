"""
测验模型
每篇文章最多一个测验；每个用户对每个测验最多一条答题记录
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pressroom.models.base import Base, new_uuid, utcnow


class Quiz(Base):
    """测验表"""
    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    # 所属文章（唯一）
    article_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("articles.id"), nullable=False, unique=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="Article Quiz")
    # 规范化后的题目 JSON：[{question, options[4], correct_answer, explanation}]
    questions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class QuizAttempt(Base):
    """答题记录表"""
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("quiz_id", "user_id", name="uq_quiz_attempts_quiz_user"),
    )

    # 自增 id 同时代表插入顺序（排行榜同分同用时的排序依据）
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quiz_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quizzes.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    # 精简写入时可能缺失
    total_questions: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)
    # 用时（秒）
    time_spent: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
