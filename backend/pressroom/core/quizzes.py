"""
测验题规范化与测验查询
"""

import logging
from typing import Any, Optional

from sqlalchemy import select

from pressroom.config import settings
from pressroom.core.errors import NotFoundError
from pressroom.database.connection import async_session_factory
from pressroom.models.quiz import Quiz

logger = logging.getLogger(__name__)

OPTIONS_PER_QUESTION = 4
PLACEHOLDER_OPTION = "N/A"


def _field(raw: Any, *names: str, default=None):
    """同时兼容 dict（snake_case / camelCase）和带属性的对象"""
    for name in names:
        if isinstance(raw, dict):
            if name in raw:
                return raw[name]
        elif hasattr(raw, name):
            return getattr(raw, name)
    return default


def normalize_question(raw: Any, max_option_words: Optional[int] = None) -> dict:
    """
    规范化单个题目：恰好 4 个选项（不足补 N/A），正确答案下标限制在 0-3

    Args:
        raw: 题目（dict 或 QuizQuestionDraft）
        max_option_words: 每个选项最多保留的单词数，None 表示不限制
    """
    options = _field(raw, "options", default=[]) or []
    if not isinstance(options, list):
        options = []
    options = [str(o if o is not None else "").strip() for o in options[:OPTIONS_PER_QUESTION]]
    if max_option_words:
        options = [" ".join(o.split()[:max_option_words]) for o in options]
    options = [o or PLACEHOLDER_OPTION for o in options]
    options += [PLACEHOLDER_OPTION] * (OPTIONS_PER_QUESTION - len(options))

    correct = _field(raw, "correct_answer", "correctAnswer", default=0)
    if isinstance(correct, bool) or not isinstance(correct, int):
        correct = 0
    if correct < 0 or correct >= OPTIONS_PER_QUESTION:
        correct = 0

    explanation = _field(raw, "explanation")
    return {
        "question": str(_field(raw, "question", default="") or "").strip(),
        "options": options,
        "correct_answer": correct,
        "explanation": str(explanation).strip() if explanation else None,
    }


def normalize_questions(
    raw_questions: Any,
    limit: Optional[int] = None,
    drop_blank: bool = False,
    max_option_words: Optional[int] = None,
) -> list[dict]:
    """规范化题目列表，最多保留 limit 题（默认 QUIZ_MAX_QUESTIONS）"""
    if not isinstance(raw_questions, list):
        return []
    if limit is None:
        limit = settings.QUIZ_MAX_QUESTIONS
    normalized = [
        normalize_question(q, max_option_words=max_option_words)
        for q in raw_questions[:limit]
    ]
    if drop_blank:
        normalized = [q for q in normalized if q["question"]]
    return normalized


class QuizService:
    """测验查询"""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or async_session_factory

    async def get_quiz(self, quiz_id: str) -> Quiz:
        async with self._session_factory() as session:
            quiz = await session.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("测验不存在", quiz_id=quiz_id)
        return quiz

    async def find_by_article(self, article_id: str) -> Optional[Quiz]:
        async with self._session_factory() as session:
            result = await session.execute(select(Quiz).where(Quiz.article_id == article_id))
            return result.scalar_one_or_none()


# 全局单例
quiz_service = QuizService()
