"""
排行榜
只收录满分成绩，按用时升序排名；排行榜是实时计算的派生视图，不落库
"""

import logging
from typing import Optional

from sqlalchemy import select

from pressroom.config import settings
from pressroom.database.connection import async_session_factory
from pressroom.models.profile import Profile
from pressroom.models.quiz import Quiz, QuizAttempt
from pressroom.schemas.quiz import LeaderboardEntry

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous"
ANONYMOUS_AVATAR = "/logo.png"


class LeaderboardRanker:
    """排行榜计算"""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or async_session_factory

    async def get_leaderboard(self, quiz_id: str, limit: Optional[int] = None) -> list[LeaderboardEntry]:
        """
        计算测验排行榜

        先按 分数降序、用时升序、插入顺序 取前 limit 条，再过滤出满分成绩，
        所以非满分成绩占据的名额不会被后面的满分成绩补上。
        """
        if limit is None:
            limit = settings.LEADERBOARD_DEFAULT_LIMIT
        async with self._session_factory() as session:
            result = await session.execute(
                select(QuizAttempt)
                .where(QuizAttempt.quiz_id == quiz_id)
                .order_by(
                    QuizAttempt.score.desc(),
                    QuizAttempt.time_spent.asc().nulls_last(),
                    QuizAttempt.id.asc(),
                )
                .limit(limit)
            )
            attempts = [
                a for a in result.scalars().all()
                if a.total_questions is not None and a.score == a.total_questions
            ]

        if not attempts:
            return []

        profiles = await self._load_profiles({a.user_id for a in attempts})
        entries = []
        for rank, attempt in enumerate(attempts, start=1):
            profile = profiles.get(attempt.user_id)
            entries.append(LeaderboardEntry(
                id=str(attempt.id),
                rank=rank,
                user_id=attempt.user_id,
                user_name=profile.name if profile and profile.name else ANONYMOUS_NAME,
                user_avatar=profile.avatar_url if profile and profile.avatar_url else ANONYMOUS_AVATAR,
                score=attempt.score,
                total_questions=attempt.total_questions,
                time_spent_seconds=attempt.time_spent,
                completed_at=attempt.created_at,
            ))
        return entries

    async def get_leaderboard_for_article(
        self, article_id: str, limit: Optional[int] = None
    ) -> list[LeaderboardEntry]:
        async with self._session_factory() as session:
            quiz_id = (await session.execute(
                select(Quiz.id).where(Quiz.article_id == article_id)
            )).scalar_one_or_none()
        if quiz_id is None:
            return []
        return await self.get_leaderboard(quiz_id, limit)

    async def _load_profiles(self, user_ids: set[str]) -> dict[str, Profile]:
        """资料查询失败时返回空映射，全部使用匿名占位"""
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(Profile).where(Profile.id.in_(user_ids)))
                return {p.id: p for p in result.scalars().all()}
        except Exception as e:
            logger.warning(f"加载排行榜用户资料失败，使用匿名占位: {e}")
            return {}


# 全局单例
leaderboard_ranker = LeaderboardRanker()
