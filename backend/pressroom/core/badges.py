"""
徽章评估器
根据写作、互动、测验排名等触发条件给用户颁发徽章，并发送 badge_earned 通知。

所有检查都是"发出即忘"：通过 schedule() 投递到事件循环后台执行，
任何异常都只记录日志，绝不影响触发它的主流程（例如答题提交）。
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Optional

from sqlalchemy import func, select

from pressroom.config import settings
from pressroom.core.notifier import Notifier, notifier as default_notifier
from pressroom.database.connection import async_session_factory
from pressroom.models.article import Article, ArticleView, Comment
from pressroom.models.profile import Profile
from pressroom.models.quiz import QuizAttempt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    # writer / reader / community / quality / quiz
    category: str


BADGES: list[Badge] = [
    # 写作
    Badge("first_ink", "First Ink", "Published your first article", "writer"),
    Badge("scribe", "Scribe", "Published 5 articles", "writer"),
    Badge("wordsmith", "Wordsmith", "Published 10 articles", "writer"),
    # 读者互动
    Badge("observer", "Observer", "Read 10 different articles", "reader"),
    Badge("conversation_starter", "Conversation Starter", "Posted your first comment", "reader"),
    Badge("debater", "Debater", "Posted 50 comments", "reader"),
    # 社区
    Badge("rising_star", "Rising Star", "Reached 10 followers", "community"),
    Badge("influencer", "Influencer", "Reached 100 followers", "community"),
    Badge("thought_leader", "Thought Leader", "Reached 1,000 followers", "community"),
    # 质量
    Badge("viral_hit", "Viral Hit", "One of your articles reached 1,000 views", "quality"),
    Badge("crowd_favorite", "Crowd Favorite", "One of your articles reached 100 likes", "quality"),
    Badge("editors_choice", "Editor's Choice", "Had an article featured by editors", "quality"),
    # 测验
    Badge("quiz_whiz", "Quiz Whiz", "Attempted 10 quizzes", "quiz"),
    Badge("leaderboard_legend", "Leaderboard Legend", "Reached top 10 on a quiz leaderboard", "quiz"),
    Badge("top_scorer", "Top Scorer", "Ranked #1 on a quiz leaderboard", "quiz"),
]

BADGES_BY_ID: dict[str, Badge] = {b.id: b for b in BADGES}


def get_badge(badge_id: str) -> Optional[Badge]:
    return BADGES_BY_ID.get(badge_id)


class BadgeEvaluator:
    """徽章评估器"""

    def __init__(self, session_factory=None, notifier: Optional[Notifier] = None):
        self._session_factory = session_factory or async_session_factory
        self._notifier = notifier or default_notifier
        self._pending: set[asyncio.Task] = set()

    # ==================== 后台调度 ====================

    def schedule(self, coro: Awaitable, label: str = "badge_check") -> asyncio.Task:
        """把一次徽章检查投递到后台执行，调用方无需等待"""
        task = asyncio.create_task(self._run_quietly(coro, label))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run_quietly(self, coro: Awaitable, label: str) -> None:
        try:
            await coro
        except Exception as e:
            logger.warning(f"徽章检查失败（已忽略）: {label}: {e}")

    async def wait_idle(self) -> None:
        """等待所有后台检查完成（测试与关闭时使用）"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ==================== 颁发 ====================

    async def award_badge(self, user_id: str, badge_id: str) -> bool:
        """
        颁发徽章（已拥有则跳过）

        Returns:
            bool: 本次是否新颁发
        """
        badge = get_badge(badge_id)
        if badge is None:
            raise ValueError(f"未知徽章: {badge_id}")

        async with self._session_factory() as session:
            profile = await session.get(Profile, user_id)
            if profile is None:
                logger.info(f"用户资料不存在，跳过徽章: user_id={user_id}, badge={badge_id}")
                return False
            current = list(profile.badges or [])
            if badge_id in current:
                return False
            profile.badges = current + [badge_id]
            await session.commit()

        logger.info(f"颁发徽章: user_id={user_id}, badge={badge_id}")
        await self._notifier.notify_safely(
            user_id,
            "badge_earned",
            "New Badge Earned!",
            f'You earned the "{badge.name}" badge: {badge.description}',
            f"/profile/{user_id}",
        )
        return True

    # ==================== 触发条件 ====================

    async def check_quiz_badges(self, user_id: str, rank: Optional[int] = None) -> list[str]:
        """
        测验徽章：累计答题 10 次；满分排名进入前 N；排名第一

        Args:
            user_id: 用户 ID
            rank: 满分成绩的暂定排名；非满分成绩传 None
        """
        awarded = []
        async with self._session_factory() as session:
            count = (await session.execute(
                select(func.count(QuizAttempt.id)).where(QuizAttempt.user_id == user_id)
            )).scalar() or 0

        if count >= 10 and await self.award_badge(user_id, "quiz_whiz"):
            awarded.append("quiz_whiz")

        if rank is not None:
            if rank <= settings.LEADERBOARD_BADGE_THRESHOLD and await self.award_badge(
                user_id, "leaderboard_legend"
            ):
                awarded.append("leaderboard_legend")
            if rank == 1 and await self.award_badge(user_id, "top_scorer"):
                awarded.append("top_scorer")
        return awarded

    async def check_article_badges(self, user_id: str, article_count: Optional[int] = None) -> list[str]:
        """写作徽章：发布 1 / 5 / 10 篇"""
        if article_count is None:
            async with self._session_factory() as session:
                article_count = (await session.execute(
                    select(func.count(Article.id)).where(
                        Article.author_id == user_id,
                        Article.status == "published",
                    )
                )).scalar() or 0
        return await self._award_thresholds(
            user_id, article_count, [(1, "first_ink"), (5, "scribe"), (10, "wordsmith")]
        )

    async def check_follower_badges(self, user_id: str, follower_count: int) -> list[str]:
        return await self._award_thresholds(
            user_id,
            follower_count,
            [(10, "rising_star"), (100, "influencer"), (1000, "thought_leader")],
        )

    async def check_comment_badges(self, user_id: str) -> list[str]:
        async with self._session_factory() as session:
            count = (await session.execute(
                select(func.count(Comment.id)).where(Comment.user_id == user_id)
            )).scalar() or 0
        return await self._award_thresholds(
            user_id, count, [(1, "conversation_starter"), (50, "debater")]
        )

    async def check_like_badges(self, author_id: str, article_likes: int) -> list[str]:
        return await self._award_thresholds(author_id, article_likes, [(100, "crowd_favorite")])

    async def check_viral_badge(self, author_id: str, article_views: int) -> list[str]:
        return await self._award_thresholds(author_id, article_views, [(1000, "viral_hit")])

    async def check_reader_badges(self, user_id: str) -> list[str]:
        """读者徽章：浏览过 10 篇不同的文章"""
        async with self._session_factory() as session:
            count = (await session.execute(
                select(func.count(func.distinct(ArticleView.article_id))).where(
                    ArticleView.user_id == user_id
                )
            )).scalar() or 0
        return await self._award_thresholds(user_id, count, [(10, "observer")])

    async def _award_thresholds(
        self, user_id: str, value: int, thresholds: list[tuple[int, str]]
    ) -> list[str]:
        awarded = []
        for threshold, badge_id in thresholds:
            if value >= threshold and await self.award_badge(user_id, badge_id):
                awarded.append(badge_id)
        return awarded


# 全局单例
badge_evaluator = BadgeEvaluator()
