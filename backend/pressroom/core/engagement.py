"""
读者互动：点赞、浏览、评论、关注
每个动作都会给相关用户发送通知，并在后台触发对应的徽章检查
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from pressroom.api.events import EventBus, event_bus
from pressroom.core.badges import BadgeEvaluator, badge_evaluator
from pressroom.core.errors import ForbiddenError, NotFoundError, ValidationError
from pressroom.core.notifier import Notifier, notifier as default_notifier
from pressroom.database.connection import async_session_factory
from pressroom.models.article import Article, ArticleView, Comment, Like
from pressroom.models.base import utcnow
from pressroom.models.profile import Follow, Profile

logger = logging.getLogger(__name__)

# 取不到来源地址的匿名浏览共用此键
ANONYMOUS_IP = "0.0.0.0"


class EngagementService:
    """互动服务"""

    def __init__(
        self,
        session_factory=None,
        notifier: Optional[Notifier] = None,
        badges: Optional[BadgeEvaluator] = None,
        bus: Optional[EventBus] = None,
    ):
        self._session_factory = session_factory or async_session_factory
        self._notifier = notifier or default_notifier
        self._badges = badges or badge_evaluator
        self._bus = bus or event_bus

    # ==================== 点赞 ====================

    async def like(self, article_id: str, user_id: str) -> tuple[bool, int]:
        """
        点赞（重复点赞不报错）

        Returns:
            (liked, likes): 点赞状态与文章最新点赞数
        """
        async with self._session_factory() as session:
            article = await self._get_article(session, article_id)
            try:
                async with session.begin_nested():
                    session.add(Like(article_id=article_id, user_id=user_id))
                created = True
            except IntegrityError:
                created = False
            if created:
                await session.execute(
                    update(Article).where(Article.id == article_id).values(likes=Article.likes + 1)
                )
            await session.commit()
            await session.refresh(article)
            author_id, title, likes = article.author_id, article.title, article.likes

        if created:
            logger.info(f"点赞: article_id={article_id}, user_id={user_id}, likes={likes}")
            await self._publish_likes(article_id, likes)
            if author_id != user_id:
                await self._notifier.notify_safely(
                    author_id, "like", "New Like",
                    f'Someone liked your article "{title}".', f"/article/{article_id}",
                )
            self._badges.schedule(
                self._badges.check_like_badges(author_id, likes), label=f"like_badges:{author_id}"
            )
        return True, likes

    async def unlike(self, article_id: str, user_id: str) -> tuple[bool, int]:
        async with self._session_factory() as session:
            article = await self._get_article(session, article_id)
            result = await session.execute(
                delete(Like).where(Like.article_id == article_id, Like.user_id == user_id)
            )
            removed = (result.rowcount or 0) > 0
            if removed:
                await session.execute(
                    update(Article)
                    .where(Article.id == article_id, Article.likes > 0)
                    .values(likes=Article.likes - 1)
                )
            await session.commit()
            await session.refresh(article)
            author_id, likes = article.author_id, article.likes

        if removed:
            logger.info(f"取消点赞: article_id={article_id}, user_id={user_id}, likes={likes}")
            await self._publish_likes(article_id, likes)
        return False, likes

    async def has_liked(self, article_id: str, user_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Like.id).where(Like.article_id == article_id, Like.user_id == user_id)
            )
            return result.first() is not None

    # ==================== 浏览 ====================

    async def track_view(
        self,
        article_id: str,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> tuple[bool, int]:
        """
        记录一次浏览，同一读者（登录用户按 id，匿名按 IP）每天只计一次

        Returns:
            (counted, views): 本次是否计数与文章最新浏览数
        """
        viewer_key = f"user:{user_id}" if user_id else f"ip:{ip_address or ANONYMOUS_IP}"
        async with self._session_factory() as session:
            article = await self._get_article(session, article_id)
            try:
                async with session.begin_nested():
                    session.add(ArticleView(
                        article_id=article_id,
                        user_id=user_id,
                        ip_address=ip_address,
                        viewer_key=viewer_key,
                        view_date=utcnow().date(),
                    ))
                counted = True
            except IntegrityError:
                counted = False
            if counted:
                await session.execute(
                    update(Article).where(Article.id == article_id).values(views=Article.views + 1)
                )
            await session.commit()
            await session.refresh(article)
            author_id, views = article.author_id, article.views

        if counted:
            logger.debug(f"浏览: article_id={article_id}, viewer={viewer_key}, views={views}")
            self._badges.schedule(
                self._badges.check_viral_badge(author_id, views), label=f"viral_badge:{author_id}"
            )
            if user_id:
                self._badges.schedule(
                    self._badges.check_reader_badges(user_id), label=f"reader_badges:{user_id}"
                )
        return counted, views

    # ==================== 评论 ====================

    async def add_comment(self, article_id: str, user_id: str, content: str) -> Comment:
        content = (content or "").strip()
        if not content:
            raise ValidationError("评论内容不能为空")

        async with self._session_factory() as session:
            article = await self._get_article(session, article_id)
            comment = Comment(article_id=article_id, user_id=user_id, content=content)
            session.add(comment)
            await session.commit()
            await session.refresh(comment)
            author_id, title = article.author_id, article.title

        logger.info(f"新评论: id={comment.id}, article_id={article_id}, user_id={user_id}")
        if author_id != user_id:
            await self._notifier.notify_safely(
                author_id, "comment", "New Comment",
                f'Someone commented on your article "{title}".', f"/article/{article_id}",
            )
        self._badges.schedule(
            self._badges.check_comment_badges(user_id), label=f"comment_badges:{user_id}"
        )
        return comment

    async def list_comments(self, article_id: str) -> list[Comment]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Comment)
                .where(Comment.article_id == article_id)
                .order_by(Comment.created_at.asc())
            )
            return list(result.scalars().all())

    async def delete_comment(self, comment_id: str, user_id: str) -> None:
        async with self._session_factory() as session:
            comment = await session.get(Comment, comment_id)
            if comment is None:
                raise NotFoundError("评论不存在", comment_id=comment_id)
            if comment.user_id != user_id:
                raise ForbiddenError("只能删除自己的评论")
            await session.delete(comment)
            await session.commit()
        logger.info(f"删除评论: id={comment_id}")

    # ==================== 关注 ====================

    async def follow(self, follower_id: str, followee_id: str) -> bool:
        if follower_id == followee_id:
            raise ValidationError("不能关注自己")

        async with self._session_factory() as session:
            try:
                async with session.begin_nested():
                    session.add(Follow(follower_id=follower_id, followee_id=followee_id))
                created = True
            except IntegrityError:
                created = False
            await session.commit()

        if created:
            logger.info(f"关注: {follower_id} -> {followee_id}")
            name = await self._display_name(follower_id)
            await self._notifier.notify_safely(
                followee_id, "follow", "New Follower",
                f"{name} started following you.", f"/profile/{follower_id}",
            )
            count = await self.follower_count(followee_id)
            self._badges.schedule(
                self._badges.check_follower_badges(followee_id, count),
                label=f"follower_badges:{followee_id}",
            )
        return True

    async def unfollow(self, follower_id: str, followee_id: str) -> bool:
        async with self._session_factory() as session:
            await session.execute(
                delete(Follow).where(
                    Follow.follower_id == follower_id, Follow.followee_id == followee_id
                )
            )
            await session.commit()
        logger.info(f"取消关注: {follower_id} -> {followee_id}")
        return False

    async def is_following(self, follower_id: str, followee_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Follow.id).where(
                    Follow.follower_id == follower_id, Follow.followee_id == followee_id
                )
            )
            return result.first() is not None

    async def follower_count(self, user_id: str) -> int:
        async with self._session_factory() as session:
            return (await session.execute(
                select(func.count(Follow.id)).where(Follow.followee_id == user_id)
            )).scalar() or 0

    # ==================== 内部方法 ====================

    async def _get_article(self, session, article_id: str) -> Article:
        article = await session.get(Article, article_id)
        if article is None:
            raise NotFoundError("文章不存在", article_id=article_id)
        return article

    async def _display_name(self, user_id: str) -> str:
        async with self._session_factory() as session:
            profile = await session.get(Profile, user_id)
        return profile.name if profile and profile.name else "Someone"

    async def _publish_likes(self, article_id: str, likes: int) -> None:
        try:
            await self._bus.publish("like_changed", {"article_id": article_id, "likes": likes})
        except Exception as e:
            logger.warning(f"点赞事件推送失败（已忽略）: {e}")


# 全局单例
engagement_service = EngagementService()
