"""
审核关卡
草稿状态机：draft -> submitted -> published / rejected，rejected 可重新提交

审核通过在一个数据库事务内完成：写文章 -> 写测验（SAVEPOINT 内） -> 草稿置为 published。
测验写入失败只回滚该 SAVEPOINT，不影响发布；文章写入失败则整个事务回滚，草稿保持原状。
"""

import logging
from datetime import datetime, time, timezone
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from pressroom.api.events import EventBus, event_bus
from pressroom.config import settings
from pressroom.core.badges import BadgeEvaluator, badge_evaluator
from pressroom.core.draft_repository import to_view
from pressroom.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    TransientStorageError,
    ValidationError,
)
from pressroom.core.notifier import Notifier, notifier as default_notifier
from pressroom.core.quizzes import normalize_questions
from pressroom.core.text_metrics import has_visible_content, make_excerpt, slugify
from pressroom.database.connection import async_session_factory
from pressroom.models.article import Article, ArticleView, Comment, Like
from pressroom.models.base import utcnow
from pressroom.models.draft import Draft
from pressroom.models.quiz import Quiz, QuizAttempt
from pressroom.schemas.draft import DraftResponse, EditorStatsResponse

logger = logging.getLogger(__name__)


class ReviewGate:
    """审核关卡服务"""

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

    # ==================== 状态迁移 ====================

    async def submit(self, draft_id: str, user_id: str) -> DraftResponse:
        """作者提交审核（draft / rejected -> submitted）"""
        async with self._session_factory() as session:
            draft = await self._load(session, draft_id)
            if draft.user_id != user_id:
                raise ForbiddenError("只能提交自己的草稿")
            if draft.status not in ("draft", "rejected"):
                raise InvalidTransitionError(f"状态为 {draft.status} 的草稿不能提交审核")
            if not (draft.title or "").strip():
                raise ValidationError("提交前请填写标题")
            if not has_visible_content(draft.content_html):
                raise ValidationError("提交前请填写正文")

            draft.status = "submitted"
            draft.rejection_reason = None
            await session.commit()
            await session.refresh(draft)

        logger.info(f"草稿已提交审核: id={draft_id}")
        return to_view(draft)

    async def approve(self, draft_id: str) -> Article:
        """
        审核通过并发布

        Raises:
            NotFoundError: 草稿不存在
            InvalidTransitionError: 草稿不是 submitted 状态
            ValidationError: 标题为空（不做任何写入）
            TransientStorageError: 文章写入失败（草稿保持 submitted）
        """
        async with self._session_factory() as session:
            draft = await self._load(session, draft_id)
            if draft.status != "submitted":
                raise InvalidTransitionError(f"状态为 {draft.status} 的草稿不能审核通过")
            title = (draft.title or "").strip()
            if not title:
                raise ValidationError("标题为空，无法发布")

            now = utcnow()
            article = Article(
                id=draft.id,
                title=title,
                slug=await self._unique_slug(session, title, draft.id),
                excerpt=make_excerpt(draft.content_html or "", settings.EXCERPT_LENGTH),
                content_html=draft.content_html or "",
                cover_image_url=draft.cover_image_url,
                tags=list(draft.tags or []),
                author_id=draft.user_id,
                custom_author=draft.custom_author,
                status="published",
                featured=False,
                likes=0,
                published_at=now,
            )
            session.add(article)
            try:
                await session.flush()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"发布文章失败: draft_id={draft_id}, {e}")
                raise TransientStorageError("文章写入失败，请稍后重试", draft_id=draft_id) from e

            quiz_count = await self._create_quiz(session, article.id, draft.quiz_questions)

            draft.status = "published"
            draft.rejection_reason = None
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"审核通过提交事务失败: draft_id={draft_id}, {e}")
                raise TransientStorageError("发布失败，请稍后重试", draft_id=draft_id) from e
            # SAVEPOINT 回滚可能使对象过期，异步会话中不能惰性加载
            await session.refresh(article)

        logger.info(
            f"审核通过: id={draft_id}, slug={article.slug}, quiz_questions={quiz_count}"
        )
        await self._after_publish(article)
        return article

    async def reject(self, draft_id: str, reason: Optional[str] = None) -> DraftResponse:
        """驳回（submitted -> rejected），原因原样保存"""
        async with self._session_factory() as session:
            draft = await self._load(session, draft_id)
            if draft.status != "submitted":
                raise InvalidTransitionError(f"状态为 {draft.status} 的草稿不能驳回")
            draft.status = "rejected"
            draft.rejection_reason = reason
            await session.commit()
            await session.refresh(draft)

        logger.info(f"草稿已驳回: id={draft_id}, reason={reason!r}")
        title = draft.title or "Untitled"
        message = f'"{title}" was not approved.'
        if reason:
            message += f" Reason: {reason}"
        await self._notifier.notify_safely(
            draft.user_id, "article_rejected", "Article Needs Changes", message,
            f"/drafts/{draft_id}",
        )
        return to_view(draft)

    # ==================== 编辑后台 ====================

    async def editor_stats(self) -> EditorStatsResponse:
        today = datetime.combine(utcnow().date(), time.min, tzinfo=timezone.utc)
        async with self._session_factory() as session:
            published = Article.status == "published"
            total = (await session.execute(
                select(func.count(Article.id)).where(published)
            )).scalar() or 0
            featured = (await session.execute(
                select(func.count(Article.id)).where(published, Article.featured.is_(True))
            )).scalar() or 0
            pending = (await session.execute(
                select(func.count(Draft.id)).where(Draft.status == "submitted")
            )).scalar() or 0
            today_count = (await session.execute(
                select(func.count(Article.id)).where(published, Article.published_at >= today)
            )).scalar() or 0
            likes = (await session.execute(
                select(func.coalesce(func.sum(Article.likes), 0)).where(published)
            )).scalar() or 0

        return EditorStatsResponse(
            total_articles=total,
            featured_articles=featured,
            pending_submissions=pending,
            published_today=today_count,
            total_likes=likes,
        )

    async def set_featured(self, article_id: str, featured: bool = True) -> Article:
        """设置/取消精选；首次精选给作者颁发 editors_choice 徽章"""
        async with self._session_factory() as session:
            article = await session.get(Article, article_id)
            if article is None:
                raise NotFoundError("文章不存在", article_id=article_id)
            newly_featured = featured and not article.featured
            article.featured = featured
            await session.commit()
            await session.refresh(article)

        logger.info(f"设置精选: article_id={article_id}, featured={featured}")
        if newly_featured:
            self._badges.schedule(
                self._badges.award_badge(article.author_id, "editors_choice"),
                label=f"editors_choice:{article.author_id}",
            )
        return article

    # ==================== 删除 ====================

    async def delete(self, draft_id: str, user_id: str) -> None:
        """作者删除草稿；已发布的草稿连同文章及其附属数据一起删除"""
        async with self._session_factory() as session:
            draft = await self._load(session, draft_id)
            owner, status, title = draft.user_id, draft.status, draft.title
        if owner != user_id:
            raise ForbiddenError("只能删除自己的草稿")

        if status == "published":
            await self.delete_draft_and_article(draft_id, user_id, title)
        else:
            await self.delete_draft(draft_id)

    async def delete_draft(self, draft_id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(Draft).where(Draft.id == draft_id))
            await session.commit()
        logger.info(f"删除草稿: id={draft_id}")

    async def delete_draft_and_article(self, draft_id: str, user_id: str, title: str) -> None:
        """
        级联删除：答题记录 -> 测验 -> 点赞 -> 评论 -> 浏览记录 -> 文章，最后删除草稿

        每一步在独立的 SAVEPOINT 中执行，单步失败只记录日志，后续步骤照常进行；
        草稿无论如何都会被删除。
        """
        async with self._session_factory() as session:
            article_id = await self._find_companion_article(session, draft_id, user_id, title)
            if article_id is not None:
                quiz_id = (await session.execute(
                    select(Quiz.id).where(Quiz.article_id == article_id)
                )).scalar_one_or_none()

                steps = []
                if quiz_id is not None:
                    steps.append(("quiz_attempts", delete(QuizAttempt).where(QuizAttempt.quiz_id == quiz_id)))
                steps += [
                    ("quizzes", delete(Quiz).where(Quiz.article_id == article_id)),
                    ("likes", delete(Like).where(Like.article_id == article_id)),
                    ("comments", delete(Comment).where(Comment.article_id == article_id)),
                    ("views", delete(ArticleView).where(ArticleView.article_id == article_id)),
                    ("articles", delete(Article).where(Article.id == article_id)),
                ]
                for label, stmt in steps:
                    try:
                        async with session.begin_nested():
                            await session.execute(stmt)
                    except SQLAlchemyError as e:
                        logger.warning(f"级联删除步骤失败（继续）: {label}, article_id={article_id}, {e}")
            else:
                logger.info(f"未找到草稿对应的文章，仅删除草稿: id={draft_id}")

            await session.execute(delete(Draft).where(Draft.id == draft_id))
            await session.commit()

        logger.info(f"级联删除完成: draft_id={draft_id}, article_id={article_id}")

    # ==================== 内部方法 ====================

    async def _load(self, session, draft_id: str) -> Draft:
        draft = await session.get(Draft, draft_id)
        if draft is None:
            raise NotFoundError("草稿不存在", draft_id=draft_id)
        return draft

    async def _unique_slug(self, session, title: str, draft_id: str) -> str:
        """slug 已被占用时依次追加 -1、-2 ..."""
        base = slugify(title) or f"article-{draft_id[:8]}"
        rows = await session.execute(
            select(Article.slug).where(or_(Article.slug == base, Article.slug.like(f"{base}-%")))
        )
        taken = set(rows.scalars().all())
        if base not in taken:
            return base
        suffix = 1
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"

    async def _create_quiz(self, session, article_id: str, raw_questions) -> int:
        """在 SAVEPOINT 中写入测验，失败时只回滚测验本身"""
        if not raw_questions:
            return 0
        try:
            questions = normalize_questions(raw_questions)
            if not questions:
                return 0
            async with session.begin_nested():
                session.add(Quiz(article_id=article_id, questions=questions))
            return len(questions)
        except Exception as e:
            logger.warning(f"创建测验失败（已忽略，文章照常发布）: article_id={article_id}, {e}")
            return 0

    async def _find_companion_article(
        self, session, draft_id: str, user_id: str, title: str
    ) -> Optional[str]:
        """先按相同 id 查找，找不到再按 (作者, 标题) 查找旧数据"""
        article_id = (await session.execute(
            select(Article.id).where(Article.id == draft_id)
        )).scalar_one_or_none()
        if article_id is None and title:
            article_id = (await session.execute(
                select(Article.id)
                .where(Article.author_id == user_id, Article.title == title)
                .limit(1)
            )).scalar_one_or_none()
        return article_id

    async def _after_publish(self, article: Article) -> None:
        """发布后的附带效果：通知作者、写作徽章、广播发布事件，均不影响发布结果"""
        await self._notifier.notify_safely(
            article.author_id,
            "article_approved",
            "Article Published!",
            f'Your article "{article.title}" has been approved and published.',
            f"/article/{article.slug}",
        )
        self._badges.schedule(
            self._badges.check_article_badges(article.author_id),
            label=f"article_badges:{article.author_id}",
        )
        try:
            await self._bus.publish("article_published", {
                "article_id": article.id,
                "slug": article.slug,
                "title": article.title,
            })
        except Exception as e:
            logger.warning(f"发布事件推送失败（已忽略）: {e}")


# 全局单例
review_gate = ReviewGate()
