"""
已发布文章查询与搜索
"""

import logging
from typing import Optional

from sqlalchemy import func, or_, select

from pressroom.core.errors import NotFoundError
from pressroom.database.connection import async_session_factory
from pressroom.models.article import Article

logger = logging.getLogger(__name__)


class ArticleService:
    """文章查询服务"""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or async_session_factory

    async def get(self, id_or_slug: str) -> Article:
        """按 id 或 slug 获取文章"""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Article).where(or_(Article.id == id_or_slug, Article.slug == id_or_slug))
            )
            article = result.scalars().first()
        if article is None:
            raise NotFoundError("文章不存在", article=id_or_slug)
        return article

    async def list_published(
        self,
        page: int = 1,
        page_size: int = 20,
        featured: Optional[bool] = None,
        author_id: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> tuple[int, list[Article]]:
        """
        已发布文章分页列表（按发布时间倒序）

        标签过滤在内存中完成（tags 是 JSON 列）
        """
        conditions = [Article.status == "published"]
        if featured is not None:
            conditions.append(Article.featured.is_(featured))
        if author_id:
            conditions.append(Article.author_id == author_id)

        async with self._session_factory() as session:
            if tag:
                result = await session.execute(
                    select(Article).where(*conditions).order_by(Article.published_at.desc())
                )
                items = [a for a in result.scalars().all() if tag in (a.tags or [])]
                total = len(items)
                offset = (page - 1) * page_size
                return total, items[offset:offset + page_size]

            total = (await session.execute(
                select(func.count(Article.id)).where(*conditions)
            )).scalar() or 0
            result = await session.execute(
                select(Article)
                .where(*conditions)
                .order_by(Article.published_at.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            return total, list(result.scalars().all())

    # ==================== 搜索 ====================

    async def search(self, query: str, limit: int = 20) -> list[Article]:
        """
        已发布文章关键词搜索（不区分大小写的子串匹配）

        命中字段按权重累加：标题 4、摘要 3、标签 2、署名 1，
        得分相同按发布时间倒序
        """
        needle = (query or "").strip().lower()
        if not needle:
            return []
        articles = await self._published()

        scored = []
        for article in articles:
            score = sum(
                weight for weight, text in (
                    (4, article.title),
                    (3, article.excerpt),
                    (2, " ".join(str(t) for t in article.tags or [])),
                    (1, article.custom_author),
                )
                if text and needle in text.lower()
            )
            if score > 0:
                scored.append((score, article))
        # 排序稳定，同分保持发布时间倒序
        scored.sort(key=lambda item: item[0], reverse=True)
        logger.debug(f"搜索 {needle!r}: 命中 {len(scored)} 篇")
        return [article for _, article in scored[:limit]]

    async def trending_tags(self, limit: int = 5) -> list[str]:
        """已发布文章中出现次数最多的标签（小写去空白后计数）"""
        counts: dict[str, int] = {}
        for article in await self._published():
            for tag in article.tags or []:
                if not isinstance(tag, str):
                    continue
                normalized = tag.strip().lower()
                if normalized:
                    counts[normalized] = counts.get(normalized, 0) + 1
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [tag for tag, _ in ranked[:limit]]

    async def _published(self) -> list[Article]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Article)
                .where(Article.status == "published")
                .order_by(Article.published_at.desc(), Article.id.asc())
            )
            return list(result.scalars().all())


# 全局单例
article_service = ArticleService()
