"""
草稿仓库
草稿的增删改查；字数与阅读时长在每次读取时由正文重新计算
"""

import logging
import re
from typing import Iterable, Optional

from sqlalchemy import select

from pressroom.config import settings
from pressroom.core.errors import (
    DraftLockedError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from pressroom.core.text_metrics import make_excerpt, reading_time, word_count
from pressroom.database.connection import async_session_factory
from pressroom.models.draft import Draft
from pressroom.models.profile import ELEVATED_ROLES, Profile
from pressroom.schemas.draft import DraftResponse, DraftUpdate, ReviewQueueItem

logger = logging.getLogger(__name__)

# 作者可以编辑的状态
EDITABLE_STATUSES = ("draft", "rejected")

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


def to_view(draft: Draft) -> DraftResponse:
    """草稿 ORM 对象 -> 响应模型（附带派生的字数与阅读时长）"""
    words = word_count(draft.content_html or "")
    return DraftResponse(
        id=draft.id,
        user_id=draft.user_id,
        title=draft.title or "",
        content_html=draft.content_html or "",
        cover_image_url=draft.cover_image_url,
        tags=draft.tags or [],
        custom_author=draft.custom_author,
        quiz_questions=draft.quiz_questions or [],
        status=draft.status or "draft",
        rejection_reason=draft.rejection_reason,
        word_count=words,
        reading_time=reading_time(words, settings.READING_WORDS_PER_MINUTE),
        created_at=draft.created_at,
        updated_at=draft.updated_at,
    )


def _clean_tags(tags: Iterable[str]) -> list[str]:
    """去空、去重（保留首次出现的顺序）"""
    seen = []
    for tag in tags:
        tag = (tag or "").strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class DraftRepository:
    """草稿仓库"""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or async_session_factory

    async def create(self, user_id: str, update: Optional[DraftUpdate] = None) -> DraftResponse:
        """新建草稿（默认是空壳）"""
        async with self._session_factory() as session:
            draft = Draft(user_id=user_id, title="", content_html="", tags=[], quiz_questions=[])
            if update is not None:
                await self._apply_update(session, draft, update, user_id)
            session.add(draft)
            await session.commit()
            await session.refresh(draft)

        logger.info(f"新建草稿: id={draft.id}, user_id={user_id}")
        return to_view(draft)

    async def get(self, draft_id: str) -> DraftResponse:
        async with self._session_factory() as session:
            draft = await session.get(Draft, draft_id)
        if draft is None:
            raise NotFoundError("草稿不存在", draft_id=draft_id)
        return to_view(draft)

    async def list_for_user(self, user_id: str) -> list[DraftResponse]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Draft)
                .where(Draft.user_id == user_id)
                .order_by(Draft.updated_at.desc())
            )
            drafts = result.scalars().all()
        return [to_view(d) for d in drafts]

    async def list_for_review(self, statuses: Iterable[str] = ("submitted",)) -> list[ReviewQueueItem]:
        """编辑审核队列，附带作者资料与摘要"""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Draft)
                .where(Draft.status.in_(list(statuses)))
                .order_by(Draft.updated_at.desc())
            )
            drafts = result.scalars().all()

            author_ids = {d.user_id for d in drafts}
            profiles = {}
            if author_ids:
                rows = await session.execute(select(Profile).where(Profile.id.in_(author_ids)))
                profiles = {p.id: p for p in rows.scalars().all()}

        items = []
        for draft in drafts:
            author = profiles.get(draft.user_id)
            items.append(ReviewQueueItem(
                **to_view(draft).model_dump(),
                author_name=author.name if author and author.name else "Unknown Author",
                author_avatar=author.avatar_url if author else None,
                excerpt=make_excerpt(draft.content_html or "", settings.EXCERPT_LENGTH),
            ))
        return items

    async def save(self, draft_id: str, user_id: str, update: DraftUpdate) -> DraftResponse:
        """
        作者保存草稿（只更新传入的字段）

        - 仅作者本人可编辑
        - submitted / published 状态下草稿冻结
        - 编辑已驳回的草稿会回到 draft 并清除驳回原因

        Raises:
            NotFoundError / ForbiddenError / DraftLockedError / ValidationError
        """
        async with self._session_factory() as session:
            draft = await session.get(Draft, draft_id)
            if draft is None:
                raise NotFoundError("草稿不存在", draft_id=draft_id)
            if draft.user_id != user_id:
                raise ForbiddenError("只能编辑自己的草稿")
            if draft.status not in EDITABLE_STATUSES:
                raise DraftLockedError(f"草稿当前状态为 {draft.status}，不可编辑")

            await self._apply_update(session, draft, update, user_id)
            if draft.status == "rejected":
                draft.status = "draft"
                draft.rejection_reason = None

            await session.commit()
            await session.refresh(draft)

        logger.info(f"保存草稿: id={draft_id}")
        return to_view(draft)

    async def _apply_update(self, session, draft: Draft, update: DraftUpdate, user_id: str) -> None:
        data = update.model_dump(exclude_unset=True)

        questions = data.get("quiz_questions")
        if questions is not None and len(questions) > settings.QUIZ_MAX_QUESTIONS:
            raise ValidationError(f"测验题最多 {settings.QUIZ_MAX_QUESTIONS} 道")

        if data.get("custom_author"):
            profile = await session.get(Profile, user_id)
            if profile is None or profile.role not in ELEVATED_ROLES:
                raise ForbiddenError("只有编辑或管理员可以设置署名覆盖")

        for field, value in data.items():
            if field == "tags":
                value = _clean_tags(value or [])
            elif field in ("title", "content_html") and value is None:
                value = ""
            setattr(draft, field, value)

    @staticmethod
    def import_document(filename: str, text: str) -> tuple[str, str]:
        """
        把纯文本/Markdown 文档转换为草稿内容

        空行分段为 <p>，段内换行转为 <br>；标题取文件名（去扩展名）
        """
        title = filename.rsplit(".", 1)[0] if "." in filename else filename
        paragraphs = [
            p.replace("\r\n", "\n").replace("\n", "<br>")
            for p in _PARAGRAPH_SPLIT_RE.split(text.strip())
            if p.strip()
        ]
        content_html = "".join(f"<p>{p}</p>" for p in paragraphs) or f"<p>{title}</p>"
        return title, content_html


# 全局单例
draft_repository = DraftRepository()
