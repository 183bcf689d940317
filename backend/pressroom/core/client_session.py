"""
进程内客户端会话
把一个用户的 Store 绑定到各服务单例：服务结果折叠进状态，
点赞/关注走乐观命令，事件总线推送的通知与点赞计数同步进状态。
"""

import logging
from typing import Optional

from pressroom.api.events import EventBus, event_bus
from pressroom.core.app_state import (
    AttemptRecorded,
    DraftLoaded,
    DraftRemoved,
    FollowChanged,
    LikeChanged,
    LikeCountUpdated,
    NotificationReceived,
    NotificationsRead,
    SignedIn,
    Store,
    UnreadCountLoaded,
    follow_command,
    like_command,
)
from pressroom.core.articles import ArticleService, article_service
from pressroom.core.draft_repository import DraftRepository, draft_repository
from pressroom.core.engagement import EngagementService, engagement_service
from pressroom.core.notifier import Notifier, notifier
from pressroom.core.quiz_recorder import QuizAttemptRecorder, RecordedAttempt, quiz_recorder
from pressroom.core.review_gate import ReviewGate, review_gate
from pressroom.schemas.draft import DraftResponse, DraftUpdate

logger = logging.getLogger(__name__)


class ClientSession:
    """单个用户的会话"""

    def __init__(
        self,
        user_id: str,
        store: Optional[Store] = None,
        drafts: Optional[DraftRepository] = None,
        gate: Optional[ReviewGate] = None,
        recorder: Optional[QuizAttemptRecorder] = None,
        engagement: Optional[EngagementService] = None,
        articles: Optional[ArticleService] = None,
        notifications: Optional[Notifier] = None,
    ):
        self.store = store or Store()
        self._drafts = drafts or draft_repository
        self._gate = gate or review_gate
        self._recorder = recorder or quiz_recorder
        self._engagement = engagement or engagement_service
        self._articles = articles or article_service
        self._notifications = notifications or notifier
        self.store.dispatch(SignedIn(user_id))

    @property
    def user_id(self) -> str:
        return self.store.state.user_id

    async def refresh(self) -> None:
        """加载本人的草稿与未读通知数"""
        for draft in await self._drafts.list_for_user(self.user_id):
            self.store.dispatch(DraftLoaded(draft))
        unread = await self._notifications.unread_count(self.user_id)
        self.store.dispatch(UnreadCountLoaded(unread))

    # ==================== 草稿 ====================

    async def create_draft(self, update: Optional[DraftUpdate] = None) -> DraftResponse:
        return await self.store.run(self._drafts.create(self.user_id, update), DraftLoaded)

    async def save_draft(self, draft_id: str, update: DraftUpdate) -> DraftResponse:
        return await self.store.run(self._drafts.save(draft_id, self.user_id, update), DraftLoaded)

    async def submit_draft(self, draft_id: str) -> DraftResponse:
        return await self.store.run(self._gate.submit(draft_id, self.user_id), DraftLoaded)

    async def delete_draft(self, draft_id: str) -> None:
        await self.store.run(
            self._gate.delete(draft_id, self.user_id), lambda _: DraftRemoved(draft_id)
        )

    # ==================== 测验 ====================

    async def submit_attempt(
        self,
        quiz_id: str,
        score: int,
        total_questions: int,
        time_spent_seconds: Optional[int] = None,
    ) -> RecordedAttempt:
        return await self.store.run(
            self._recorder.submit_attempt(
                quiz_id, self.user_id, score, total_questions, time_spent_seconds
            ),
            lambda attempt: AttemptRecorded(attempt.to_response()),
        )

    # ==================== 点赞与关注 ====================

    async def toggle_like(self, article_id: str) -> tuple[bool, int]:
        if article_id not in self.store.state.likes:
            article = await self._articles.get(article_id)
            liked = await self._engagement.has_liked(article_id, self.user_id)
            self.store.dispatch(LikeChanged(article_id, liked, article.likes or 0))
        command = like_command(self.store, self._engagement, article_id, self.user_id)
        return await command.execute(self.store)

    async def toggle_follow(self, followee_id: str) -> bool:
        if followee_id not in self.store.state.following:
            if await self._engagement.is_following(self.user_id, followee_id):
                self.store.dispatch(FollowChanged(followee_id, True))
        command = follow_command(self.store, self._engagement, self.user_id, followee_id)
        return await command.execute(self.store)

    # ==================== 通知与事件 ====================

    async def mark_all_read(self) -> int:
        count = await self._notifications.mark_all_read(self.user_id)
        self.store.dispatch(NotificationsRead())
        return count

    def apply_event(self, event: dict) -> None:
        """把一条事件总线推送折叠进状态，无关事件忽略"""
        event_type = event.get("type")
        if event_type == "notification_created":
            if event.get("user_id") == self.user_id:
                self.store.dispatch(NotificationReceived())
        elif event_type == "like_changed":
            article_id = event.get("article_id")
            if article_id in self.store.state.likes:
                self.store.dispatch(LikeCountUpdated(article_id, event.get("likes", 0)))

    async def follow_events(self, bus: Optional[EventBus] = None) -> None:
        """持续消费事件总线，直到任务被取消"""
        async for event in (bus or event_bus).subscribe(self.user_id):
            self.apply_event(event)
