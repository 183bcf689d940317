"""
客户端应用状态
显式类型化的不可变状态 + 消息 + 纯函数 reduce。

服务对象（审核关卡、答题记录等）只返回结果，由 Store.run 把结果折叠进状态；
点赞/关注这类乐观更新用 OptimisticCommand 表达：先应用乐观消息，
远程调用失败时派发补偿消息回滚，再把异常抛给调用方。
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pressroom.core.errors import PressroomError
from pressroom.schemas.draft import DraftResponse
from pressroom.schemas.quiz import AttemptResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class LikeState:
    liked: bool = False
    likes: int = 0


@dataclass(frozen=True)
class AppState:
    """应用状态（每次 reduce 都生成新对象，不原地修改）"""
    user_id: Optional[str] = None
    drafts: dict[str, DraftResponse] = field(default_factory=dict)
    likes: dict[str, LikeState] = field(default_factory=dict)
    following: frozenset = frozenset()
    # quiz_id -> 本人的成绩
    attempts: dict[str, AttemptResponse] = field(default_factory=dict)
    unread_notifications: int = 0
    last_error: Optional[str] = None


# ==================== 消息 ====================

@dataclass(frozen=True)
class SignedIn:
    user_id: str


@dataclass(frozen=True)
class DraftLoaded:
    draft: DraftResponse


@dataclass(frozen=True)
class DraftRemoved:
    draft_id: str


@dataclass(frozen=True)
class LikeChanged:
    article_id: str
    liked: bool
    likes: int


@dataclass(frozen=True)
class LikeCountUpdated:
    """其他读者点赞引起的计数变化，不改变本人的点赞状态"""
    article_id: str
    likes: int


@dataclass(frozen=True)
class FollowChanged:
    followee_id: str
    following: bool


@dataclass(frozen=True)
class AttemptRecorded:
    attempt: AttemptResponse


@dataclass(frozen=True)
class NotificationReceived:
    pass


@dataclass(frozen=True)
class NotificationsRead:
    count: Optional[int] = None  # None 表示全部已读


@dataclass(frozen=True)
class UnreadCountLoaded:
    count: int


@dataclass(frozen=True)
class ErrorRaised:
    message: str


@dataclass(frozen=True)
class ErrorCleared:
    pass


def reduce(state: AppState, message: Any) -> AppState:
    """纯函数：state + message -> 新 state"""
    if isinstance(message, SignedIn):
        return AppState(user_id=message.user_id)
    if isinstance(message, DraftLoaded):
        return replace(state, drafts={**state.drafts, message.draft.id: message.draft})
    if isinstance(message, DraftRemoved):
        drafts = {k: v for k, v in state.drafts.items() if k != message.draft_id}
        return replace(state, drafts=drafts)
    if isinstance(message, LikeChanged):
        likes = {**state.likes, message.article_id: LikeState(message.liked, max(0, message.likes))}
        return replace(state, likes=likes)
    if isinstance(message, LikeCountUpdated):
        current = state.likes.get(message.article_id, LikeState())
        likes = {**state.likes, message.article_id: replace(current, likes=max(0, message.likes))}
        return replace(state, likes=likes)
    if isinstance(message, FollowChanged):
        if message.following:
            return replace(state, following=state.following | {message.followee_id})
        return replace(state, following=state.following - {message.followee_id})
    if isinstance(message, AttemptRecorded):
        attempts = {**state.attempts, message.attempt.quiz_id: message.attempt}
        return replace(state, attempts=attempts)
    if isinstance(message, NotificationReceived):
        return replace(state, unread_notifications=state.unread_notifications + 1)
    if isinstance(message, NotificationsRead):
        if message.count is None:
            return replace(state, unread_notifications=0)
        return replace(state, unread_notifications=max(0, state.unread_notifications - message.count))
    if isinstance(message, UnreadCountLoaded):
        return replace(state, unread_notifications=max(0, message.count))
    if isinstance(message, ErrorRaised):
        return replace(state, last_error=message.message)
    if isinstance(message, ErrorCleared):
        return replace(state, last_error=None)
    raise TypeError(f"未知消息类型: {type(message).__name__}")


Listener = Callable[[AppState, Any], None]


class Store:
    """状态容器：派发消息、通知订阅者"""

    def __init__(self, state: Optional[AppState] = None):
        self._state = state or AppState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, message: Any) -> AppState:
        self._state = reduce(self._state, message)
        for listener in list(self._listeners):
            try:
                listener(self._state, message)
            except Exception as e:
                logger.warning(f"状态订阅者异常（已忽略）: {e}")
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """注册订阅者，返回取消订阅函数"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def run(self, call: Awaitable[T], to_message: Callable[[T], Any]) -> T:
        """
        执行一次服务调用并把结果折叠进状态

        业务异常会先写入 last_error 再抛出
        """
        try:
            result = await call
        except PressroomError as e:
            self.dispatch(ErrorRaised(e.message))
            raise
        self.dispatch(to_message(result))
        return result


@dataclass
class OptimisticCommand:
    """
    乐观更新命令

    Attributes:
        apply: 立即派发的乐观消息
        forward: 真正的远程调用
        compensate: 远程调用失败时派发的补偿消息
        confirm: 远程调用成功后根据结果派发的确认消息（可选）
    """
    apply: Any
    forward: Callable[[], Awaitable[Any]]
    compensate: Any
    confirm: Optional[Callable[[Any], Any]] = None

    async def execute(self, store: Store) -> Any:
        store.dispatch(self.apply)
        try:
            result = await self.forward()
        except Exception as e:
            logger.info(f"乐观更新回滚: {type(self.apply).__name__}, {e}")
            store.dispatch(self.compensate)
            raise
        if self.confirm is not None:
            store.dispatch(self.confirm(result))
        return result


def like_command(store: Store, engagement, article_id: str, user_id: str) -> OptimisticCommand:
    """点赞/取消点赞的切换命令"""
    current = store.state.likes.get(article_id, LikeState())
    target = not current.liked
    delta = 1 if target else -1
    forward = engagement.like if target else engagement.unlike
    return OptimisticCommand(
        apply=LikeChanged(article_id, target, current.likes + delta),
        forward=lambda: forward(article_id, user_id),
        compensate=LikeChanged(article_id, current.liked, current.likes),
        confirm=lambda result: LikeChanged(article_id, result[0], result[1]),
    )


def follow_command(store: Store, engagement, follower_id: str, followee_id: str) -> OptimisticCommand:
    """关注/取消关注的切换命令"""
    following = followee_id in store.state.following
    forward = engagement.unfollow if following else engagement.follow
    return OptimisticCommand(
        apply=FollowChanged(followee_id, not following),
        forward=lambda: forward(follower_id, followee_id),
        compensate=FollowChanged(followee_id, following),
        confirm=lambda result: FollowChanged(followee_id, result),
    )
