from datetime import datetime, timezone

import pytest

from pressroom.core.app_state import (
    AppState,
    AttemptRecorded,
    ErrorRaised,
    FollowChanged,
    LikeChanged,
    LikeState,
    NotificationReceived,
    NotificationsRead,
    SignedIn,
    Store,
    follow_command,
    like_command,
    reduce,
)
from pressroom.core.errors import NotFoundError
from pressroom.schemas.quiz import AttemptResponse


class FakeEngagement:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    async def like(self, article_id, user_id):
        self.calls.append(("like", article_id, user_id))
        if self.fail:
            raise NotFoundError("文章不存在")
        return True, 6

    async def unlike(self, article_id, user_id):
        self.calls.append(("unlike", article_id, user_id))
        return False, 4

    async def follow(self, follower_id, followee_id):
        self.calls.append(("follow", follower_id, followee_id))
        if self.fail:
            raise RuntimeError("network down")
        return True

    async def unfollow(self, follower_id, followee_id):
        return False


def test_reduce_is_pure():
    state = AppState(user_id="u1")
    new = reduce(state, LikeChanged("a1", True, 3))

    assert state.likes == {}
    assert new.likes == {"a1": LikeState(True, 3)}
    assert reduce(new, FollowChanged("u2", True)).following == frozenset({"u2"})


def test_notification_counters():
    state = AppState()
    state = reduce(state, NotificationReceived())
    state = reduce(state, NotificationReceived())
    assert state.unread_notifications == 2
    assert reduce(state, NotificationsRead(count=5)).unread_notifications == 0
    assert reduce(state, NotificationsRead()).unread_notifications == 0


def test_sign_in_resets_state():
    state = reduce(AppState(), LikeChanged("a1", True, 1))
    assert reduce(state, SignedIn("u9")) == AppState(user_id="u9")


def test_unknown_message_raises():
    with pytest.raises(TypeError):
        reduce(AppState(), object())


def test_subscribers_are_notified_and_can_unsubscribe():
    store = Store()
    seen = []
    unsubscribe = store.subscribe(lambda state, message: seen.append(type(message).__name__))

    store.dispatch(NotificationReceived())
    unsubscribe()
    store.dispatch(NotificationReceived())

    assert seen == ["NotificationReceived"]


async def test_store_run_folds_results_and_records_errors():
    store = Store(AppState(user_id="u1"))
    attempt = AttemptResponse(
        id="1", quiz_id="q1", user_id="u1", score=3, total_questions=3,
        time_spent_seconds=20, completed_at=datetime.now(timezone.utc),
    )

    async def ok():
        return attempt

    await store.run(ok(), AttemptRecorded)
    assert store.state.attempts["q1"].score == 3

    async def failing():
        raise NotFoundError("测验不存在")

    with pytest.raises(NotFoundError):
        await store.run(failing(), AttemptRecorded)
    assert store.state.last_error == "测验不存在"


async def test_like_command_applies_then_confirms():
    store = Store(AppState(user_id="u1", likes={"a1": LikeState(False, 5)}))
    engagement = FakeEngagement()
    seen = []
    store.subscribe(lambda state, message: seen.append(state.likes["a1"]))

    await like_command(store, engagement, "a1", "u1").execute(store)

    # 先乐观 +1，再以服务端结果确认
    assert seen == [LikeState(True, 6), LikeState(True, 6)]
    assert engagement.calls == [("like", "a1", "u1")]


async def test_like_command_compensates_on_failure():
    store = Store(AppState(user_id="u1", likes={"a1": LikeState(False, 5)}))

    with pytest.raises(NotFoundError):
        await like_command(store, FakeEngagement(fail=True), "a1", "u1").execute(store)

    assert store.state.likes["a1"] == LikeState(False, 5)


async def test_follow_command_toggles_and_rolls_back():
    store = Store(AppState(user_id="u1"))
    await follow_command(store, FakeEngagement(), "u1", "u2").execute(store)
    assert "u2" in store.state.following

    await follow_command(store, FakeEngagement(), "u1", "u2").execute(store)
    assert "u2" not in store.state.following

    with pytest.raises(RuntimeError):
        await follow_command(store, FakeEngagement(fail=True), "u1", "u3").execute(store)
    assert "u3" not in store.state.following


def test_error_message_reducer():
    assert reduce(AppState(), ErrorRaised("boom")).last_error == "boom"
