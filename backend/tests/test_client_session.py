import asyncio

import pytest

from pressroom.api.events import EventBus
from pressroom.core.app_state import LikeState
from pressroom.core.client_session import ClientSession
from pressroom.core.engagement import engagement_service
from pressroom.core.errors import ForbiddenError, NotFoundError
from pressroom.core.notifier import notifier
from pressroom.database.connection import async_session_factory
from pressroom.models.article import Article
from pressroom.models.quiz import Quiz
from pressroom.schemas.draft import DraftUpdate


@pytest.fixture
async def article_id():
    async with async_session_factory() as session:
        session.add(Article(id="art-1", title="Post", slug="post", author_id="author", likes=0))
        await session.commit()
    return "art-1"


async def test_toggle_like_round_trips_through_engagement(article_id):
    await engagement_service.like(article_id, "other")
    session = ClientSession("reader")

    assert await session.toggle_like(article_id) == (True, 2)
    assert session.store.state.likes[article_id] == LikeState(True, 2)
    assert await engagement_service.has_liked(article_id, "reader") is True

    assert await session.toggle_like(article_id) == (False, 1)
    assert session.store.state.likes[article_id] == LikeState(False, 1)


async def test_toggle_like_on_missing_article_leaves_state_untouched():
    session = ClientSession("reader")
    with pytest.raises(NotFoundError):
        await session.toggle_like("missing")
    assert session.store.state.likes == {}


async def test_toggle_follow_uses_stored_follow_state():
    await engagement_service.follow("reader", "writer")
    session = ClientSession("reader")

    # 已关注，切换即取消关注
    assert await session.toggle_follow("writer") is False
    assert "writer" not in session.store.state.following
    assert await engagement_service.is_following("reader", "writer") is False

    assert await session.toggle_follow("writer") is True
    assert "writer" in session.store.state.following


async def test_drafts_and_attempts_fold_into_state(article_id):
    async with async_session_factory() as session:
        quiz = Quiz(article_id=article_id, questions=[{"question": "q"}] * 2)
        session.add(quiz)
        await session.commit()
        quiz_id = quiz.id

    client = ClientSession("author")
    draft = await client.create_draft(DraftUpdate(title="Hello", content_html="<p>Body</p>"))
    assert client.store.state.drafts[draft.id].title == "Hello"

    submitted = await client.submit_draft(draft.id)
    assert client.store.state.drafts[draft.id].status == submitted.status == "submitted"

    attempt = await client.submit_attempt(quiz_id, 2, 2, 15)
    assert client.store.state.attempts[quiz_id].id == attempt.id

    await client.delete_draft(draft.id)
    assert draft.id not in client.store.state.drafts


async def test_service_errors_are_recorded():
    owner = ClientSession("author")
    draft = await owner.create_draft(DraftUpdate(title="Mine"))

    intruder = ClientSession("intruder")
    with pytest.raises(ForbiddenError):
        await intruder.delete_draft(draft.id)
    assert intruder.store.state.last_error == "只能删除自己的草稿"


async def test_refresh_and_mark_all_read():
    await notifier.notify("reader", "like", "Like")
    await notifier.notify("reader", "follow", "Follow")
    session = ClientSession("reader")

    await session.refresh()
    assert session.store.state.unread_notifications == 2

    assert await session.mark_all_read() == 2
    assert session.store.state.unread_notifications == 0


async def test_apply_event_ignores_unrelated_events():
    session = ClientSession("reader")
    session.apply_event({"type": "notification_created", "user_id": "someone-else"})
    session.apply_event({"type": "like_changed", "article_id": "unknown", "likes": 9})
    session.apply_event({"type": "article_published", "id": "a1"})

    assert session.store.state.unread_notifications == 0
    assert session.store.state.likes == {}


async def test_follow_events_updates_counts(article_id):
    bus = EventBus()
    session = ClientSession("reader")
    await session.toggle_like(article_id)

    task = asyncio.create_task(session.follow_events(bus))
    while bus.subscriber_count == 0:
        await asyncio.sleep(0)

    await bus.publish("notification_created", {"user_id": "reader", "title": "Hi"})
    await bus.publish("like_changed", {"article_id": article_id, "likes": 7})
    for _ in range(10):
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert session.store.state.unread_notifications == 1
    # 计数同步，本人的点赞状态不变
    assert session.store.state.likes[article_id] == LikeState(True, 7)
