import pytest
from sqlalchemy import select

from pressroom.core.badges import badge_evaluator
from pressroom.core.engagement import engagement_service
from pressroom.core.errors import ForbiddenError, NotFoundError, ValidationError
from pressroom.database.connection import async_session_factory
from pressroom.models.article import Article
from pressroom.models.notification import Notification

from helpers import get_profile, make_profile


@pytest.fixture
async def article_id():
    async with async_session_factory() as session:
        session.add(Article(id="art-1", title="Post", slug="post", author_id="author"))
        await session.commit()
    return "art-1"


async def _notification_types(user_id):
    async with async_session_factory() as session:
        rows = await session.execute(select(Notification.type).where(Notification.user_id == user_id))
        return sorted(rows.scalars().all())


async def test_like_is_idempotent_and_counts(article_id):
    assert await engagement_service.like(article_id, "r1") == (True, 1)
    assert await engagement_service.like(article_id, "r1") == (True, 1)
    assert await engagement_service.like(article_id, "r2") == (True, 2)
    assert await engagement_service.has_liked(article_id, "r1") is True

    assert await engagement_service.unlike(article_id, "r1") == (False, 1)
    assert await engagement_service.unlike(article_id, "r1") == (False, 1)
    assert await _notification_types("author") == ["like", "like"]


async def test_like_missing_article():
    with pytest.raises(NotFoundError):
        await engagement_service.like("missing", "r1")


async def test_self_like_does_not_notify(article_id):
    await engagement_service.like(article_id, "author")
    assert await _notification_types("author") == []


async def test_comments_notify_author_and_award_badge(article_id):
    await make_profile("r1", "Reader")

    comment = await engagement_service.add_comment(article_id, "r1", "  Great read  ")
    await badge_evaluator.wait_idle()

    assert comment.content == "Great read"
    assert [c.id for c in await engagement_service.list_comments(article_id)] == [comment.id]
    assert await _notification_types("author") == ["comment"]
    assert "conversation_starter" in (await get_profile("r1")).badges

    with pytest.raises(ForbiddenError):
        await engagement_service.delete_comment(comment.id, "someone-else")
    await engagement_service.delete_comment(comment.id, "r1")
    assert await engagement_service.list_comments(article_id) == []


async def test_blank_comment_rejected(article_id):
    with pytest.raises(ValidationError):
        await engagement_service.add_comment(article_id, "r1", "   ")


async def test_follow_unfollow():
    await make_profile("fan", "Fan")

    assert await engagement_service.follow("fan", "star") is True
    assert await engagement_service.follow("fan", "star") is True
    assert await engagement_service.follower_count("star") == 1
    assert await engagement_service.is_following("fan", "star") is True
    assert await _notification_types("star") == ["follow"]

    assert await engagement_service.unfollow("fan", "star") is False
    assert await engagement_service.is_following("fan", "star") is False


async def test_cannot_follow_self():
    with pytest.raises(ValidationError):
        await engagement_service.follow("u1", "u1")


async def test_views_are_counted_once_per_reader_per_day(article_id):
    assert await engagement_service.track_view(article_id, "r1") == (True, 1)
    assert await engagement_service.track_view(article_id, "r1") == (False, 1)
    assert await engagement_service.track_view(article_id, "r2") == (True, 2)

    # 匿名读者按来源地址去重
    assert await engagement_service.track_view(article_id, None, "10.0.0.1") == (True, 3)
    assert await engagement_service.track_view(article_id, None, "10.0.0.1") == (False, 3)
    assert await engagement_service.track_view(article_id, None, "10.0.0.2") == (True, 4)
    assert await engagement_service.track_view(article_id) == (True, 5)
    assert await engagement_service.track_view(article_id) == (False, 5)


async def test_view_of_missing_article():
    with pytest.raises(NotFoundError):
        await engagement_service.track_view("missing", "r1")


async def test_tenth_distinct_article_awards_observer():
    await make_profile("reader", "Reader")
    async with async_session_factory() as session:
        for i in range(10):
            session.add(Article(id=f"art-{i}", title=f"Post {i}", slug=f"post-{i}", author_id="author"))
        await session.commit()

    for i in range(9):
        await engagement_service.track_view(f"art-{i}", "reader")
    await badge_evaluator.wait_idle()
    assert "observer" not in (await get_profile("reader")).badges

    await engagement_service.track_view("art-9", "reader")
    await badge_evaluator.wait_idle()
    assert "observer" in (await get_profile("reader")).badges
