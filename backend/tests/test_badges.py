import pytest
from sqlalchemy import select

from pressroom.core.badges import BADGES, BadgeEvaluator, badge_evaluator, get_badge
from pressroom.database.connection import async_session_factory
from pressroom.models.notification import Notification

from helpers import get_profile, make_profile


def test_catalog_ids_are_unique():
    ids = [b.id for b in BADGES]
    assert len(ids) == len(set(ids))
    assert get_badge("top_scorer").category == "quiz"
    assert get_badge("nope") is None


async def test_award_badge_once_and_notify():
    await make_profile("u1", "Ada")

    assert await badge_evaluator.award_badge("u1", "rising_star") is True
    assert await badge_evaluator.award_badge("u1", "rising_star") is False

    assert (await get_profile("u1")).badges == ["rising_star"]
    async with async_session_factory() as session:
        notes = (await session.execute(
            select(Notification).where(Notification.user_id == "u1")
        )).scalars().all()
    assert [n.type for n in notes] == ["badge_earned"]
    assert notes[0].action_url == "/profile/u1"


async def test_award_without_profile_is_skipped():
    assert await badge_evaluator.award_badge("ghost", "first_ink") is False


async def test_unknown_badge_raises():
    with pytest.raises(ValueError):
        await badge_evaluator.award_badge("u1", "not-a-badge")


async def test_threshold_checks():
    await make_profile("u1", "Ada")

    assert await badge_evaluator.check_follower_badges("u1", 9) == []
    assert await badge_evaluator.check_follower_badges("u1", 100) == ["rising_star", "influencer"]
    assert await badge_evaluator.check_article_badges("u1", article_count=5) == ["first_ink", "scribe"]
    assert await badge_evaluator.check_like_badges("u1", 100) == ["crowd_favorite"]


async def test_quiz_rank_badges():
    await make_profile("u1", "Ada")
    await make_profile("u2", "Bo")

    assert await badge_evaluator.check_quiz_badges("u1", rank=None) == []
    assert await badge_evaluator.check_quiz_badges("u1", rank=4) == ["leaderboard_legend"]
    assert await badge_evaluator.check_quiz_badges("u2", rank=1) == ["leaderboard_legend", "top_scorer"]
    assert await badge_evaluator.check_quiz_badges("u2", rank=11) == []


async def test_scheduled_failures_are_swallowed():
    evaluator = BadgeEvaluator()

    async def boom():
        raise RuntimeError("badge store down")

    task = evaluator.schedule(boom(), label="boom")
    await evaluator.wait_idle()
    assert task.done()
    assert task.exception() is None


async def test_viral_badge_threshold():
    await make_profile("author", "Ada")

    assert await badge_evaluator.check_viral_badge("author", 999) == []
    assert await badge_evaluator.check_viral_badge("author", 1000) == ["viral_hit"]
    assert get_badge("viral_hit").category == "quality"
    assert get_badge("observer").category == "reader"
