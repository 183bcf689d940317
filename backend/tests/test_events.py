import asyncio

from pressroom.api.events import EventBus
from pressroom.core.notifier import Notifier


async def test_publish_filters_by_user():
    bus = EventBus()
    mine = await bus.attach("u1")
    theirs = await bus.attach("u2")
    everyone = await bus.attach(None)

    await bus.publish("notification_created", {"user_id": "u1", "title": "hi"})
    await bus.publish("article_published", {"article_id": "a1"})

    assert [e["type"] for e in _drain(mine)] == ["notification_created", "article_published"]
    assert [e["type"] for e in _drain(theirs)] == ["article_published"]
    assert len(_drain(everyone)) == 2

    await bus.detach(mine)
    assert bus.subscriber_count == 2


async def test_full_subscriber_is_dropped(monkeypatch):
    monkeypatch.setattr("pressroom.api.events.SUBSCRIBER_QUEUE_SIZE", 1)
    bus = EventBus()
    await bus.attach(None)

    await bus.publish("ping", {})
    await bus.publish("ping", {})
    assert bus.subscriber_count == 0


async def test_notifier_persists_then_publishes():
    bus = EventBus()
    queue = await bus.attach("u1")

    notification = await Notifier(bus=bus).notify("u1", "follow", "New Follower", "Bo followed you")

    event = await asyncio.wait_for(queue.get(), timeout=1)
    assert event["type"] == "notification_created"
    assert event["id"] == notification.id
    assert event["notification_type"] == "follow"


def _drain(queue):
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items
