"""
实时事件推送（SSE）
把通知、文章发布、点赞数变化推送给已连接的浏览器

订阅者可以只订阅某个用户的事件；负载里没有 user_id 的事件视为广播。
每个订阅者有一个有界队列，积压满了说明客户端已卡死，直接移除。
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Query
from starlette.responses import StreamingResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["实时事件"])

# 无事件时多久发送一次 keepalive 注释行（秒）
HEARTBEAT_INTERVAL_SECONDS = 15
SUBSCRIBER_QUEUE_SIZE = 256


@dataclass(eq=False)
class Subscriber:
    user_id: Optional[str]
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE))

    def wants(self, target: Optional[str]) -> bool:
        return self.user_id is None or target is None or self.user_id == target


class EventBus:
    """进程内发布-订阅"""

    def __init__(self):
        self._subscribers: dict[asyncio.Queue, Subscriber] = {}
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event_type: str, data: dict) -> None:
        """
        投递事件

        Args:
            event_type: notification_created / article_published / like_changed
            data: 事件负载，带 user_id 时只投递给该用户
        """
        envelope = {**data, "type": event_type, "timestamp": time.time()}
        target = data.get("user_id")
        async with self._lock:
            stalled = [
                sub for sub in self._subscribers.values()
                if sub.wants(target) and not _offer(sub.queue, envelope)
            ]
            for sub in stalled:
                del self._subscribers[sub.queue]
        if stalled:
            logger.warning(f"移除 {len(stalled)} 个积压已满的订阅者")
        logger.debug(f"发布事件 {event_type} -> {target or '所有人'}")

    async def attach(self, user_id: Optional[str] = None) -> asyncio.Queue:
        sub = Subscriber(user_id=user_id)
        async with self._lock:
            self._subscribers[sub.queue] = sub
        logger.info(f"订阅者接入: user_id={user_id}, 在线 {self.subscriber_count}")
        return sub.queue

    async def detach(self, queue: asyncio.Queue) -> None:
        async with self._lock:
            self._subscribers.pop(queue, None)
        logger.info(f"订阅者断开，在线 {self.subscriber_count}")

    async def subscribe(self, user_id: Optional[str] = None) -> AsyncIterator[dict]:
        """以异步迭代器形式消费事件，退出时自动注销"""
        queue = await self.attach(user_id)
        try:
            while True:
                yield await queue.get()
        finally:
            await self.detach(queue)


def _offer(queue: asyncio.Queue, item: dict) -> bool:
    try:
        queue.put_nowait(item)
        return True
    except asyncio.QueueFull:
        return False


def format_sse(event: dict) -> str:
    """SSE data-only 帧，事件类型在 JSON 的 type 字段里"""
    return f"data: {json.dumps(event, ensure_ascii=False, default=str)}\n\n"


event_bus = EventBus()


async def _stream(user_id: Optional[str]) -> AsyncIterator[str]:
    yield format_sse({"type": "connected", "user_id": user_id})
    queue = await event_bus.attach(user_id)
    try:
        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_INTERVAL_SECONDS)
            except asyncio.TimeoutError:
                yield f": keepalive {int(time.time())}\n\n"
                continue
            yield format_sse(event)
    except (asyncio.CancelledError, GeneratorExit):
        pass
    finally:
        await event_bus.detach(queue)


@router.get("/stream", summary="订阅实时事件")
async def event_stream(
    user_id: Optional[str] = Query(None, description="只接收该用户的事件"),
):
    """
    SSE 事件流

    - `connected`: 连接建立
    - `notification_created`: 新通知
    - `article_published`: 文章发布
    - `like_changed`: 点赞数变化
    """
    return StreamingResponse(
        _stream(user_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            # 关闭反向代理缓冲
            "X-Accel-Buffering": "no",
        },
    )
