"""
通知写入与实时推送
先落库，再通过事件总线推送给在线客户端
"""

import logging
from typing import Optional

from sqlalchemy import func, select, update

from pressroom.api.events import EventBus, event_bus
from pressroom.core.errors import NotFoundError
from pressroom.database.connection import async_session_factory
from pressroom.models.notification import Notification

logger = logging.getLogger(__name__)


def notification_payload(notification: Notification) -> dict:
    """通知 ORM 对象 -> 事件负载"""
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "notification_type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "read": notification.read,
        "action_url": notification.action_url,
        "created_at": notification.created_at,
    }


class Notifier:
    """通知服务"""

    def __init__(self, session_factory=None, bus: Optional[EventBus] = None):
        self._session_factory = session_factory or async_session_factory
        self._bus = bus or event_bus

    async def notify(
        self,
        user_id: str,
        type_: str,
        title: str,
        message: str = "",
        action_url: Optional[str] = None,
    ) -> Notification:
        """写入一条通知并推送 notification_created 事件"""
        async with self._session_factory() as session:
            notification = Notification(
                user_id=user_id,
                type=type_,
                title=title,
                message=message,
                action_url=action_url,
            )
            session.add(notification)
            await session.commit()
            await session.refresh(notification)

        logger.info(
            f"创建通知: id={notification.id}, user_id={user_id}, type={type_}"
        )
        await self._bus.publish("notification_created", notification_payload(notification))
        return notification

    async def notify_safely(self, user_id: str, type_: str, title: str, message: str = "",
                            action_url: Optional[str] = None) -> Optional[Notification]:
        """通知属于附带效果：失败只记日志，不影响主流程"""
        try:
            return await self.notify(user_id, type_, title, message, action_url)
        except Exception as e:
            logger.warning(f"通知发送失败（已忽略）: user_id={user_id}, type={type_}, {e}")
            return None

    # ========== 查询与已读 ==========

    async def unread_count(self, user_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(Notification.id)).where(
                    Notification.user_id == user_id,
                    Notification.read.is_(False),
                )
            )
            return result.scalar() or 0

    async def list_for_user(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = 20,
        read: Optional[bool] = None,
    ) -> tuple[int, list[Notification]]:
        """按时间倒序分页，返回 (总数, 当前页)"""
        conditions = [Notification.user_id == user_id]
        if read is not None:
            conditions.append(Notification.read.is_(read))

        async with self._session_factory() as session:
            total = (await session.execute(
                select(func.count(Notification.id)).where(*conditions)
            )).scalar() or 0
            rows = await session.execute(
                select(Notification)
                .where(*conditions)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            return total, list(rows.scalars().all())

    async def mark_read(self, notification_id: int, user_id: str) -> Notification:
        """只能标记自己的通知；别人的通知按不存在处理"""
        async with self._session_factory() as session:
            notification = await session.get(Notification, notification_id)
            if notification is None or notification.user_id != user_id:
                raise NotFoundError("通知不存在")
            notification.read = True
            await session.commit()
            return notification

    async def mark_all_read(self, user_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.read.is_(False))
                .values(read=True)
            )
            await session.commit()
        updated = result.rowcount or 0
        logger.info(f"全部已读: user_id={user_id}, 更新 {updated} 条")
        return updated


# 全局单例
notifier = Notifier()
