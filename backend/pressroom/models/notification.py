"""
通知模型
发给单个用户的消息（徽章、审核结果、点赞、评论、关注），创建后只修改 read 标记
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pressroom.models.base import Base, utcnow

# 通知类型
NOTIFICATION_TYPES = (
    "like",
    "comment",
    "follow",
    "article_approved",
    "article_rejected",
    "badge_earned",
)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="info")
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # 前端跳转链接，如 /article/<id>
    action_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
