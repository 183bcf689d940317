"""
用户资料模型
排行榜展示名/头像、角色（署名覆盖权限）与已获得的徽章
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pressroom.models.base import Base, utcnow

# 允许设置 custom_author 的角色
ELEVATED_ROLES = ("editor", "admin")


class Profile(Base):
    """用户资料表（id 与认证系统的用户 id 一致）"""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default=None)
    # 角色：user / editor / admin
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    # 徽章 id 列表 JSON
    badges: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Follow(Base):
    """关注关系表"""
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "followee_id", name="uq_follows_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follower_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    followee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
