"""
文章模型
审核通过后公开发布的文章，以及依附于文章的点赞、评论、浏览记录
"""

from datetime import date, datetime
from typing import Optional
from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from pressroom.models.base import Base, new_uuid, utcnow


class Article(Base):
    """文章表"""
    __tablename__ = "articles"

    # 与来源草稿相同的 id
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    # 由标题生成的唯一 slug
    slug: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    # 纯文本摘要（约 200 字符）
    excerpt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content_html: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover_image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default=None)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    custom_author: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="published")
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # 点赞数（冗余计数）
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 浏览数（冗余计数，按读者每天去重）
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


class Like(Base):
    """点赞表（每个用户对每篇文章最多一次）"""
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("article_id", "user_id", name="uq_likes_article_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    article_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("articles.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Comment(Base):
    """评论表"""
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    article_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("articles.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class ArticleView(Base):
    """浏览记录（同一读者对同一文章每天只计一次）"""
    __tablename__ = "article_views"
    __table_args__ = (
        UniqueConstraint("article_id", "viewer_key", "view_date", name="uq_article_views_daily"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    article_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("articles.id"), nullable=False, index=True
    )
    # 匿名浏览为空
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # 去重键：登录用户 user:<id>，匿名读者 ip:<地址>
    viewer_key: Mapped[str] = mapped_column(String(128), nullable=False)
    view_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
