"""
草稿模型
作者的写作单元，审核通过后以相同 id 生成文章
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from pressroom.models.base import Base, new_uuid, utcnow

# 草稿状态
DRAFT_STATUSES = ("draft", "submitted", "published", "rejected")


class Draft(Base):
    """草稿表"""
    __tablename__ = "drafts"

    # 与最终文章共用的 id
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    # 作者 ID
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    # 富文本 HTML，原样存储
    content_html: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover_image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default=None)
    # 标签列表 JSON，如 ["python", "ai"]
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # 署名覆盖（仅编辑/管理员可设置）
    custom_author: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)
    # 测验题目草稿 JSON（最多 10 题）
    quiz_questions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # 状态：draft / submitted / published / rejected
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    # 驳回原因，仅 rejected 状态下非空
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
