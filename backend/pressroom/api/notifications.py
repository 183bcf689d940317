"""
通知中心 API
只暴露当前用户（X-User-Id）自己的通知
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from pressroom.api.deps import current_user_id
from pressroom.core.notifier import notifier

router = APIRouter(prefix="/notifications", tags=["通知中心"])


class NotificationResponse(BaseModel):
    id: int
    user_id: str
    type: str
    title: str
    message: str = ""
    read: bool = False
    action_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NotificationPage(BaseModel):
    total: int
    items: list[NotificationResponse]


class UnreadCount(BaseModel):
    count: int


@router.get("/unread-count", response_model=UnreadCount, summary="未读数量")
async def unread_count(user_id: str = Depends(current_user_id)):
    return UnreadCount(count=await notifier.unread_count(user_id))


@router.put("/read-all", summary="全部标记为已读")
async def read_all(user_id: str = Depends(current_user_id)):
    updated = await notifier.mark_all_read(user_id)
    return {"updated": updated}


@router.get("", response_model=NotificationPage, summary="通知列表")
async def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    is_read: Optional[bool] = Query(None, description="按已读状态筛选，不传则全部"),
    user_id: str = Depends(current_user_id),
):
    total, items = await notifier.list_for_user(user_id, page, page_size, read=is_read)
    return NotificationPage(
        total=total,
        items=[NotificationResponse.model_validate(n) for n in items],
    )


@router.put("/{notification_id}/read", response_model=NotificationResponse, summary="标记已读")
async def read_one(notification_id: int, user_id: str = Depends(current_user_id)):
    notification = await notifier.mark_read(notification_id, user_id)
    return NotificationResponse.model_validate(notification)
