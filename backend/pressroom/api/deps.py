"""
路由公共依赖
认证由外部系统完成，调用方身份通过 X-User-Id 请求头传入
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from pressroom.database.connection import async_session_factory
from pressroom.models.profile import ELEVATED_ROLES, Profile


async def current_user_id(x_user_id: str = Header(None, alias="X-User-Id")) -> str:
    """当前用户 ID（缺少请求头时返回 401）"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="缺少 X-User-Id 请求头")
    return x_user_id.strip()


async def optional_user_id(x_user_id: str = Header(None, alias="X-User-Id")) -> Optional[str]:
    """匿名访问时返回 None"""
    if not x_user_id or not x_user_id.strip():
        return None
    return x_user_id.strip()


async def require_editor(user_id: str = Depends(current_user_id)) -> str:
    """仅编辑/管理员可访问"""
    # 独立的短会话：SQLite 事务开始即持有写锁，不能跨整个请求
    async with async_session_factory() as session:
        profile = await session.get(Profile, user_id)
    if profile is None or profile.role not in ELEVATED_ROLES:
        raise HTTPException(status_code=403, detail="需要编辑或管理员权限")
    return user_id
