"""
用户资料 API 路由
资料维护、徽章目录、关注关系
"""

import logging

from fastapi import APIRouter, Depends

from pressroom.api.deps import current_user_id
from pressroom.core.badges import BADGES
from pressroom.core.engagement import engagement_service
from pressroom.core.errors import NotFoundError, ValidationError
from pressroom.core.quiz_recorder import quiz_recorder
from pressroom.database.connection import async_session_factory
from pressroom.models.profile import Profile
from pressroom.schemas.article import FollowStateResponse
from pressroom.schemas.profile import ProfileResponse, ProfileUpsertRequest
from pressroom.schemas.quiz import AttemptResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/profiles", tags=["用户资料"])

_ROLES = ("user", "editor", "admin")


@router.get("/badges/catalog", summary="徽章目录")
async def badge_catalog():
    return [
        {"id": b.id, "name": b.name, "description": b.description, "category": b.category}
        for b in BADGES
    ]


@router.put("/me", response_model=ProfileResponse, summary="创建/更新我的资料")
async def upsert_my_profile(
    request: ProfileUpsertRequest,
    user_id: str = Depends(current_user_id),
):
    if request.role not in _ROLES:
        raise ValidationError(f"未知角色: {request.role}")
    async with async_session_factory() as session:
        profile = await session.get(Profile, user_id)
        if profile is None:
            profile = Profile(id=user_id, badges=[])
            session.add(profile)
        profile.name = request.name
        profile.avatar_url = request.avatar_url
        profile.role = request.role
        await session.commit()
        await session.refresh(profile)
    logger.info(f"更新用户资料: id={user_id}, role={request.role}")
    return ProfileResponse.model_validate(profile)


@router.get("/{user_id}", response_model=ProfileResponse, summary="获取用户资料")
async def get_profile(user_id: str):
    async with async_session_factory() as session:
        profile = await session.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("用户资料不存在", user_id=user_id)
    return ProfileResponse.model_validate(profile)


@router.get("/{user_id}/attempts", response_model=list[AttemptResponse], summary="用户的答题记录")
async def list_user_attempts(user_id: str):
    attempts = await quiz_recorder.list_user_attempts(user_id)
    return [a.to_response() for a in attempts]


# ==================== 关注 ====================


@router.get("/{user_id}/follow", response_model=FollowStateResponse, summary="是否已关注")
async def get_follow_state(user_id: str, follower_id: str = Depends(current_user_id)):
    following = await engagement_service.is_following(follower_id, user_id)
    return FollowStateResponse(followee_id=user_id, following=following)


@router.post("/{user_id}/follow", response_model=FollowStateResponse, summary="关注")
async def follow_user(user_id: str, follower_id: str = Depends(current_user_id)):
    following = await engagement_service.follow(follower_id, user_id)
    return FollowStateResponse(followee_id=user_id, following=following)


@router.delete("/{user_id}/follow", response_model=FollowStateResponse, summary="取消关注")
async def unfollow_user(user_id: str, follower_id: str = Depends(current_user_id)):
    following = await engagement_service.unfollow(follower_id, user_id)
    return FollowStateResponse(followee_id=user_id, following=following)
