"""
用户资料 Pydantic 模型
"""

from typing import Optional
from pydantic import BaseModel, Field


class ProfileUpsertRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    avatar_url: Optional[str] = None
    role: str = Field(default="user", description="user / editor / admin")


class ProfileResponse(BaseModel):
    id: str
    name: str
    avatar_url: Optional[str] = None
    role: str
    badges: list[str] = []

    model_config = {"from_attributes": True}
