"""
API 路由汇总，全部挂在 /api 下
"""

from fastapi import APIRouter

from pressroom.api import ai, articles, drafts, events, notifications, profiles, quizzes, review

api_router = APIRouter(prefix="/api")

# 子路由各自带 prefix
for module in (drafts, review, articles, quizzes, profiles, notifications, ai, events):
    api_router.include_router(module.router)
