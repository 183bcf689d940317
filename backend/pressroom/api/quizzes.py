"""
测验 API 路由
获取测验、提交成绩、排行榜
"""

import logging

from fastapi import APIRouter, Depends, Query

from pressroom.api.deps import current_user_id
from pressroom.core.leaderboard import leaderboard_ranker
from pressroom.core.quiz_recorder import quiz_recorder
from pressroom.core.quizzes import quiz_service
from pressroom.schemas.quiz import (
    AttemptResponse,
    AttemptSubmitRequest,
    LeaderboardEntry,
    QuizResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quizzes", tags=["测验"])


@router.get("/attempts/mine", response_model=list[AttemptResponse], summary="我的全部答题记录")
async def list_my_attempts(user_id: str = Depends(current_user_id)):
    attempts = await quiz_recorder.list_user_attempts(user_id)
    return [a.to_response() for a in attempts]


@router.get("/{quiz_id}", response_model=QuizResponse, summary="获取测验")
async def get_quiz(quiz_id: str):
    quiz = await quiz_service.get_quiz(quiz_id)
    return QuizResponse.model_validate(quiz)


@router.post("/{quiz_id}/attempts", response_model=AttemptResponse, summary="提交答题成绩")
async def submit_attempt(
    quiz_id: str,
    request: AttemptSubmitRequest,
    user_id: str = Depends(current_user_id),
):
    """
    提交成绩（同一用户对同一测验只记录第一次）

    重复提交返回第一次的成绩；存储不可用时返回一条形状相同但未保存的结果
    """
    quiz = await quiz_service.get_quiz(quiz_id)
    attempt = await quiz_recorder.submit_attempt(
        quiz_id,
        user_id,
        request.score,
        request.total_questions,
        request.time_spent_seconds,
        expected_total=len(quiz.questions or []),
    )
    return attempt.to_response()


@router.get("/{quiz_id}/leaderboard", response_model=list[LeaderboardEntry], summary="排行榜")
async def get_leaderboard(
    quiz_id: str,
    limit: int = Query(10, ge=1, le=100, description="最多返回条数"),
):
    return await leaderboard_ranker.get_leaderboard(quiz_id, limit)
