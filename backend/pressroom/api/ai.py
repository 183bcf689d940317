"""
AI 辅助 API 路由
根据正文生成测验题、整理正文排版
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException

from pressroom.api.deps import current_user_id
from pressroom.core.ai_client import ai_client
from pressroom.schemas.quiz import (
    GenerateQuizRequest,
    OrganizeContentRequest,
    OrganizeContentResponse,
    QuizQuestion,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ai", tags=["AI 辅助"], dependencies=[Depends(current_user_id)])


@router.post("/generate-quiz", response_model=list[QuizQuestion], summary="AI 生成测验题")
async def generate_quiz(request: GenerateQuizRequest):
    try:
        return await ai_client.generate_quiz(request.html, request.num_questions)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except httpx.HTTPError as e:
        logger.error(f"AI 生成测验题失败: {e}")
        raise HTTPException(status_code=502, detail="AI 服务暂时不可用")


@router.post("/organize", response_model=OrganizeContentResponse, summary="AI 整理正文")
async def organize_content(request: OrganizeContentRequest):
    """失败时原样返回正文"""
    result = await ai_client.organize_content(request.html, request.user_prompt)
    return OrganizeContentResponse(
        rewritten_html=result.rewritten_html,
        suggested_tags=result.suggested_tags,
    )
