"""
测试辅助函数
"""

from pressroom.database.connection import async_session_factory
from pressroom.models.profile import Profile
from pressroom.schemas.draft import QuizQuestionDraft


async def make_profile(user_id: str, name: str = "", role: str = "user", avatar_url=None) -> Profile:
    async with async_session_factory() as session:
        profile = Profile(id=user_id, name=name, role=role, avatar_url=avatar_url, badges=[])
        session.add(profile)
        await session.commit()
        await session.refresh(profile)
    return profile


async def get_profile(user_id: str) -> Profile:
    async with async_session_factory() as session:
        return await session.get(Profile, user_id)


def sample_questions(n: int = 4) -> list[QuizQuestionDraft]:
    return [
        QuizQuestionDraft(
            question=f"Question {i + 1}?",
            options=["alpha", "beta", "gamma", "delta"],
            correct_answer=i % 4,
            explanation=f"Because {i + 1}",
        )
        for i in range(n)
    ]
