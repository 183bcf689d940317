"""
答题记录服务
每个用户对每个测验只保留第一条成绩，重复提交或并发提交都返回同一条记录

写入流程：
1. 先查已有记录，存在则原样返回（重复提交不再校验本次输入）
2. 校验输入
3. 完整字段写入
4. 唯一约束冲突（ConflictError，并发提交抢先写入）-> 重新查询并返回胜出的那条
5. 字段/表结构或一般 I/O 故障 -> 按 RetryPolicy 以精简字段 {quiz_id, user_id, score} 重试
6. 全部失败或整体超时 -> 返回一条未持久化的降级结果（id 以 mock- 开头）

降级结果在响应中与正常结果形状一致。
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from pressroom.config import settings
from pressroom.core.badges import BadgeEvaluator, badge_evaluator
from pressroom.core.errors import ConflictError, ValidationError
from pressroom.core.retry import (
    AttemptError,
    Result,
    RetryPolicy,
    StorageErrorKind,
    classify_storage_error,
)
from pressroom.database.connection import async_session_factory
from pressroom.models.base import utcnow
from pressroom.models.quiz import Quiz, QuizAttempt
from pressroom.schemas.quiz import AttemptResponse

logger = logging.getLogger(__name__)

SYNTHESIZED_ID_PREFIX = "mock-"


@dataclass(frozen=True)
class RecordedAttempt:
    """一次答题提交的结果"""

    id: str
    quiz_id: str
    user_id: str
    score: int
    total_questions: Optional[int]
    time_spent_seconds: Optional[int]
    completed_at: datetime
    # 本次调用新写入
    created: bool = False
    # 降级结果，未持久化
    synthesized: bool = False

    @classmethod
    def from_row(cls, row: QuizAttempt, created: bool = False) -> "RecordedAttempt":
        return cls(
            id=str(row.id),
            quiz_id=row.quiz_id,
            user_id=row.user_id,
            score=row.score,
            total_questions=row.total_questions,
            time_spent_seconds=row.time_spent,
            completed_at=row.created_at,
            created=created,
        )

    @property
    def is_perfect(self) -> bool:
        return self.total_questions is not None and self.score == self.total_questions

    def to_response(self) -> AttemptResponse:
        return AttemptResponse(
            id=self.id,
            quiz_id=self.quiz_id,
            user_id=self.user_id,
            score=self.score,
            total_questions=self.total_questions,
            time_spent_seconds=self.time_spent_seconds,
            completed_at=self.completed_at,
        )


def is_synthesized_id(attempt_id: str) -> bool:
    return str(attempt_id).startswith(SYNTHESIZED_ID_PREFIX)


class QuizAttemptRecorder:
    """答题记录服务"""

    def __init__(
        self,
        session_factory=None,
        badges: Optional[BadgeEvaluator] = None,
        policy: Optional[RetryPolicy] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._session_factory = session_factory or async_session_factory
        self._badges = badges or badge_evaluator
        self._policy = policy or RetryPolicy(
            max_attempts=settings.ATTEMPT_MAX_TRIES,
            backoff_seconds=settings.ATTEMPT_RETRY_BACKOFF_SECONDS,
        )
        self._timeout = (
            timeout_seconds if timeout_seconds is not None else settings.QUIZ_SUBMIT_TIMEOUT_SECONDS
        )

    async def submit_attempt(
        self,
        quiz_id: str,
        user_id: str,
        score: int,
        total_questions: int,
        time_spent_seconds: Optional[int] = None,
        expected_total: Optional[int] = None,
    ) -> RecordedAttempt:
        """
        提交答题成绩（对 (quiz_id, user_id) 幂等）

        已有记录时直接返回，不论本次提交的分数是多少。

        Args:
            expected_total: 测验实际题数，给出时 total_questions 必须与之相等

        Raises:
            ValidationError: 首次提交时分数/题数/用时为负、分数超过题数或题数不符
        """
        try:
            result = await asyncio.wait_for(
                self._record(
                    quiz_id, user_id, score, total_questions, time_spent_seconds, expected_total
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            result = Result.failure(AttemptError(
                StorageErrorKind.TIMEOUT, f"写入超过 {self._timeout} 秒"
            ))

        if not result.ok:
            # 超时可能发生在校验之前，非法输入不生成降级结果
            self._validate(score, total_questions, time_spent_seconds, expected_total)
            error = result.error
            logger.warning(
                f"答题记录写入失败，返回降级结果: quiz_id={quiz_id}, user_id={user_id}, "
                f"kind={error.kind.value}, attempts={error.attempts}, {error.message}"
            )
            return self._synthesize(quiz_id, user_id, score, total_questions, time_spent_seconds)

        attempt = result.value
        if attempt.created:
            logger.info(
                f"答题记录已保存: id={attempt.id}, quiz_id={quiz_id}, user_id={user_id}, "
                f"score={score}/{total_questions}"
            )
            self._badges.schedule(
                self._evaluate_badges(attempt), label=f"quiz_badges:{user_id}"
            )
        return attempt

    # ==================== 写入流程 ====================

    async def _record(
        self,
        quiz_id: str,
        user_id: str,
        score: int,
        total_questions: int,
        time_spent_seconds: Optional[int],
        expected_total: Optional[int] = None,
    ) -> Result:
        existing = await self._lookup_quietly(quiz_id, user_id)
        if existing is not None:
            logger.info(f"已有答题记录，原样返回: quiz_id={quiz_id}, user_id={user_id}")
            return Result.success(RecordedAttempt.from_row(existing))

        self._validate(score, total_questions, time_spent_seconds, expected_total)

        payload = {
            "quiz_id": quiz_id,
            "user_id": user_id,
            "score": score,
            "total_questions": total_questions,
            "time_spent": time_spent_seconds,
        }
        attempt = 1
        while True:
            result = await self._insert(payload)
            if result.ok:
                return result

            error = replace(result.error, attempts=attempt)
            if error.kind == StorageErrorKind.CONFLICT:
                winner = await self._lookup_quietly(quiz_id, user_id)
                if winner is not None:
                    logger.info(f"并发提交冲突，返回已写入的记录: id={winner.id}")
                    return Result.success(RecordedAttempt.from_row(winner))
                return Result.failure(error)

            if not self._policy.should_retry(error, attempt):
                return Result.failure(error)

            logger.warning(
                f"答题记录写入失败，精简字段后重试: kind={error.kind.value}, "
                f"attempt={attempt}, {error.message}"
            )
            await self._policy.wait(attempt)
            attempt += 1
            payload = {"quiz_id": quiz_id, "user_id": user_id, "score": score}

    async def _insert(self, payload: dict) -> Result:
        try:
            row = await self._write(payload)
        except Exception as e:
            kind = classify_storage_error(e)
            return Result.failure(AttemptError(kind, str(e)))
        return Result.success(RecordedAttempt.from_row(row, created=True))

    async def _write(self, payload: dict) -> QuizAttempt:
        async with self._session_factory() as session:
            row = QuizAttempt(**payload)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                if classify_storage_error(e) == StorageErrorKind.CONFLICT:
                    raise ConflictError(
                        "该用户已提交过此测验",
                        quiz_id=payload["quiz_id"],
                        user_id=payload["user_id"],
                    ) from e
                raise
            await session.refresh(row)
        return row

    async def _lookup(self, quiz_id: str, user_id: str) -> Optional[QuizAttempt]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(QuizAttempt).where(
                    QuizAttempt.quiz_id == quiz_id,
                    QuizAttempt.user_id == user_id,
                )
            )
            return result.scalar_one_or_none()

    async def _lookup_quietly(self, quiz_id: str, user_id: str) -> Optional[QuizAttempt]:
        """查询失败只记日志，写入照常进行"""
        try:
            return await self._lookup(quiz_id, user_id)
        except Exception as e:
            logger.warning(f"查询已有答题记录失败: quiz_id={quiz_id}, user_id={user_id}, {e}")
            return None

    def _synthesize(
        self,
        quiz_id: str,
        user_id: str,
        score: int,
        total_questions: int,
        time_spent_seconds: Optional[int],
    ) -> RecordedAttempt:
        return RecordedAttempt(
            id=f"{SYNTHESIZED_ID_PREFIX}{uuid.uuid4().hex}",
            quiz_id=quiz_id,
            user_id=user_id,
            score=score,
            total_questions=total_questions,
            time_spent_seconds=time_spent_seconds,
            completed_at=utcnow(),
            synthesized=True,
        )

    @staticmethod
    def _validate(
        score: int,
        total_questions: int,
        time_spent_seconds: Optional[int],
        expected_total: Optional[int] = None,
    ) -> None:
        if score < 0 or total_questions < 0:
            raise ValidationError("分数和题数不能为负数")
        if time_spent_seconds is not None and time_spent_seconds < 0:
            raise ValidationError("用时不能为负数")
        if score > total_questions:
            raise ValidationError("分数不能超过题数")
        if expected_total is not None and total_questions != expected_total:
            raise ValidationError(
                f"题数不匹配：测验共 {expected_total} 题，提交为 {total_questions} 题"
            )

    # ==================== 排名与徽章 ====================

    async def provisional_rank(self, attempt: RecordedAttempt) -> int:
        """
        暂定排名 = 1 + 同一测验中分数不低于、用时不多于本次的其他记录数
        """
        conditions = [
            QuizAttempt.quiz_id == attempt.quiz_id,
            QuizAttempt.id != int(attempt.id),
            QuizAttempt.score >= attempt.score,
        ]
        if attempt.time_spent_seconds is not None:
            conditions.append(QuizAttempt.time_spent <= attempt.time_spent_seconds)
        async with self._session_factory() as session:
            ahead = (await session.execute(
                select(func.count(QuizAttempt.id)).where(*conditions)
            )).scalar() or 0
        return ahead + 1

    async def _evaluate_badges(self, attempt: RecordedAttempt) -> None:
        # 只有满分成绩参与排名类徽章
        rank = await self.provisional_rank(attempt) if attempt.is_perfect else None
        await self._badges.check_quiz_badges(attempt.user_id, rank)

    # ==================== 查询 ====================

    async def get_user_attempt(self, article_id: str, user_id: str) -> Optional[RecordedAttempt]:
        """某篇文章测验中该用户的成绩"""
        async with self._session_factory() as session:
            result = await session.execute(
                select(QuizAttempt)
                .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
                .where(Quiz.article_id == article_id, QuizAttempt.user_id == user_id)
            )
            row = result.scalar_one_or_none()
        return RecordedAttempt.from_row(row) if row is not None else None

    async def list_user_attempts(self, user_id: str) -> list[RecordedAttempt]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(QuizAttempt)
                .where(QuizAttempt.user_id == user_id)
                .order_by(QuizAttempt.created_at.desc(), QuizAttempt.id.desc())
            )
            rows = result.scalars().all()
        return [RecordedAttempt.from_row(r) for r in rows]


# 全局单例
quiz_recorder = QuizAttemptRecorder()
