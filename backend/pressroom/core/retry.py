"""
显式结果类型与重试策略

答题记录写入不使用层层嵌套的 try/except 分支，而是返回 Result，
由 RetryPolicy 决定哪些错误类型可以重试、重试几次、间隔多久。
"""

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from sqlalchemy.exc import (
    IntegrityError,
    OperationalError,
    ProgrammingError,
)

from pressroom.core.errors import ConflictError

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """成功值或错误值二选一"""

    value: Optional[T] = None
    error: Optional[E] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T, E]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: E) -> "Result[T, E]":
        return cls(error=error)


class StorageErrorKind(str, enum.Enum):
    """存储错误分类"""

    CONFLICT = "conflict"      # 唯一约束冲突（并发重复提交）
    SCHEMA = "schema"          # 字段/表结构不可用
    TRANSIENT = "transient"    # 一般 I/O 故障
    TIMEOUT = "timeout"        # 超出调用方的时间预算


@dataclass(frozen=True)
class AttemptError:
    """答题记录写入失败的描述"""

    kind: StorageErrorKind
    message: str
    attempts: int = 1


_SCHEMA_MARKERS = ("column", "schema", "no such table", "not null")


def classify_storage_error(exc: BaseException) -> StorageErrorKind:
    """把底层异常归类为 StorageErrorKind"""
    if isinstance(exc, ConflictError):
        return StorageErrorKind.CONFLICT
    if isinstance(exc, asyncio.TimeoutError):
        return StorageErrorKind.TIMEOUT
    text = str(getattr(exc, "orig", None) or exc).lower()
    if isinstance(exc, IntegrityError):
        if "unique" in text or "duplicate" in text:
            return StorageErrorKind.CONFLICT
        return StorageErrorKind.SCHEMA
    if isinstance(exc, (OperationalError, ProgrammingError)):
        if any(marker in text for marker in _SCHEMA_MARKERS):
            return StorageErrorKind.SCHEMA
        return StorageErrorKind.TRANSIENT
    return StorageErrorKind.TRANSIENT


@dataclass(frozen=True)
class RetryPolicy:
    """
    重试策略

    Attributes:
        max_attempts: 最多尝试次数（含首次）
        backoff_seconds: 基础退避时间，第 n 次重试等待 backoff * 2^(n-1)
        retryable: 允许重试的错误类型
    """

    max_attempts: int = 2
    backoff_seconds: float = 0.0
    retryable: frozenset = field(
        default_factory=lambda: frozenset(
            {StorageErrorKind.SCHEMA, StorageErrorKind.TRANSIENT}
        )
    )

    def should_retry(self, error: AttemptError, attempt: int) -> bool:
        return error.kind in self.retryable and attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        if self.backoff_seconds <= 0:
            return 0.0
        return self.backoff_seconds * (2 ** (attempt - 1))

    async def wait(self, attempt: int) -> None:
        delay = self.delay_for(attempt)
        if delay > 0:
            await asyncio.sleep(delay)
