"""
草稿自动保存
编辑器的增量修改先暂存在内存，按固定间隔（默认 30 秒）统一写入草稿仓库。
同一草稿的多次修改合并，后写覆盖先写；显式保存时丢弃该草稿的暂存修改。
"""

import logging
from dataclasses import dataclass
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pressroom.config import settings
from pressroom.core.draft_repository import DraftRepository, draft_repository
from pressroom.core.errors import PressroomError
from pressroom.schemas.draft import DraftUpdate

logger = logging.getLogger(__name__)


@dataclass
class PendingEdit:
    user_id: str
    update: DraftUpdate


class AutosaveBuffer:
    """自动保存缓冲区"""

    def __init__(
        self,
        repository: Optional[DraftRepository] = None,
        interval_seconds: Optional[int] = None,
    ):
        self._repository = repository or draft_repository
        self._interval = (
            interval_seconds if interval_seconds is not None else settings.AUTOSAVE_INTERVAL_SECONDS
        )
        self._pending: dict[str, PendingEdit] = {}
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    # ==================== 暂存 ====================

    def stage(self, draft_id: str, user_id: str, update: DraftUpdate) -> DraftUpdate:
        """暂存一次修改，与该草稿已暂存的修改按字段合并"""
        current = self._pending.get(draft_id)
        if current is not None and current.user_id == user_id:
            merged = current.update.model_dump(exclude_unset=True)
            merged.update(update.model_dump(exclude_unset=True))
            update = DraftUpdate(**merged)
        self._pending[draft_id] = PendingEdit(user_id=user_id, update=update)
        logger.debug(f"暂存草稿修改: id={draft_id}, fields={sorted(update.model_fields_set)}")
        return update

    def discard(self, draft_id: str) -> None:
        self._pending.pop(draft_id, None)

    def clear(self) -> None:
        self._pending.clear()

    def pending(self, draft_id: str) -> Optional[DraftUpdate]:
        edit = self._pending.get(draft_id)
        return edit.update if edit else None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ==================== 写入 ====================

    async def flush(self) -> int:
        """
        把所有暂存修改写入草稿仓库

        草稿已冻结、已删除或无权编辑时该修改被丢弃；存储故障时保留修改，等下一轮再试

        Returns:
            int: 成功写入的草稿数
        """
        if not self._pending:
            return 0

        batch, self._pending = self._pending, {}
        saved = 0
        for draft_id, edit in batch.items():
            try:
                await self._repository.save(draft_id, edit.user_id, edit.update)
                saved += 1
            except PressroomError as e:
                if e.status_code >= 500:
                    self._pending.setdefault(draft_id, edit)
                    logger.warning(f"自动保存失败，下一轮重试: id={draft_id}, {e.message}")
                else:
                    logger.warning(f"自动保存被丢弃: id={draft_id}, {e.message}")
            except Exception as e:
                # 期间又有新的修改时以新修改为准
                self._pending.setdefault(draft_id, edit)
                logger.error(f"自动保存异常，下一轮重试: id={draft_id}, {e}")

        if saved:
            logger.info(f"自动保存完成: {saved} 篇草稿")
        return saved

    # ==================== 调度 ====================

    def start(self):
        """启动定时写入"""
        if self._running:
            return
        # 在运行中的事件循环里创建，调度器绑定当前循环
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.flush,
            IntervalTrigger(seconds=self._interval),
            id="autosave_flush",
            name="草稿自动保存",
            replace_existing=True,
        )
        self.scheduler.start()
        self._running = True
        logger.info(f"草稿自动保存已启动（间隔 {self._interval} 秒）")

    async def shutdown(self):
        """关闭调度器，并把剩余的暂存修改写入"""
        if self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
        await self.flush()
        logger.info("草稿自动保存已关闭")


# 全局单例
autosave_buffer = AutosaveBuffer()
