"""
Pressroom 后端入口
创建 FastAPI 应用，挂载路由与异常处理，管理数据库和自动保存的生命周期
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pressroom.api.router import api_router
from pressroom.config import settings
from pressroom.core.autosave import autosave_buffer
from pressroom.core.badges import badge_evaluator
from pressroom.core.errors import register_error_handlers
from pressroom.database.connection import close_db, init_db

# 这些库在 INFO 级别输出过多
_NOISY_LOGGERS = (
    "aiosqlite",
    "sqlalchemy.engine",
    "apscheduler.scheduler",
    "apscheduler.executors.default",
)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


configure_logging()
logger = logging.getLogger(__name__)


async def _close_quietly(label: str, closer) -> None:
    """关闭步骤互不影响，单步失败只记日志"""
    try:
        await closer()
    except Exception as e:
        logger.error(f"{label}失败: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    启动：建库建表（失败则启动失败）-> 开启自动保存（失败只降级）
    关闭：写入剩余自动保存 -> 等待后台徽章检查 -> 释放数据库连接
    """
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} 启动中")
    os.makedirs(os.path.dirname(settings.DATABASE_PATH), exist_ok=True)
    await init_db()
    logger.info(f"数据库就绪: {settings.DATABASE_PATH}")

    try:
        autosave_buffer.start()
    except Exception as e:
        logger.error(f"自动保存未能启动，只能显式保存: {e}")

    logger.info(f"服务地址 http://{settings.HOST}:{settings.PORT}，文档 /docs")
    yield

    logger.info("开始关闭")
    await _close_quietly("写入剩余自动保存", autosave_buffer.shutdown)
    await _close_quietly("等待徽章检查", badge_evaluator.wait_idle)
    await _close_quietly("关闭数据库连接", close_db)
    logger.info("已关闭")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="草稿审核发布、文章测验与排行榜、徽章与实时通知",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
app.include_router(api_router)


@app.get("/", tags=["系统"])
async def index():
    return {"name": settings.APP_NAME, "version": settings.APP_VERSION, "api": "/api"}


@app.get("/health", tags=["系统"])
async def health():
    return {"status": "ok"}
