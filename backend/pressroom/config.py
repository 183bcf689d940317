"""
配置项，来源优先级：环境变量 > backend/.env > 默认值
"""

import os
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/ 目录
BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=os.path.join(BACKEND_DIR, ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ========== 服务 ==========
    APP_NAME: str = "Pressroom"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False  # 开启后 run.py 以 reload 模式启动
    HOST: str = "0.0.0.0"
    PORT: int = 18900
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # ========== 存储 ==========
    DATABASE_PATH: str = os.path.join(BACKEND_DIR, "data", "pressroom.db")

    @property
    def DATABASE_URL(self) -> str:
        return f"sqlite+aiosqlite:///{self.DATABASE_PATH}"

    # ========== AI 远程函数 ==========
    # 为空时 AI 功能不可用；请求体里的 action 决定生成测验还是整理正文
    AI_FUNCTION_URL: Optional[str] = None
    AI_FUNCTION_KEY: Optional[str] = None
    AI_TIMEOUT_SECONDS: float = 60.0
    AI_MAX_RETRIES: int = 3

    # ========== 测验与成绩 ==========
    QUIZ_MAX_QUESTIONS: int = 10
    QUIZ_SUBMIT_TIMEOUT_SECONDS: float = 10.0  # 超时即返回降级成绩
    ATTEMPT_MAX_TRIES: int = 2  # 含首次
    ATTEMPT_RETRY_BACKOFF_SECONDS: float = 0.0
    LEADERBOARD_DEFAULT_LIMIT: int = 10
    LEADERBOARD_BADGE_THRESHOLD: int = 10  # 满分且名次不超过此值得 leaderboard_legend

    # ========== 草稿 ==========
    READING_WORDS_PER_MINUTE: int = 200
    EXCERPT_LENGTH: int = 200
    AUTOSAVE_INTERVAL_SECONDS: int = 30


settings = Settings()
