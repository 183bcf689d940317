"""
测试公共夹具
数据库使用临时 SQLite 文件；每个测试前重建全部表
"""

import os
import tempfile

# 必须在导入 pressroom 之前设置，engine 在导入时创建
_TMP_DIR = tempfile.mkdtemp(prefix="pressroom-test-")
os.environ["DATABASE_PATH"] = os.path.join(_TMP_DIR, "test.db")
os.environ["AI_FUNCTION_URL"] = ""
os.environ["ATTEMPT_RETRY_BACKOFF_SECONDS"] = "0"

import httpx  # noqa: E402
import pytest  # noqa: E402

from pressroom.core.autosave import autosave_buffer  # noqa: E402
from pressroom.core.badges import badge_evaluator  # noqa: E402
from pressroom.database.connection import (  # noqa: E402
    drop_db,
    engine,
    init_db,
)
from pressroom.main import app  # noqa: E402


@pytest.fixture(autouse=True)
async def fresh_db():
    await drop_db()
    await init_db()
    yield
    await badge_evaluator.wait_idle()
    autosave_buffer.clear()
    await engine.dispose()


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
