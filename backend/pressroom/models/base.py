"""
SQLAlchemy ORM 基类
所有模型都继承自此 Base，并共用时间与主键生成函数
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """返回当前 UTC 时间（兼容 Python 3.12+ 弃用 datetime.utcnow）"""
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    """生成字符串形式的 UUID 主键"""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """声明式基类"""
    pass
