"""
SQLite 异步引擎与会话

写事务一律 BEGIN IMMEDIATE：会话从第一条语句起持有写锁，
并发写入方在 busy timeout 内排队。因此会话要短，
也不要在持有一个会话时去等另一个会话。
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pressroom.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False, "timeout": 30},
)


@event.listens_for(engine.sync_engine, "connect")
def _manual_transactions(dbapi_connection, connection_record):
    # 驱动不再隐式 BEGIN，SAVEPOINT 才能嵌套
    dbapi_connection.isolation_level = None


@event.listens_for(engine.sync_engine, "begin")
def _begin_immediate(conn):
    conn.exec_driver_sql("BEGIN IMMEDIATE")


async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _metadata():
    import pressroom.models  # noqa: F401  注册全部表
    from pressroom.models.base import Base

    return Base.metadata


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(_metadata().create_all)


async def drop_db():
    async with engine.begin() as conn:
        await conn.run_sync(_metadata().drop_all)


async def close_db():
    await engine.dispose()
