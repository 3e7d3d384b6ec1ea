"""
Async database setup with SQLAlchemy and aiosqlite.
"""
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from soundforge.config import DATABASE_URL, ensure_directories
from soundforge.models import Base


engine = create_async_engine(DATABASE_URL, echo=False, future=True)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def enable_wal_mode(db_engine: Optional[AsyncEngine] = None):
    """
    Switch SQLite to WAL so status polls can read while a check writes.

    No-op for other backends.
    """
    db_engine = db_engine or engine
    if db_engine.dialect.name != 'sqlite':
        return
    async with db_engine.begin() as conn:
        await conn.execute(text('PRAGMA journal_mode=WAL'))
        await conn.execute(text('PRAGMA synchronous=NORMAL'))


async def init_db():
    """Create missing tables, then enable WAL."""
    ensure_directories()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await enable_wal_mode()


async def close_db():
    await engine.dispose()


async def get_db():
    """
    FastAPI dependency yielding one session per request.

    Commits when the handler returns and rolls back if it raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
