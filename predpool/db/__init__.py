"""Engine, sessions and schema bootstrap for the pool database.

Models live in ``predpool.db.pool``; request handlers take a session via
``Depends(get_db)``, which commits on success and rolls back on error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..config import settings
from .base import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Built on first use so importing a router never opens a connection.
_engine: "AsyncEngine | None" = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str) -> dict:
    options: dict = {"echo": settings.sql_echo}
    if not url.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_size=10, max_overflow=20)
    return options


def get_engine() -> "AsyncEngine":
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url, **_engine_options(settings.database_url)
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        # Rows stay readable after commit; response models read them post-handler.
        _session_factory = async_sessionmaker(
            get_engine(), class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request: commit when the handler returns, roll back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables from the ORM metadata.

    Development convenience only; staging and production run Alembic.
    """
    if settings.environment in {"production", "staging"}:
        raise RuntimeError("init_db is development-only; run `alembic upgrade head`")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = ["AsyncSession", "Base", "close_db", "get_db", "get_engine", "init_db"]
