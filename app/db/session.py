# app/db/session.py
from __future__ import annotations

"""
Tubely — Database Engine & Session Dependency

- Async engine/session for FastAPI.
- The engine is created lazily on first use, so importing this module never
  needs a database driver (tests that run on the in-memory repository never
  touch it).
"""

from functools import lru_cache
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

# Pool knobs (ignored for SQLite)
_POOL_RECYCLE = 1800
_POOL_TIMEOUT = 30
_POOL_SIZE = 10
_MAX_OVERFLOW = 20


def make_engine(url: str) -> AsyncEngine:
    kwargs: Dict[str, Any] = {"pool_pre_ping": True, "future": True}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_recycle=_POOL_RECYCLE,
            pool_size=_POOL_SIZE,
            max_overflow=_MAX_OVERFLOW,
            pool_timeout=_POOL_TIMEOUT,
        )
    return create_async_engine(url, **kwargs)


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    return make_engine(settings.DATABASE_URL)


@lru_cache(maxsize=1)
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=get_engine(), class_=AsyncSession, expire_on_commit=False)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async SQLAlchemy session."""
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()


__all__ = ["make_engine", "get_engine", "get_session_maker", "get_async_db", "dispose_engine"]
