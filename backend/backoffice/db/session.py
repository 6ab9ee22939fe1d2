from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from backoffice.core.config import settings

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """
    Engine is built on first use, so importing the app (tests, alembic)
    never needs a reachable database.
    """
    global _engine, _sessionmaker
    if _engine is None:
        # asyncpg rejects sslmode/channel_binding, hence the cleaned URL.
        _engine = create_async_engine(
            settings.DATABASE_URL_ASYNC_CLEAN,
            pool_pre_ping=True,
            pool_recycle=300,
        )
        _sessionmaker = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _engine


async def dispose_engine() -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One AsyncSession per request; membership and quota lookups share it."""
    get_engine()
    async with _sessionmaker() as session:
        yield session
