"""
Database engine and session factory for the PV analytics store.

One asyncpg-backed engine is shared by the whole process and created on first
use. Request handlers get a session through ``get_async_session``; the
analytics reading store takes the factory itself and opens a short-lived
session per query, which lets the plant fan-out run its per-inverter reads
concurrently.

CHANGELOG:
- 2026-10-13: Expose get_session_factory for per-call store sessions (STORY-105)
- 2026-10-12: Initial creation (STORY-101)
"""

import os
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

async_engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_database_url() -> str:
    """Return DATABASE_URL (shared with the Alembic env).

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is required")
    return url


def create_engine(url: str | None = None) -> AsyncEngine:
    """Build an async engine; connections are checked before reuse.

    Args:
        url: SQLAlchemy URL. Defaults to DATABASE_URL.
    """
    return create_async_engine(
        url or _get_database_url(), echo=False, pool_pre_ping=True
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a factory of sessions bound to ``engine``.

    Objects stay readable after commit so route handlers can serialize
    freshly written rows without another round trip.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory, creating the engine if needed."""
    global async_engine, async_session_factory  # noqa: PLW0603
    if async_session_factory is None:
        async_engine = create_engine()
        async_session_factory = create_session_factory(async_engine)
    return async_session_factory


async def dispose_engine() -> None:
    """Close pooled connections; the next call to get_session_factory starts over."""
    global async_engine, async_session_factory  # noqa: PLW0603
    if async_engine is not None:
        await async_engine.dispose()
    async_engine = None
    async_session_factory = None


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session for the duration of a request."""
    async with get_session_factory()() as session:
        yield session
