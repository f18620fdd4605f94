"""
FastAPI dependency injection providers.

Provides database sessions, the analytics service, application settings and
bearer authentication for use with FastAPI's Depends() mechanism.

CHANGELOG:
- 2026-10-13: Add get_analytics_service and require_client (STORY-105)
- 2026-10-12: Initial creation (STORY-101)
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from pv_analytics.config import ApiSettings
from pv_analytics.db.session import get_async_session, get_session_factory
from pv_analytics.services.analytics import AnalyticsService
from pv_analytics.services.store import SqlEntityDirectory, SqlReadingStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session.

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    async for session in get_async_session():
        yield session


def get_analytics_service() -> AnalyticsService:
    """Build an AnalyticsService backed by the SQL store.

    The store and directory open one session per query from the shared
    session factory.
    """
    factory = get_session_factory()
    return AnalyticsService(SqlReadingStore(factory), SqlEntityDirectory(factory))


def get_settings(request: Request) -> ApiSettings:
    """Return the settings loaded at startup."""
    return request.app.state.settings


async def require_client(request: Request) -> str:
    """Authenticate the request via BearerAuth on app.state.

    Returns:
        str: The client name bound to the bearer token.
    """
    return await request.app.state.auth.verify(request)
