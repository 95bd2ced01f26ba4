"""
FastAPI dependency injection providers.

Provides database sessions, the session factory for concurrent
aggregation units, settings, and the authenticated user for use with
FastAPI's Depends() mechanism.

CHANGELOG:
- 2026-10-13: Add session factory and current user providers (STORY-005)
- 2026-10-12: Initial creation (STORY-002)
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fuelmon.auth.bearer import UserIdentity
from fuelmon.config import ApiSettings
from fuelmon.db.session import get_async_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a single request-scoped query.

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    async for session in get_async_session():
        yield session


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Return the session factory used to open one session per concurrent unit."""
    return request.app.state.session_factory


def get_settings(request: Request) -> ApiSettings:
    """Return the settings loaded at startup."""
    return request.app.state.settings


async def get_current_user(request: Request) -> UserIdentity:
    """Extract the authenticated user via BearerAuth on app.state.

    Raises:
        HTTPException: 401 if the token is missing or invalid.
    """
    return await request.app.state.auth.verify(request)
