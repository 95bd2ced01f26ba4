"""
Async database engine and session factory.

Uses SQLAlchemy 2.x async engine with asyncpg driver for PostgreSQL.
Provides module-level engine and session factory singletons, plus an
async generator for FastAPI dependency injection.

The aggregation services run many storage queries concurrently. An
AsyncSession must not be shared between tasks, so those services receive
the session factory and open one session per concurrent unit. The
application sizes the pool from its concurrency limits (see
fuelmon.config.connection_pool_size); the constants below are defaults.

CHANGELOG:
- 2026-10-17: Take pool size and overflow from settings (STORY-012)
- 2026-10-13: Size the connection pool for concurrent per-site units (STORY-005)
- 2026-10-12: Initial creation (STORY-002)
"""

import os
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

# Module-level singletons, initialized lazily via init_engine().
async_engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None

POOL_SIZE = 25
MAX_OVERFLOW = 10
POOL_RECYCLE_S = 300


def _get_database_url() -> str:
    """Read DATABASE_URL from environment.

    Returns:
        str: The database connection URL.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is required")
    return url


def create_engine(
    url: str | None = None,
    pool_size: int = POOL_SIZE,
    max_overflow: int = MAX_OVERFLOW,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine from configuration.

    Args:
        url: Database URL. Defaults to the DATABASE_URL environment variable.
        pool_size: Number of pooled connections.
        max_overflow: Connections allowed beyond the pool size.

    Returns:
        AsyncEngine: Configured async engine for PostgreSQL via asyncpg.
    """
    return create_async_engine(
        url or _get_database_url(),
        echo=False,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_recycle=POOL_RECYCLE_S,
        pool_pre_ping=True,
    )


def create_session_factory(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory.

    Args:
        engine: Optional async engine. If not provided, creates one from config.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def init_engine(
    url: str | None = None,
    pool_size: int = POOL_SIZE,
    max_overflow: int = MAX_OVERFLOW,
) -> None:
    """Initialize the module-level async engine and session factory.

    Call this at application startup (e.g., in a FastAPI lifespan event).
    Safe to call multiple times; subsequent calls are no-ops.

    Args:
        url: Database URL. Defaults to the DATABASE_URL environment variable.
        pool_size: Number of pooled connections.
        max_overflow: Connections allowed beyond the pool size.
    """
    global async_engine, async_session_factory  # noqa: PLW0603
    if async_engine is None:
        async_engine = create_engine(url, pool_size, max_overflow)
        async_session_factory = create_session_factory(async_engine)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the module-level session factory, initializing it if needed.

    Returns:
        async_sessionmaker: The shared session factory.
    """
    init_engine()
    assert async_session_factory is not None, "Session factory not initialized"
    return async_session_factory


async def dispose_engine() -> None:
    """Dispose of the module-level engine and reset the singletons."""
    global async_engine, async_session_factory  # noqa: PLW0603
    if async_engine is not None:
        await async_engine.dispose()
    async_engine = None
    async_session_factory = None


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for FastAPI dependency injection.

    Initializes the engine on first call if not already done.
    The session is automatically closed after the request completes.

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    factory = get_session_factory()
    async with factory() as session:
        yield session
