"""
FastAPI application entry point for the fuel monitor API.

Settings are loaded and validated at startup, logging is configured, and
the database engine, session factory and BearerAuth instance are created
and stored on app.state for route handlers.

CHANGELOG:
- 2026-10-17: Configure Redis, CORS and pool size from loaded settings (STORY-012)
- 2026-10-14: Register dashboard router (STORY-008)
- 2026-10-13: Register sites and range routers (STORY-007)
- 2026-10-13: Register cumulative readings router (STORY-005)
- 2026-10-12: Initial creation (STORY-001)
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fuelmon.api.cumulative import router as cumulative_router
from fuelmon.api.dashboard import router as dashboard_router
from fuelmon.api.health import router as health_router
from fuelmon.api.sites import router as sites_router
from fuelmon.auth.bearer import BearerAuth
from fuelmon.cache.redis_client import init_redis
from fuelmon.config import ApiSettings, CorsSettings, connection_pool_size, parse_cors_origins
from fuelmon.db.session import dispose_engine, get_session_factory, init_engine
from fuelmon.logging_setup import configure_logging, log_config_summary

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: settings, logging and engine setup and teardown.

    Raises:
        pydantic.ValidationError: If required settings are missing or invalid.
    """
    settings = ApiSettings()  # type: ignore[call-arg]
    configure_logging(settings.log_level)
    log_config_summary(settings)

    init_engine(
        settings.database_url,
        pool_size=connection_pool_size(settings),
        max_overflow=settings.db_max_overflow,
    )
    init_redis(settings.redis_url)
    app.state.settings = settings
    app.state.session_factory = get_session_factory()
    app.state.auth = BearerAuth(settings.jwt_secret, settings.jwt_algorithm)

    logger.info("Settings validated, fuel monitor API ready")
    yield
    logger.info("Fuel monitor API shutting down")
    await dispose_engine()
    init_redis(None)


app = FastAPI(
    title="Fuel Monitor API",
    description="Generator fuel and power runtime aggregation for monitored sites.",
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_cors_origins(CorsSettings().cors_origins),
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(health_router)
app.include_router(cumulative_router)
app.include_router(sites_router)
app.include_router(dashboard_router)


@app.get("/")
async def root() -> dict:
    """Root health check endpoint.

    Returns:
        dict: JSON object with application status.
    """
    return {"status": "ok"}
