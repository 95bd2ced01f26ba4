"""
GET /api/dashboard: latest fuel and power state of the caller's sites.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-008)

TODO:
- None
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fuelmon.api.deps import get_current_user, get_db, get_session_factory, get_settings
from fuelmon.api.schemas import DashboardResponse
from fuelmon.auth.bearer import UserIdentity
from fuelmon.config import ApiSettings
from fuelmon.db.store import StorageError, fetch_dashboard_sites
from fuelmon.services.dashboard import build_dashboard, resolve_view_mode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    user: Annotated[UserIdentity, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    settings: Annotated[ApiSettings, Depends(get_settings)],
) -> DashboardResponse:
    """Return the dashboard in the caller's view mode.

    Raises:
        HTTPException: 500 if the sites cannot be read.
    """
    view_mode = await resolve_view_mode(session_factory, user.id, user.role)

    try:
        sites = await fetch_dashboard_sites(db, user.id, user.role, settings.device_id_prefix)
    except StorageError:
        logger.exception("Failed to get dashboard sites for user %s", user.username)
        raise HTTPException(status_code=500, detail="Failed to get sites") from None

    data = await build_dashboard(
        session_factory,
        sites,
        view_mode,
        user.role,
        realtime_workers=settings.realtime_workers,
        closing_workers=settings.closing_workers,
        cache_ttl_s=settings.cache_ttl_s,
    )
    return DashboardResponse.build(data)
