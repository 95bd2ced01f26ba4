"""
GET /api/sites: sites visible to the authenticated user.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fuelmon.api.deps import get_current_user, get_db
from fuelmon.api.schemas import SiteOut
from fuelmon.auth.bearer import UserIdentity
from fuelmon.db.store import StorageError, fetch_sites_for_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sites"])


@router.get("/sites", response_model=list[SiteOut])
async def list_sites(
    user: Annotated[UserIdentity, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[SiteOut]:
    """Return the active sites visible to the caller, ordered by name.

    Raises:
        HTTPException: 500 if the sites cannot be read.
    """
    try:
        sites = await fetch_sites_for_user(db, user.id, user.role)
    except StorageError:
        logger.exception("Failed to get sites for user %s", user.username)
        raise HTTPException(status_code=500, detail="Failed to get sites") from None
    return [SiteOut.from_ref(site) for site in sites]
