"""
Cumulative readings endpoints: single-day calculation and range totals.

POST /api/cumulative-readings computes and persists the fuel and power
metrics of every site visible to the caller for one day. GET
/api/cumulative-readings/range sums already-persisted readings over an
inclusive date window.

Both endpoints answer 200 when the pre-flight steps succeed, even if
individual sites fail; per-site failures are reported in the body.

CHANGELOG:
- 2026-10-14: Pass pool sizes and per-site deadline from settings (STORY-006)
- 2026-10-13: Add range endpoint (STORY-007)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fuelmon.api.deps import get_current_user, get_db, get_session_factory, get_settings
from fuelmon.api.schemas import CumulativeRequest, CumulativeResponse, RangeResponse
from fuelmon.auth.bearer import UserIdentity
from fuelmon.config import ApiSettings
from fuelmon.db.store import StorageError, fetch_sites_for_user
from fuelmon.services.cumulative import run_daily_aggregation, run_range_aggregation
from fuelmon.services.dates import InvalidDateError, parse_date
from fuelmon.services.records import SiteRef

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cumulative-readings", tags=["cumulative-readings"])

DATE_FORMAT_HINT = "Use DD/MM/YYYY or YYYY-MM-DD"


async def _visible_sites(db: AsyncSession, user: UserIdentity) -> list[SiteRef]:
    """Resolve the caller's sites, mapping storage failures to 500."""
    try:
        return await fetch_sites_for_user(db, user.id, user.role)
    except StorageError:
        logger.exception("Failed to get sites for user %s", user.username)
        raise HTTPException(status_code=500, detail="Failed to get sites") from None


@router.post(
    "",
    response_model=CumulativeResponse,
    response_model_exclude_none=True,
)
async def calculate_cumulative_readings(
    user: Annotated[UserIdentity, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    settings: Annotated[ApiSettings, Depends(get_settings)],
    body: CumulativeRequest | None = None,
) -> CumulativeResponse:
    """Calculate and persist one day of metrics for the caller's sites.

    Args:
        user: The authenticated caller.
        db: Async database session for the site lookup.
        session_factory: Factory for per-site sessions.
        settings: Application settings.
        body: Optional ``{"date": "DD/MM/YYYY" | "YYYY-MM-DD"}``.

    Returns:
        CumulativeResponse: Per-site results and summary.

    Raises:
        HTTPException: 400 on a malformed date.
        HTTPException: 500 if sites or existing readings cannot be read.
    """
    try:
        day = parse_date(body.date if body else None)
    except InvalidDateError:
        raise HTTPException(
            status_code=400, detail=f"Invalid date format. {DATE_FORMAT_HINT}"
        ) from None

    sites = await _visible_sites(db, user)

    try:
        aggregation = await run_daily_aggregation(
            session_factory,
            sites,
            day,
            batch_size=settings.batch_size,
            workers=settings.aggregation_workers,
            site_timeout_s=settings.site_timeout_s,
        )
    except StorageError:
        logger.exception("Failed to check existing readings for %s", day.isoformat())
        raise HTTPException(
            status_code=500, detail="Failed to check existing readings"
        ) from None

    return CumulativeResponse.build(aggregation, user, datetime.now(UTC))


@router.get("/range", response_model=RangeResponse)
async def cumulative_readings_range(
    user: Annotated[UserIdentity, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    settings: Annotated[ApiSettings, Depends(get_settings)],
    start_date: Annotated[str | None, Query(alias="startDate")] = None,
    end_date: Annotated[str | None, Query(alias="endDate")] = None,
) -> RangeResponse:
    """Sum persisted cumulative readings over ``[startDate, endDate]``.

    ``endDate`` defaults to ``startDate``. Sites without any reading in the
    window are omitted.

    Raises:
        HTTPException: 400 on a missing or malformed date, or an end date
            before the start date.
        HTTPException: 500 if sites cannot be read.
    """
    if not start_date:
        raise HTTPException(status_code=400, detail="startDate parameter is required")

    try:
        start = parse_date(start_date)
    except InvalidDateError:
        raise HTTPException(
            status_code=400, detail=f"Invalid startDate format. {DATE_FORMAT_HINT}"
        ) from None

    end = start
    if end_date:
        try:
            end = parse_date(end_date)
        except InvalidDateError:
            raise HTTPException(
                status_code=400, detail=f"Invalid endDate format. {DATE_FORMAT_HINT}"
            ) from None
    if end < start:
        raise HTTPException(
            status_code=400, detail="endDate must not be before startDate"
        )

    sites = await _visible_sites(db, user)
    aggregation = await run_range_aggregation(
        session_factory, sites, start, end, workers=settings.range_workers
    )
    return RangeResponse.build(aggregation)
