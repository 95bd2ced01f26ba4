"""
Per-site daily metrics: compute fuel and power concurrently, then upsert.

The fuel and power computations are independent and each runs in its own
session. Both must finish before the write. A failure in either skips the
write and is reported as an ERROR result; it never raises to the caller,
so sibling sites in a batch are unaffected.

CHANGELOG:
- 2026-10-14: Report upsert insert/update when no prefetch is given (STORY-006)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import asyncio
import datetime
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fuelmon.db.store import upsert_cumulative_reading
from fuelmon.services.fuel import calculate_fuel_changes
from fuelmon.services.power import calculate_power_runtimes
from fuelmon.services.records import (
    FuelMetrics,
    PowerMetrics,
    SiteRef,
    SiteResult,
    SiteStatus,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


async def in_session(
    session_factory: async_sessionmaker[AsyncSession],
    fn: Callable[..., Awaitable[R]],
    *args: Any,
) -> R:
    """Run ``fn(session, *args)`` in a fresh session from the factory."""
    async with session_factory() as session:
        return await fn(session, *args)


def error_result(site: SiteRef, message: str) -> SiteResult:
    """Build an ERROR entry for a site."""
    return SiteResult(
        site_id=site.id,
        site_name=site.name,
        device_id=site.device_id,
        status=SiteStatus.ERROR,
        error=message,
    )


def _describe(err: BaseException | None) -> str:
    return "none" if err is None else str(err) or type(err).__name__


async def calculate_site_metrics(
    session_factory: async_sessionmaker[AsyncSession],
    site: SiteRef,
    day: datetime.date,
    existed: bool | None = None,
) -> SiteResult:
    """Compute and persist one site's metrics for a day.

    Args:
        session_factory: Factory used to open one session per concurrent query.
        site: Site to process.
        day: Calendar day (UTC).
        existed: Whether a record for (site, day) was known to exist before
            this run. When None, the upsert itself reports insert vs update.

    Returns:
        SiteResult: CREATED/UPDATED with the metrics, or ERROR with a message.
    """
    logger.info("Processing site: %s (%s)", site.name, site.device_id)

    fuel_res, power_res = await asyncio.gather(
        in_session(session_factory, calculate_fuel_changes, site.device_id, day),
        in_session(session_factory, calculate_power_runtimes, site.device_id, day),
        return_exceptions=True,
    )
    fuel_err = fuel_res if isinstance(fuel_res, BaseException) else None
    power_err = power_res if isinstance(power_res, BaseException) else None

    if fuel_err is not None or power_err is not None:
        # Cancellation is not a per-site failure.
        for err in (fuel_err, power_err):
            if isinstance(err, asyncio.CancelledError):
                raise err
        logger.warning(
            "Error calculating metrics for site %s: fuel=%s, power=%s",
            site.name,
            _describe(fuel_err),
            _describe(power_err),
        )
        return error_result(
            site,
            f"Calculation error: fuel={_describe(fuel_err)}, power={_describe(power_err)}",
        )

    assert isinstance(fuel_res, FuelMetrics)
    assert isinstance(power_res, PowerMetrics)

    try:
        outcome = await in_session(
            session_factory,
            upsert_cumulative_reading,
            site.id,
            site.device_id,
            day,
            fuel_res,
            power_res,
        )
    except Exception as exc:
        logger.warning(
            "Error saving cumulative reading for site %s: %s", site.name, exc
        )
        return error_result(site, str(exc))

    if existed is None:
        created = outcome.created
    else:
        created = not existed

    return SiteResult(
        site_id=site.id,
        site_name=site.name,
        device_id=site.device_id,
        status=SiteStatus.CREATED if created else SiteStatus.UPDATED,
        fuel_consumed=fuel_res.total_fuel_consumed,
        fuel_topped=fuel_res.total_fuel_topped,
        fuel_consumed_percent=fuel_res.fuel_consumed_percent,
        fuel_topped_percent=fuel_res.fuel_topped_percent,
        generator_hours=power_res.total_generator_runtime,
        zesa_hours=power_res.total_zesa_runtime,
        offline_hours=power_res.total_offline_time,
        calculated_at=outcome.calculated_at,
    )
