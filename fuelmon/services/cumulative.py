"""
Cumulative readings across many sites: single-day and range aggregation.

Single day: sites are partitioned into batches of ``batch_size``; a pool of
``workers`` batches runs at a time and every site inside a batch is
computed concurrently. Each site may be given a deadline, after which it
is reported as ERROR ("timeout") without holding up the batch.

Range: one SQL aggregate per site over already-persisted cumulative
readings, run through a pool of ``workers``. Sites with no day in the
window are left out.

In both paths, results are merged under a lock, the pool is joined, and
the final list is sorted by fuel consumed, highest first. Completion order
is not meaningful; ties keep merge order.

CHANGELOG:
- 2026-10-14: Bound single-day fan-out with a worker pool and add per-site
  deadline (STORY-006)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import asyncio
import datetime
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import chain

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fuelmon.db.store import fetch_existing_readings, sum_readings_for_range
from fuelmon.services.metrics import calculate_site_metrics, error_result
from fuelmon.services.pool import run_pool
from fuelmon.services.records import SiteRangeResult, SiteRef, SiteResult
from fuelmon.services.summary import (
    DailySummary,
    RangeSummary,
    build_daily_summary,
    build_range_summary,
    round_hours,
    round_volume,
)

logger = logging.getLogger(__name__)

BATCH_SIZE = 10
AGGREGATION_WORKERS = 10
RANGE_WORKERS = 15

TIMEOUT_MESSAGE = "timeout"


@dataclass(frozen=True)
class DailyAggregation:
    """Outcome of a single-day aggregation request."""

    day: datetime.date
    sites: list[SiteResult]
    summary: DailySummary


@dataclass(frozen=True)
class RangeAggregation:
    """Outcome of a range aggregation request."""

    sites: list[SiteRangeResult]
    summary: RangeSummary


def partition(sites: Sequence[SiteRef], batch_size: int) -> list[list[SiteRef]]:
    """Split sites into consecutive batches of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(sites[i : i + batch_size]) for i in range(0, len(sites), batch_size)]


def sort_by_fuel_consumed(results: Sequence[SiteResult]) -> list[SiteResult]:
    """Sort single-day results by litres consumed, highest first."""
    return sorted(results, key=lambda r: r.fuel_consumed, reverse=True)


async def _calculate_with_deadline(
    session_factory: async_sessionmaker[AsyncSession],
    site: SiteRef,
    day: datetime.date,
    existed: bool,
    timeout_s: float | None,
) -> SiteResult:
    if not timeout_s:
        return await calculate_site_metrics(session_factory, site, day, existed)
    try:
        return await asyncio.wait_for(
            calculate_site_metrics(session_factory, site, day, existed),
            timeout=timeout_s,
        )
    except TimeoutError:
        logger.warning(
            "Site %s (%s) exceeded %.1fs deadline", site.name, site.device_id, timeout_s
        )
        return error_result(site, TIMEOUT_MESSAGE)


async def aggregate_day(
    session_factory: async_sessionmaker[AsyncSession],
    sites: Sequence[SiteRef],
    day: datetime.date,
    existing: set[int],
    *,
    batch_size: int = BATCH_SIZE,
    workers: int = AGGREGATION_WORKERS,
    site_timeout_s: float | None = None,
) -> list[SiteResult]:
    """Compute and persist metrics for every site on ``day``.

    Args:
        session_factory: Factory used to open one session per concurrent unit.
        sites: Sites to process.
        day: Calendar day (UTC).
        existing: Ids of sites that already had a record for ``day``.
        batch_size: Sites per batch.
        workers: Batches processed concurrently.
        site_timeout_s: Optional per-site deadline in seconds.

    Returns:
        list[SiteResult]: One entry per site, sorted by fuel consumed desc.
    """

    async def _run_batch(batch: list[SiteRef]) -> list[SiteResult]:
        return list(
            await asyncio.gather(
                *(
                    _calculate_with_deadline(
                        session_factory, site, day, site.id in existing, site_timeout_s
                    )
                    for site in batch
                )
            )
        )

    batch_results = await run_pool(partition(sites, batch_size), _run_batch, workers)
    return sort_by_fuel_consumed(list(chain.from_iterable(batch_results)))


async def run_daily_aggregation(
    session_factory: async_sessionmaker[AsyncSession],
    sites: Sequence[SiteRef],
    day: datetime.date,
    *,
    batch_size: int = BATCH_SIZE,
    workers: int = AGGREGATION_WORKERS,
    site_timeout_s: float | None = None,
) -> DailyAggregation:
    """Run the single-day aggregation for already-authorised sites.

    Raises:
        StorageError: If the existing-records prefetch fails.
    """
    if not sites:
        return DailyAggregation(day=day, sites=[], summary=DailySummary())

    started = time.monotonic()
    logger.info("Processing %d sites for date %s", len(sites), day.isoformat())

    async with session_factory() as session:
        existing = await fetch_existing_readings(session, day, [s.id for s in sites])

    results = await aggregate_day(
        session_factory,
        sites,
        day,
        existing,
        batch_size=batch_size,
        workers=workers,
        site_timeout_s=site_timeout_s,
    )
    summary = build_daily_summary(results, len(sites))

    logger.info(
        "Cumulative readings completed for %s: processed=%d errors=%d "
        "fuel=%.1fL took=%.2fs",
        day.isoformat(),
        summary.processed_sites,
        summary.error_sites,
        summary.total_fuel_consumed,
        time.monotonic() - started,
    )
    return DailyAggregation(day=day, sites=results, summary=summary)


async def site_range_totals(
    session_factory: async_sessionmaker[AsyncSession],
    site: SiteRef,
    start: datetime.date,
    end: datetime.date,
) -> SiteRangeResult | None:
    """Aggregate one site's persisted readings over ``[start, end]``.

    Returns:
        SiteRangeResult | None: Rounded totals, or None if the site has no
            day in the window or the query failed.
    """
    try:
        async with session_factory() as session:
            totals = await sum_readings_for_range(session, site.id, start, end)
    except Exception:
        logger.warning("Error getting range data for site %s", site.name, exc_info=True)
        return None

    if totals.reading_days == 0 or totals.first_date is None or totals.last_date is None:
        return None

    return SiteRangeResult(
        site_id=site.id,
        site_name=site.name,
        device_id=site.device_id,
        total_fuel_consumed=round_volume(totals.total_fuel_consumed),
        total_fuel_topped=round_volume(totals.total_fuel_topped),
        total_generator_hours=round_hours(totals.total_generator_hours),
        total_zesa_hours=round_hours(totals.total_zesa_hours),
        total_offline_hours=round_hours(totals.total_offline_hours),
        reading_days=totals.reading_days,
        first_date=totals.first_date,
        last_date=totals.last_date,
    )


async def run_range_aggregation(
    session_factory: async_sessionmaker[AsyncSession],
    sites: Sequence[SiteRef],
    start: datetime.date,
    end: datetime.date,
    *,
    workers: int = RANGE_WORKERS,
) -> RangeAggregation:
    """Aggregate persisted readings for every site over ``[start, end]``."""
    started = time.monotonic()

    async def _unit(site: SiteRef) -> SiteRangeResult | None:
        return await site_range_totals(session_factory, site, start, end)

    results = await run_pool(sites, _unit, workers) if sites else []
    results.sort(key=lambda r: r.total_fuel_consumed, reverse=True)
    summary = build_range_summary(results, start, end)

    logger.info(
        "Cumulative readings range query completed: %s to %s, sites=%d, "
        "fuel=%.1fL, generator=%.2fh, zesa=%.2fh, took=%.2fs",
        start.isoformat(),
        end.isoformat(),
        len(results),
        summary.total_fuel_consumed,
        summary.total_generator_hours,
        summary.total_zesa_hours,
        time.monotonic() - started,
    )
    return RangeAggregation(sites=results, summary=summary)
