"""
Reduction of per-site results into response summaries.

Volume and percentage totals are rounded to 1 decimal place and hour
totals to 2, half-up.

CHANGELOG:
- 2026-10-13: Add range summary (STORY-007)
- 2026-10-12: Initial creation (STORY-005)
"""

import datetime
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from fuelmon.services.dates import days_included
from fuelmon.services.records import SiteRangeResult, SiteResult, SiteStatus


def round_half_up(value: float, places: int) -> float:
    """Round to ``places`` decimals with half-up (not banker's) rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_volume(value: float) -> float:
    return round_half_up(value, 1)


def round_hours(value: float) -> float:
    return round_half_up(value, 2)


@dataclass(frozen=True)
class DailySummary:
    """Totals over the non-error sites of a single-day aggregation."""

    total_sites: int = 0
    processed_sites: int = 0
    error_sites: int = 0
    total_fuel_consumed: float = 0.0
    total_fuel_topped: float = 0.0
    total_generator_hours: float = 0.0
    total_zesa_hours: float = 0.0
    total_offline_hours: float = 0.0


@dataclass(frozen=True)
class RangeSummary:
    """Totals over the sites returned by a range aggregation."""

    start: datetime.date
    end: datetime.date
    is_range: bool
    total_sites: int
    total_fuel_consumed: float
    total_fuel_topped: float
    total_generator_hours: float
    total_zesa_hours: float
    total_offline_hours: float
    average_fuel_per_site: float
    days_included: int


def build_daily_summary(results: Sequence[SiteResult], total_sites: int) -> DailySummary:
    """Summarise single-day results.

    Errored sites are counted in ``error_sites`` and excluded from sums.

    Args:
        results: Per-site results, possibly including ERROR entries.
        total_sites: Number of sites that were eligible for processing.

    Returns:
        DailySummary: Counts and rounded totals.
    """
    fuel_consumed = fuel_topped = generator = zesa = offline = 0.0
    processed = errors = 0

    for result in results:
        if result.status is SiteStatus.ERROR:
            errors += 1
            continue
        processed += 1
        fuel_consumed += result.fuel_consumed
        fuel_topped += result.fuel_topped
        generator += result.generator_hours
        zesa += result.zesa_hours
        offline += result.offline_hours

    return DailySummary(
        total_sites=total_sites,
        processed_sites=processed,
        error_sites=errors,
        total_fuel_consumed=round_volume(fuel_consumed),
        total_fuel_topped=round_volume(fuel_topped),
        total_generator_hours=round_hours(generator),
        total_zesa_hours=round_hours(zesa),
        total_offline_hours=round_hours(offline),
    )


def build_range_summary(
    results: Sequence[SiteRangeResult],
    start: datetime.date,
    end: datetime.date,
) -> RangeSummary:
    """Summarise range results over the requested ``[start, end]`` window."""
    fuel_consumed = sum(r.total_fuel_consumed for r in results)
    average = fuel_consumed / len(results) if results else 0.0

    return RangeSummary(
        start=start,
        end=end,
        is_range=start != end,
        total_sites=len(results),
        total_fuel_consumed=round_volume(fuel_consumed),
        total_fuel_topped=round_volume(sum(r.total_fuel_topped for r in results)),
        total_generator_hours=round_hours(sum(r.total_generator_hours for r in results)),
        total_zesa_hours=round_hours(sum(r.total_zesa_hours for r in results)),
        total_offline_hours=round_hours(sum(r.total_offline_hours for r in results)),
        average_fuel_per_site=round_volume(average),
        days_included=days_included(start, end),
    )
