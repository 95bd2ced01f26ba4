"""
Tests for half-up rounding and the daily and range summaries.

CHANGELOG:
- 2026-10-13: Add range summary tests (STORY-007)
- 2026-10-12: Initial creation (STORY-005)

TODO:
- None
"""

import datetime

import pytest

from fuelmon.services.records import SiteRangeResult, SiteResult, SiteStatus
from fuelmon.services.summary import (
    DailySummary,
    build_daily_summary,
    build_range_summary,
    round_half_up,
    round_hours,
    round_volume,
)


def _result(fuel: float, status: SiteStatus = SiteStatus.CREATED, **kwargs) -> SiteResult:
    return SiteResult(
        site_id=kwargs.pop("site_id", 1),
        site_name="Site",
        device_id="dev",
        status=status,
        fuel_consumed=fuel,
        **kwargs,
    )


def _range(fuel: float, site_id: int = 1, **kwargs) -> SiteRangeResult:
    defaults = {
        "total_fuel_topped": 0.0,
        "total_generator_hours": 0.0,
        "total_zesa_hours": 0.0,
        "total_offline_hours": 0.0,
        "reading_days": 1,
        "first_date": datetime.date(2024, 1, 1),
        "last_date": datetime.date(2024, 1, 1),
    }
    defaults.update(kwargs)
    return SiteRangeResult(
        site_id=site_id,
        site_name=f"Site {site_id}",
        device_id=f"dev-{site_id}",
        total_fuel_consumed=fuel,
        **defaults,
    )


class TestRounding:
    """Half-up rounding, not banker's rounding."""

    @pytest.mark.parametrize(
        ("value", "places", "expected"),
        [(0.25, 1, 0.3), (0.35, 1, 0.4), (2.5, 0, 3.0), (1.005, 2, 1.01), (-0.25, 1, -0.3)],
    )
    def test_half_up(self, value: float, places: int, expected: float) -> None:
        assert round_half_up(value, places) == expected

    def test_volume_and_hours_precision(self) -> None:
        assert round_volume(12.345) == 12.3
        assert round_hours(12.345) == 12.35


class TestBuildDailySummary:
    """Errored sites are counted but not summed."""

    def test_error_sites_excluded_from_sums(self) -> None:
        results = [_result(10.0), _result(0.0, status=SiteStatus.ERROR, error="boom")]
        summary = build_daily_summary(results, total_sites=2)
        assert summary.total_sites == 2
        assert summary.processed_sites == 1
        assert summary.error_sites == 1
        assert summary.total_fuel_consumed == 10.0

    def test_created_and_updated_both_count_as_processed(self) -> None:
        results = [
            _result(1.04, generator_hours=1.111, zesa_hours=2.0, offline_hours=20.889),
            _result(2.0, status=SiteStatus.UPDATED, fuel_topped=5.55, generator_hours=0.5),
        ]
        summary = build_daily_summary(results, total_sites=2)
        assert summary.processed_sites == 2
        assert summary.total_fuel_consumed == 3.0
        assert summary.total_fuel_topped == 5.6
        assert summary.total_generator_hours == 1.61
        assert summary.total_zesa_hours == 2.0
        assert summary.total_offline_hours == 20.89

    def test_empty_results_give_zero_summary(self) -> None:
        assert build_daily_summary([], total_sites=0) == DailySummary()


class TestBuildRangeSummary:
    """Range summaries over returned sites."""

    def test_totals_average_and_days(self) -> None:
        start = datetime.date(2024, 1, 1)
        end = datetime.date(2024, 1, 3)
        results = [
            _range(30.0, site_id=1, total_generator_hours=5.125),
            _range(15.0, site_id=2, total_zesa_hours=40.0),
        ]
        summary = build_range_summary(results, start, end)
        assert summary.is_range is True
        assert summary.total_sites == 2
        assert summary.total_fuel_consumed == 45.0
        assert summary.average_fuel_per_site == 22.5
        assert summary.total_generator_hours == 5.13
        assert summary.total_zesa_hours == 40.0
        assert summary.days_included == 3

    def test_single_day_window(self) -> None:
        day = datetime.date(2024, 1, 1)
        summary = build_range_summary([_range(5.0)], day, day)
        assert summary.is_range is False
        assert summary.days_included == 1

    def test_no_sites_average_is_zero(self) -> None:
        day = datetime.date(2024, 1, 1)
        summary = build_range_summary([], day, day)
        assert summary.total_sites == 0
        assert summary.average_fuel_per_site == 0.0
