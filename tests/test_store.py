"""
Tests for the store query functions against a mocked AsyncSession.

Verifies the SQL issued, how result rows are mapped, and that request-wide
reads wrap driver errors in StorageError.

CHANGELOG:
- 2026-10-14: Add dashboard read tests (STORY-008)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from fuelmon.db.store import (
    FUEL_LEVEL,
    GENERATOR_STATE,
    StorageError,
    count_on_samples,
    fetch_existing_readings,
    fetch_samples,
    fetch_sites_for_user,
    fetch_view_mode,
    sum_readings_for_range,
    upsert_cumulative_reading,
)
from fuelmon.services.records import FuelMetrics, PowerMetrics

START = datetime.datetime(2024, 1, 1, tzinfo=datetime.UTC)
END = datetime.datetime(2024, 1, 1, 23, 59, 59, 999999, tzinfo=datetime.UTC)
DAY = datetime.date(2024, 1, 1)


def _session(result: MagicMock) -> AsyncMock:
    session = AsyncMock()
    session.execute = AsyncMock(return_value=result)
    session.commit = AsyncMock()
    return session


def _sql(session: AsyncMock) -> str:
    return str(session.execute.call_args[0][0])


def _failing_session() -> AsyncMock:
    session = AsyncMock()
    session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
    return session


class TestFetchSamples:
    """Tests for ordered raw sample reads."""

    @pytest.mark.asyncio
    async def test_rows_become_samples(self) -> None:
        result = MagicMock()
        result.all.return_value = [("dev-1", FUEL_LEVEL, "50", START)]
        session = _session(result)

        samples = await fetch_samples(session, "dev-1", (FUEL_LEVEL,), START, END)

        assert len(samples) == 1
        assert samples[0].value == "50"
        assert samples[0].time == START
        sql = _sql(session)
        assert "sensor_readings" in sql
        assert "ORDER BY sensor_readings.time ASC" in sql
        assert "IS NOT NULL" in sql


class TestCountOnSamples:
    """Tests for the generator activity count."""

    @pytest.mark.asyncio
    async def test_counts_on_tokens(self) -> None:
        result = MagicMock()
        result.scalar_one.return_value = 4
        session = _session(result)

        count = await count_on_samples(session, "dev-1", GENERATOR_STATE, START, END)

        assert count == 4
        sql = _sql(session).lower()
        assert "count(*)" in sql
        assert "lower(trim(sensor_readings.value))" in sql


class TestFetchExistingReadings:
    """Tests for the existing-records prefetch."""

    @pytest.mark.asyncio
    async def test_returns_site_ids(self) -> None:
        result = MagicMock()
        result.scalars.return_value.all.return_value = [1, 3]
        session = _session(result)

        existing = await fetch_existing_readings(session, DAY, [1, 2, 3])

        assert existing == {1, 3}
        assert "cumulative_readings" in _sql(session)

    @pytest.mark.asyncio
    async def test_no_sites_skips_query(self) -> None:
        session = _session(MagicMock())

        assert await fetch_existing_readings(session, DAY, []) == set()
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_driver_error_becomes_storage_error(self) -> None:
        with pytest.raises(StorageError):
            await fetch_existing_readings(_failing_session(), DAY, [1])


class TestUpsertCumulativeReading:
    """Tests for the (site_id, date) upsert."""

    @pytest.mark.asyncio
    async def test_upsert_on_site_and_date(self) -> None:
        calculated_at = datetime.datetime(2024, 1, 2, tzinfo=datetime.UTC)
        result = MagicMock()
        result.one.return_value = SimpleNamespace(
            id=11, calculated_at=calculated_at, inserted=False
        )
        session = _session(result)

        outcome = await upsert_cumulative_reading(
            session,
            5,
            "dev-5",
            DAY,
            FuelMetrics(total_fuel_consumed=12.345),
            PowerMetrics(total_offline_time=24.0),
        )

        assert outcome.reading_id == 11
        assert outcome.created is False
        assert outcome.calculated_at == calculated_at
        session.commit.assert_awaited_once()

        stmt = session.execute.call_args[0][0]
        sql = str(stmt)
        assert "ON CONFLICT (site_id, date) DO UPDATE" in sql
        assert "RETURNING" in sql
        assert "created_at = excluded.created_at" not in sql
        assert "calculated_at = excluded.calculated_at" in sql
        params = stmt.compile().params
        assert params["total_fuel_consumed"] == Decimal("12.35")
        assert params["total_offline_time"] == Decimal("24.00")


class TestSumReadingsForRange:
    """Tests for the per-site range aggregate."""

    @pytest.mark.asyncio
    async def test_maps_aggregate_row(self) -> None:
        result = MagicMock()
        result.mappings.return_value.one.return_value = {
            "reading_days": 2,
            "total_fuel_consumed": Decimal("10.50"),
            "total_fuel_topped": None,
            "total_generator_hours": Decimal("4.25"),
            "total_zesa_hours": Decimal("30.00"),
            "total_offline_hours": Decimal("13.75"),
            "first_date": DAY,
            "last_date": datetime.date(2024, 1, 2),
        }
        session = _session(result)

        totals = await sum_readings_for_range(session, 1, DAY, datetime.date(2024, 1, 5))

        assert totals.reading_days == 2
        assert totals.total_fuel_consumed == 10.5
        assert totals.total_fuel_topped == 0.0
        assert totals.last_date == datetime.date(2024, 1, 2)
        sql = _sql(session)
        assert "sum(cumulative_readings.total_fuel_consumed)" in sql
        assert "min(cumulative_readings.date)" in sql


class TestFetchSitesForUser:
    """Role-scoped site visibility."""

    @staticmethod
    def _site_row(site_id: int, name: str) -> SimpleNamespace:
        return SimpleNamespace(
            id=site_id,
            name=name,
            device_id=f"dev-{site_id}",
            location="Zone A",
            is_active=True,
            created_at=START,
        )

    @pytest.mark.asyncio
    async def test_admin_sees_all_active_sites(self) -> None:
        result = MagicMock()
        result.scalars.return_value.all.return_value = [self._site_row(1, "Alpha")]
        session = _session(result)

        sites = await fetch_sites_for_user(session, 1, "admin")

        assert [s.name for s in sites] == ["Alpha"]
        sql = _sql(session)
        assert "user_site_assignments" not in sql
        assert "ORDER BY sites.name" in sql

    @pytest.mark.asyncio
    async def test_other_roles_use_assignments(self) -> None:
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        session = _session(result)

        await fetch_sites_for_user(session, 9, "user")

        sql = _sql(session)
        assert "JOIN user_site_assignments" in sql

    @pytest.mark.asyncio
    async def test_device_prefix_filter(self) -> None:
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        session = _session(result)

        await fetch_sites_for_user(session, 1, "admin", device_prefix="ZW-")

        assert "LIKE" in _sql(session)

    @pytest.mark.asyncio
    async def test_driver_error_becomes_storage_error(self) -> None:
        with pytest.raises(StorageError):
            await fetch_sites_for_user(_failing_session(), 1, "admin")


class TestFetchViewMode:
    """Tests for the admin preference read."""

    @pytest.mark.asyncio
    async def test_returns_stored_mode(self) -> None:
        result = MagicMock()
        result.scalars.return_value.first.return_value = "realtime"
        session = _session(result)

        assert await fetch_view_mode(session, 1) == "realtime"
        assert "admin_preferences" in _sql(session)
