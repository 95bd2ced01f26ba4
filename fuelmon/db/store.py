"""
Query and command functions over the fuel monitor database.

Every function takes an AsyncSession. Callers that run units concurrently
open one session per unit from the session factory; a session is never
shared between tasks.

Pre-flight reads shared by a whole request (site resolution, existing
record prefetch) wrap driver errors in StorageError so the HTTP layer can
fail the request. Per-unit reads let the original exception propagate to
the unit boundary, where it becomes a per-site outcome.

CHANGELOG:
- 2026-10-14: Add dashboard reads (STORY-008)
- 2026-10-13: Add range sums and upsert insert/update detection (STORY-005)
- 2026-10-12: Initial creation (STORY-003)

TODO:
- None
"""

import datetime
import logging
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, literal_column, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fuelmon.db.models import (
    AdminPreference,
    CumulativeReading,
    DailyClosingReading,
    SensorReading,
    Site,
    UserSiteAssignment,
)
from fuelmon.services.records import (
    FuelMetrics,
    PowerMetrics,
    RangeTotals,
    SensorSample,
    SiteRef,
    UpsertOutcome,
)
from fuelmon.services.states import ON_TOKENS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Sensor names
# ---------------------------------------------------------------------------

FUEL_LEVEL = "fuel_sensor_level"
FUEL_VOLUME = "fuel_sensor_volume"
FUEL_TEMP = "fuel_sensor_temp"
FUEL_TEMPERATURE = "fuel_sensor_temperature"
GENERATOR_STATE = "generator_state"
ZESA_STATE = "zesa_state"

DASHBOARD_SENSORS: tuple[str, ...] = (
    FUEL_LEVEL,
    FUEL_VOLUME,
    FUEL_TEMP,
    FUEL_TEMPERATURE,
    GENERATOR_STATE,
    ZESA_STATE,
)

ADMIN_ROLE = "admin"

# Columns overwritten when an existing (site_id, date) row is upserted.
_UPSERT_UPDATE_COLUMNS: tuple[str, ...] = (
    "total_fuel_consumed",
    "total_fuel_topped_up",
    "fuel_consumed_percent",
    "fuel_topped_up_percent",
    "total_generator_runtime",
    "total_zesa_runtime",
    "total_offline_time",
    "calculated_at",
)

_CENTS = Decimal("0.01")


class StorageError(RuntimeError):
    """Raised when a request-wide storage read fails."""


def _to_metric(value: float) -> Decimal:
    """Convert a computed metric to the two-decimal column representation."""
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def _to_float(value: Decimal | float | None) -> float:
    """Convert a NUMERIC aggregate (possibly NULL) to float."""
    return float(value) if value is not None else 0.0


def _site_ref(site: Site) -> SiteRef:
    return SiteRef(
        id=site.id,
        name=site.name,
        device_id=site.device_id,
        location=site.location,
        is_active=site.is_active,
        created_at=site.created_at,
    )


# ---------------------------------------------------------------------------
# Raw readings
# ---------------------------------------------------------------------------


async def fetch_samples(
    session: AsyncSession,
    device_id: str,
    sensor_names: Sequence[str],
    start: datetime.datetime,
    end: datetime.datetime,
) -> list[SensorSample]:
    """Fetch samples for a device and sensors within ``[start, end]``.

    Rows with a NULL value are excluded. Results are ordered by time ASC.

    Args:
        session: Async database session.
        device_id: Device to query.
        sensor_names: Sensor names to include.
        start: Inclusive window start.
        end: Inclusive window end.

    Returns:
        list[SensorSample]: Samples ordered by timestamp ascending.
    """
    stmt = (
        select(
            SensorReading.device_id,
            SensorReading.sensor_name,
            SensorReading.value,
            SensorReading.time,
        )
        .where(
            SensorReading.device_id == device_id,
            SensorReading.sensor_name.in_(list(sensor_names)),
            SensorReading.time >= start,
            SensorReading.time <= end,
            SensorReading.value.is_not(None),
        )
        .order_by(SensorReading.time.asc())
    )
    result = await session.execute(stmt)
    return [
        SensorSample(device_id=row[0], sensor_name=row[1], value=row[2], time=row[3])
        for row in result.all()
    ]


async def count_on_samples(
    session: AsyncSession,
    device_id: str,
    sensor_name: str,
    start: datetime.datetime,
    end: datetime.datetime,
) -> int:
    """Count ON-valued samples of a state sensor within ``[start, end]``.

    Uses the same ON tokens as ``fuelmon.services.states.is_on``.

    Returns:
        int: Number of ON samples in the window.
    """
    stmt = (
        select(func.count())
        .select_from(SensorReading)
        .where(
            SensorReading.device_id == device_id,
            SensorReading.sensor_name == sensor_name,
            SensorReading.time >= start,
            SensorReading.time <= end,
            SensorReading.value.is_not(None),
            func.lower(func.trim(SensorReading.value)).in_(sorted(ON_TOKENS)),
        )
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


# ---------------------------------------------------------------------------
# Cumulative readings
# ---------------------------------------------------------------------------


async def fetch_existing_readings(
    session: AsyncSession,
    day: datetime.date,
    site_ids: Sequence[int],
) -> set[int]:
    """Return the ids of sites that already have a record for ``day``.

    Args:
        session: Async database session.
        day: Calendar day to check.
        site_ids: Candidate site ids.

    Returns:
        set[int]: Site ids with an existing cumulative reading.

    Raises:
        StorageError: If the query fails.
    """
    if not site_ids:
        return set()

    stmt = select(CumulativeReading.site_id).where(
        CumulativeReading.date == day,
        CumulativeReading.site_id.in_(list(site_ids)),
    )
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        raise StorageError(f"failed to get existing cumulative readings: {exc}") from exc
    return set(result.scalars().all())


async def upsert_cumulative_reading(
    session: AsyncSession,
    site_id: int,
    device_id: str,
    day: datetime.date,
    fuel: FuelMetrics,
    power: PowerMetrics,
) -> UpsertOutcome:
    """Create or refresh the cumulative reading for ``(site_id, day)``.

    Uses PostgreSQL INSERT ... ON CONFLICT (site_id, date) DO UPDATE so the
    metric columns and ``calculated_at`` are overwritten while
    ``created_at`` keeps its original value. ``xmax = 0`` on the returned
    row distinguishes an insert from an update.

    Args:
        session: Async database session.
        site_id: Site primary key.
        device_id: Device of the site.
        day: Calendar day of the record.
        fuel: Fuel metrics for the day.
        power: Power metrics for the day.

    Returns:
        UpsertOutcome: Row id, whether it was created, and calculated_at.
    """
    now = datetime.datetime.now(datetime.UTC)
    stmt = pg_insert(CumulativeReading).values(
        site_id=site_id,
        device_id=device_id,
        date=day,
        total_fuel_consumed=_to_metric(fuel.total_fuel_consumed),
        total_fuel_topped_up=_to_metric(fuel.total_fuel_topped),
        fuel_consumed_percent=_to_metric(fuel.fuel_consumed_percent),
        fuel_topped_up_percent=_to_metric(fuel.fuel_topped_percent),
        total_generator_runtime=_to_metric(power.total_generator_runtime),
        total_zesa_runtime=_to_metric(power.total_zesa_runtime),
        total_offline_time=_to_metric(power.total_offline_time),
        calculated_at=now,
        created_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["site_id", "date"],
        set_={col: stmt.excluded[col] for col in _UPSERT_UPDATE_COLUMNS},
    ).returning(
        CumulativeReading.id,
        CumulativeReading.calculated_at,
        literal_column("(xmax = 0)").label("inserted"),
    )

    result = await session.execute(stmt)
    row = result.one()
    await session.commit()

    return UpsertOutcome(
        reading_id=row.id,
        created=bool(row.inserted),
        calculated_at=row.calculated_at,
    )


async def sum_readings_for_range(
    session: AsyncSession,
    site_id: int,
    start: datetime.date,
    end: datetime.date,
) -> RangeTotals:
    """Sum persisted cumulative readings of a site over ``[start, end]``.

    Returns:
        RangeTotals: Day count, metric sums and the first/last day present.
            Sums are 0 and dates None when no day matched.
    """
    stmt = select(
        func.count(CumulativeReading.id).label("reading_days"),
        func.sum(CumulativeReading.total_fuel_consumed).label("total_fuel_consumed"),
        func.sum(CumulativeReading.total_fuel_topped_up).label("total_fuel_topped"),
        func.sum(CumulativeReading.total_generator_runtime).label("total_generator_hours"),
        func.sum(CumulativeReading.total_zesa_runtime).label("total_zesa_hours"),
        func.sum(CumulativeReading.total_offline_time).label("total_offline_hours"),
        func.min(CumulativeReading.date).label("first_date"),
        func.max(CumulativeReading.date).label("last_date"),
    ).where(
        CumulativeReading.site_id == site_id,
        CumulativeReading.date >= start,
        CumulativeReading.date <= end,
    )
    result = await session.execute(stmt)
    row = result.mappings().one()

    return RangeTotals(
        reading_days=int(row["reading_days"] or 0),
        total_fuel_consumed=_to_float(row["total_fuel_consumed"]),
        total_fuel_topped=_to_float(row["total_fuel_topped"]),
        total_generator_hours=_to_float(row["total_generator_hours"]),
        total_zesa_hours=_to_float(row["total_zesa_hours"]),
        total_offline_hours=_to_float(row["total_offline_hours"]),
        first_date=row["first_date"],
        last_date=row["last_date"],
    )


# ---------------------------------------------------------------------------
# Sites
# ---------------------------------------------------------------------------


async def fetch_sites_for_user(
    session: AsyncSession,
    user_id: int,
    role: str,
    device_prefix: str = "",
) -> list[SiteRef]:
    """Return the active sites visible to a user, ordered by name.

    Admins see every active site; other roles see only sites assigned to
    them.

    Args:
        session: Async database session.
        user_id: Requesting user's id.
        role: Requesting user's role.
        device_prefix: Optional device-id prefix filter.

    Returns:
        list[SiteRef]: Visible sites.

    Raises:
        StorageError: If the query fails.
    """
    stmt = select(Site).where(Site.is_active.is_(True))
    if role != ADMIN_ROLE:
        stmt = stmt.join(UserSiteAssignment, UserSiteAssignment.site_id == Site.id).where(
            UserSiteAssignment.user_id == user_id
        )
    if device_prefix:
        stmt = stmt.where(Site.device_id.startswith(device_prefix, autoescape=True))
    stmt = stmt.order_by(Site.name)

    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        raise StorageError(f"failed to get sites: {exc}") from exc
    return [_site_ref(site) for site in result.scalars().all()]


async def fetch_dashboard_sites(
    session: AsyncSession,
    user_id: int,
    role: str,
    device_prefix: str,
) -> list[SiteRef]:
    """Sites shown on a user's dashboard, optionally limited to a device prefix.

    Raises:
        StorageError: If the query fails.
    """
    return await fetch_sites_for_user(session, user_id, role, device_prefix=device_prefix)


# ---------------------------------------------------------------------------
# Dashboard reads
# ---------------------------------------------------------------------------


async def fetch_latest_states(
    session: AsyncSession,
    device_id: str,
) -> dict[str, tuple[str, datetime.datetime]]:
    """Return the latest non-NULL value of each dashboard sensor for a device.

    Returns:
        dict: Sensor name -> (value, time). Sensors never reported are absent.
    """
    stmt = (
        select(SensorReading.sensor_name, SensorReading.value, SensorReading.time)
        .distinct(SensorReading.sensor_name)
        .where(
            SensorReading.device_id == device_id,
            SensorReading.sensor_name.in_(DASHBOARD_SENSORS),
            SensorReading.value.is_not(None),
        )
        .order_by(SensorReading.sensor_name, SensorReading.time.desc())
    )
    result = await session.execute(stmt)
    return {row[0]: (row[1], row[2]) for row in result.all()}


async def fetch_daily_closing(
    session: AsyncSession,
    site_id: int,
) -> DailyClosingReading | None:
    """Return the most recent daily closing row with a fuel level for a site."""
    stmt = (
        select(DailyClosingReading)
        .where(
            DailyClosingReading.site_id == site_id,
            DailyClosingReading.fuel_level.is_not(None),
        )
        .order_by(DailyClosingReading.captured_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def fetch_latest_value(
    session: AsyncSession,
    device_id: str,
    sensor_name: str,
) -> str | None:
    """Return the latest non-NULL raw value of one sensor, or None."""
    stmt = (
        select(SensorReading.value)
        .where(
            SensorReading.device_id == device_id,
            SensorReading.sensor_name == sensor_name,
            SensorReading.value.is_not(None),
        )
        .order_by(SensorReading.time.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def fetch_view_mode(session: AsyncSession, user_id: int) -> str | None:
    """Return an admin's stored dashboard view mode, or None if unset."""
    stmt = select(AdminPreference.view_mode).where(AdminPreference.user_id == user_id)
    result = await session.execute(stmt)
    return result.scalars().first()
