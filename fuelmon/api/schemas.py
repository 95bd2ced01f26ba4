"""
Pydantic response and request models for the HTTP API.

All models serialise with camelCase keys through an alias generator and
accept either snake_case or camelCase on input. Builders convert the
service-layer records into these models.

CHANGELOG:
- 2026-10-14: Add dashboard models (STORY-008)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from fuelmon.auth.bearer import UserIdentity
from fuelmon.services.cumulative import DailyAggregation, RangeAggregation
from fuelmon.services.dashboard import Dashboard, SiteWithReading
from fuelmon.services.records import SiteRef


class CamelModel(BaseModel):
    """Base model emitting camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class UserInfo(CamelModel):
    username: str
    role: str


class DateRange(CamelModel):
    start: datetime.date
    end: datetime.date


class SiteOut(CamelModel):
    id: int
    name: str
    location: str
    device_id: str
    is_active: bool
    created_at: datetime.datetime | None = None

    @classmethod
    def from_ref(cls, site: SiteRef) -> SiteOut:
        return cls(
            id=site.id,
            name=site.name,
            location=site.location,
            device_id=site.device_id,
            is_active=site.is_active,
            created_at=site.created_at,
        )


# ---------------------------------------------------------------------------
# Single-day cumulative readings
# ---------------------------------------------------------------------------


class CumulativeRequest(CamelModel):
    """Body of POST /api/cumulative-readings. ``date`` defaults to today."""

    date: str | None = None


class SiteCumulativeOut(CamelModel):
    site_id: int
    site_name: str
    device_id: str
    fuel_consumed: float
    fuel_topped: float
    fuel_consumed_percent: float
    fuel_topped_percent: float
    generator_hours: float
    zesa_hours: float
    offline_hours: float
    status: str
    error: str | None = None
    calculated_at: datetime.datetime | None = None


class DailySummaryOut(CamelModel):
    total_sites: int
    processed_sites: int
    error_sites: int
    total_fuel_consumed: float
    total_fuel_topped: float
    total_generator_hours: float
    total_zesa_hours: float
    total_offline_hours: float


class CumulativeResponse(CamelModel):
    date: datetime.date
    processed_at: datetime.datetime
    user: UserInfo
    sites: list[SiteCumulativeOut]
    summary: DailySummaryOut

    @classmethod
    def build(
        cls,
        aggregation: DailyAggregation,
        user: UserIdentity,
        processed_at: datetime.datetime,
    ) -> CumulativeResponse:
        summary = aggregation.summary
        return cls(
            date=aggregation.day,
            processed_at=processed_at,
            user=UserInfo(username=user.username, role=user.role),
            sites=[
                SiteCumulativeOut(
                    site_id=r.site_id,
                    site_name=r.site_name,
                    device_id=r.device_id,
                    fuel_consumed=r.fuel_consumed,
                    fuel_topped=r.fuel_topped,
                    fuel_consumed_percent=r.fuel_consumed_percent,
                    fuel_topped_percent=r.fuel_topped_percent,
                    generator_hours=r.generator_hours,
                    zesa_hours=r.zesa_hours,
                    offline_hours=r.offline_hours,
                    status=r.status.value,
                    error=r.error,
                    calculated_at=r.calculated_at,
                )
                for r in aggregation.sites
            ],
            summary=DailySummaryOut(
                total_sites=summary.total_sites,
                processed_sites=summary.processed_sites,
                error_sites=summary.error_sites,
                total_fuel_consumed=summary.total_fuel_consumed,
                total_fuel_topped=summary.total_fuel_topped,
                total_generator_hours=summary.total_generator_hours,
                total_zesa_hours=summary.total_zesa_hours,
                total_offline_hours=summary.total_offline_hours,
            ),
        )


# ---------------------------------------------------------------------------
# Range cumulative readings
# ---------------------------------------------------------------------------


class SiteRangeOut(CamelModel):
    site_id: int
    site_name: str
    device_id: str
    total_fuel_consumed: float
    total_fuel_topped: float
    total_generator_hours: float
    total_zesa_hours: float
    total_offline_hours: float
    reading_days: int
    date_range: DateRange


class SummaryDateRange(DateRange):
    is_range: bool


class RangeSummaryOut(CamelModel):
    date_range: SummaryDateRange
    total_sites: int
    total_fuel_consumed: float
    total_fuel_topped: float
    total_generator_hours: float
    total_zesa_hours: float
    total_offline_hours: float
    average_fuel_per_site: float
    days_included: int


class RangeResponse(CamelModel):
    sites: list[SiteRangeOut]
    summary: RangeSummaryOut

    @classmethod
    def build(cls, aggregation: RangeAggregation) -> RangeResponse:
        summary = aggregation.summary
        return cls(
            sites=[
                SiteRangeOut(
                    site_id=r.site_id,
                    site_name=r.site_name,
                    device_id=r.device_id,
                    total_fuel_consumed=r.total_fuel_consumed,
                    total_fuel_topped=r.total_fuel_topped,
                    total_generator_hours=r.total_generator_hours,
                    total_zesa_hours=r.total_zesa_hours,
                    total_offline_hours=r.total_offline_hours,
                    reading_days=r.reading_days,
                    date_range=DateRange(start=r.first_date, end=r.last_date),
                )
                for r in aggregation.sites
            ],
            summary=RangeSummaryOut(
                date_range=SummaryDateRange(
                    start=summary.start, end=summary.end, is_range=summary.is_range
                ),
                total_sites=summary.total_sites,
                total_fuel_consumed=summary.total_fuel_consumed,
                total_fuel_topped=summary.total_fuel_topped,
                total_generator_hours=summary.total_generator_hours,
                total_zesa_hours=summary.total_zesa_hours,
                total_offline_hours=summary.total_offline_hours,
                average_fuel_per_site=summary.average_fuel_per_site,
                days_included=summary.days_included,
            ),
        )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class LatestReadingOut(CamelModel):
    site_id: int
    device_id: str
    fuel_level: str
    fuel_volume: str
    temperature: str | None = None
    generator_state: str
    zesa_state: str
    captured_at: datetime.datetime


class SiteWithReadingOut(SiteOut):
    latest_reading: LatestReadingOut
    generator_online: bool
    zesa_online: bool
    fuel_level_percentage: float
    alert_status: str

    @classmethod
    def from_entry(cls, entry: SiteWithReading) -> SiteWithReadingOut:
        site = entry.site
        reading = entry.reading
        return cls(
            id=site.id,
            name=site.name,
            location=site.location,
            device_id=site.device_id,
            is_active=site.is_active,
            created_at=site.created_at,
            latest_reading=LatestReadingOut(
                site_id=reading.site_id,
                device_id=reading.device_id,
                fuel_level=reading.fuel_level,
                fuel_volume=reading.fuel_volume,
                temperature=reading.temperature,
                generator_state=reading.generator_state,
                zesa_state=reading.zesa_state,
                captured_at=reading.captured_at,
            ),
            generator_online=entry.generator_online,
            zesa_online=entry.zesa_online,
            fuel_level_percentage=entry.fuel_level_percentage,
            alert_status=entry.alert_status.value,
        )


class SystemStatusOut(CamelModel):
    sites_online: int
    total_sites: int
    low_fuel_alerts: int
    generators_running: int
    zesa_running: int
    offline_sites: int


class ActivityItemOut(CamelModel):
    id: int
    site_id: int
    site_name: str
    event: str
    value: str
    timestamp: datetime.datetime
    status: str


class DashboardResponse(CamelModel):
    sites: list[SiteWithReadingOut]
    system_status: SystemStatusOut
    recent_activity: list[ActivityItemOut]
    view_mode: str

    @classmethod
    def build(cls, dashboard: Dashboard) -> DashboardResponse:
        status = dashboard.system_status
        return cls(
            sites=[SiteWithReadingOut.from_entry(e) for e in dashboard.sites],
            system_status=SystemStatusOut(
                sites_online=status.sites_online,
                total_sites=status.total_sites,
                low_fuel_alerts=status.low_fuel_alerts,
                generators_running=status.generators_running,
                zesa_running=status.zesa_running,
                offline_sites=status.offline_sites,
            ),
            recent_activity=[
                ActivityItemOut(
                    id=a.id,
                    site_id=a.site_id,
                    site_name=a.site_name,
                    event=a.event,
                    value=a.value,
                    timestamp=a.timestamp,
                    status=a.status,
                )
                for a in dashboard.recent_activity
            ],
            view_mode=dashboard.view_mode,
        )
