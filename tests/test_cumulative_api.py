"""
Tests for the cumulative readings endpoints.

Validates date handling, the empty-site response, error mapping, camelCase
serialisation, and authentication. The aggregation services are patched;
their behaviour is covered in test_cumulative_service.py.

CHANGELOG:
- 2026-10-13: Add range endpoint tests (STORY-007)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import datetime
from unittest.mock import AsyncMock, MagicMock, patch

from conftest import auth_header
from fastapi.testclient import TestClient

from fuelmon.db.store import StorageError
from fuelmon.services.cumulative import DailyAggregation, RangeAggregation
from fuelmon.services.records import SiteRangeResult, SiteRef, SiteResult, SiteStatus
from fuelmon.services.summary import DailySummary, build_range_summary

URL = "/api/cumulative-readings"
RANGE_URL = "/api/cumulative-readings/range"
SITES = [SiteRef(id=1, name="Alpha", device_id="dev-1")]


def _mock_db_with_sites(sites: list) -> AsyncMock:
    """Create a mock AsyncSession whose execute returns the given Site rows."""
    session = AsyncMock()
    result = MagicMock()
    result.scalars.return_value.all.return_value = sites
    session.execute = AsyncMock(return_value=result)
    return session


def _override_db_factory(mock_session: AsyncMock):
    """Create a dependency override for get_db that yields mock_session."""

    async def _override():
        yield mock_session

    return _override


class TestCalculateCumulativeReadings:
    """POST /api/cumulative-readings."""

    def test_no_visible_sites_returns_empty_response(self, client: TestClient) -> None:
        """A user with no sites gets an empty, zeroed response with 200."""
        from fuelmon.api.deps import get_db
        from fuelmon.api.main import app

        app.dependency_overrides[get_db] = _override_db_factory(_mock_db_with_sites([]))
        try:
            response = client.post(URL, json={"date": "2024-01-01"}, headers=auth_header())
            assert response.status_code == 200
            data = response.json()
            assert data["date"] == "2024-01-01"
            assert data["user"] == {"username": "operator", "role": "user"}
            assert data["sites"] == []
            assert data["summary"] == {
                "totalSites": 0,
                "processedSites": 0,
                "errorSites": 0,
                "totalFuelConsumed": 0.0,
                "totalFuelTopped": 0.0,
                "totalGeneratorHours": 0.0,
                "totalZesaHours": 0.0,
                "totalOfflineHours": 0.0,
            }
            assert "processedAt" in data
        finally:
            app.dependency_overrides.clear()

    @patch("fuelmon.api.cumulative.run_daily_aggregation", new_callable=AsyncMock)
    @patch("fuelmon.api.cumulative.fetch_sites_for_user", new_callable=AsyncMock)
    def test_site_entries_are_camel_case(
        self, mock_sites: AsyncMock, mock_run: AsyncMock, client: TestClient
    ) -> None:
        calculated_at = datetime.datetime(2024, 3, 5, 6, 0, tzinfo=datetime.UTC)
        mock_sites.return_value = SITES + [SiteRef(id=2, name="Beta", device_id="dev-2")]
        mock_run.return_value = DailyAggregation(
            day=datetime.date(2024, 3, 5),
            sites=[
                SiteResult(
                    site_id=1,
                    site_name="Alpha",
                    device_id="dev-1",
                    status=SiteStatus.CREATED,
                    fuel_consumed=12.5,
                    generator_hours=3.0,
                    calculated_at=calculated_at,
                ),
                SiteResult(
                    site_id=2,
                    site_name="Beta",
                    device_id="dev-2",
                    status=SiteStatus.ERROR,
                    error="timeout",
                ),
            ],
            summary=DailySummary(total_sites=2, processed_sites=1, error_sites=1),
        )

        response = client.post(URL, json={"date": "05/03/2024"}, headers=auth_header())

        assert response.status_code == 200
        ok, failed = response.json()["sites"]
        assert ok["siteId"] == 1
        assert ok["fuelConsumed"] == 12.5
        assert ok["generatorHours"] == 3.0
        assert ok["status"] == "CREATED"
        assert "error" not in ok
        assert ok["calculatedAt"].startswith("2024-03-05T06:00:00")
        assert failed["status"] == "ERROR"
        assert failed["error"] == "timeout"
        assert "calculatedAt" not in failed
        assert mock_run.await_args.args[2] == datetime.date(2024, 3, 5)
        assert mock_run.await_args.kwargs["batch_size"] == 10

    @patch("fuelmon.api.cumulative.run_daily_aggregation", new_callable=AsyncMock)
    @patch("fuelmon.api.cumulative.fetch_sites_for_user", new_callable=AsyncMock)
    def test_missing_body_uses_today(
        self, mock_sites: AsyncMock, mock_run: AsyncMock, client: TestClient
    ) -> None:
        today = datetime.datetime.now(datetime.UTC).date()
        mock_sites.return_value = []
        mock_run.return_value = DailyAggregation(day=today, sites=[], summary=DailySummary())

        response = client.post(URL, headers=auth_header())

        assert response.status_code == 200
        assert mock_run.await_args.args[2] == today

    def test_invalid_date_returns_400(self, client: TestClient) -> None:
        response = client.post(URL, json={"date": "2024/13/45"}, headers=auth_header())
        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Invalid date format. Use DD/MM/YYYY or YYYY-MM-DD"
        )

    @patch("fuelmon.api.cumulative.fetch_sites_for_user", new_callable=AsyncMock)
    def test_site_lookup_failure_returns_500(
        self, mock_sites: AsyncMock, client: TestClient
    ) -> None:
        mock_sites.side_effect = StorageError("db down")
        response = client.post(URL, json={}, headers=auth_header())
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to get sites"

    @patch("fuelmon.api.cumulative.run_daily_aggregation", new_callable=AsyncMock)
    @patch("fuelmon.api.cumulative.fetch_sites_for_user", new_callable=AsyncMock)
    def test_prefetch_failure_returns_500(
        self, mock_sites: AsyncMock, mock_run: AsyncMock, client: TestClient
    ) -> None:
        mock_sites.return_value = SITES
        mock_run.side_effect = StorageError("db down")
        response = client.post(URL, json={}, headers=auth_header())
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to check existing readings"

    def test_requires_auth(self, client: TestClient) -> None:
        response = client.post(URL, json={})
        assert response.status_code == 401


class TestCumulativeReadingsRange:
    """GET /api/cumulative-readings/range."""

    def test_start_date_required(self, client: TestClient) -> None:
        response = client.get(RANGE_URL, headers=auth_header())
        assert response.status_code == 400
        assert response.json()["detail"] == "startDate parameter is required"

    def test_invalid_start_date(self, client: TestClient) -> None:
        response = client.get(RANGE_URL, params={"startDate": "bad"}, headers=auth_header())
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid startDate format.")

    def test_invalid_end_date(self, client: TestClient) -> None:
        response = client.get(
            RANGE_URL,
            params={"startDate": "2024-01-01", "endDate": "01-02-2024"},
            headers=auth_header(),
        )
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid endDate format.")

    def test_end_before_start(self, client: TestClient) -> None:
        response = client.get(
            RANGE_URL,
            params={"startDate": "2024-01-05", "endDate": "2024-01-01"},
            headers=auth_header(),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "endDate must not be before startDate"

    @patch("fuelmon.api.cumulative.run_range_aggregation", new_callable=AsyncMock)
    @patch("fuelmon.api.cumulative.fetch_sites_for_user", new_callable=AsyncMock)
    def test_range_response_shape(
        self, mock_sites: AsyncMock, mock_run: AsyncMock, client: TestClient
    ) -> None:
        start, end = datetime.date(2024, 1, 1), datetime.date(2024, 1, 3)
        site = SiteRangeResult(
            site_id=1,
            site_name="Alpha",
            device_id="dev-1",
            total_fuel_consumed=30.0,
            total_fuel_topped=10.0,
            total_generator_hours=12.5,
            total_zesa_hours=40.0,
            total_offline_hours=19.5,
            reading_days=2,
            first_date=datetime.date(2024, 1, 2),
            last_date=end,
        )
        mock_sites.return_value = SITES
        mock_run.return_value = RangeAggregation(
            sites=[site], summary=build_range_summary([site], start, end)
        )

        response = client.get(
            RANGE_URL,
            params={"startDate": "01/01/2024", "endDate": "2024-01-03"},
            headers=auth_header(),
        )

        assert response.status_code == 200
        data = response.json()
        entry = data["sites"][0]
        assert entry["totalFuelConsumed"] == 30.0
        assert entry["readingDays"] == 2
        assert entry["dateRange"] == {"start": "2024-01-02", "end": "2024-01-03"}
        summary = data["summary"]
        assert summary["dateRange"] == {
            "start": "2024-01-01",
            "end": "2024-01-03",
            "isRange": True,
        }
        assert summary["daysIncluded"] == 3
        assert summary["averageFuelPerSite"] == 30.0
        assert mock_run.await_args.args[2:4] == (start, end)
        assert mock_run.await_args.kwargs["workers"] == 15

    @patch("fuelmon.api.cumulative.run_range_aggregation", new_callable=AsyncMock)
    @patch("fuelmon.api.cumulative.fetch_sites_for_user", new_callable=AsyncMock)
    def test_end_date_defaults_to_start(
        self, mock_sites: AsyncMock, mock_run: AsyncMock, client: TestClient
    ) -> None:
        day = datetime.date(2024, 1, 1)
        mock_sites.return_value = []
        mock_run.return_value = RangeAggregation(
            sites=[], summary=build_range_summary([], day, day)
        )

        response = client.get(
            RANGE_URL, params={"startDate": "2024-01-01"}, headers=auth_header()
        )

        assert response.status_code == 200
        assert response.json()["summary"]["daysIncluded"] == 1
        assert response.json()["summary"]["dateRange"]["isRange"] is False
        assert mock_run.await_args.args[2:4] == (day, day)
