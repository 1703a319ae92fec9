"""Tests for the Open-Meteo datasource and the weather enricher."""

from __future__ import annotations

from datetime import date, datetime
from unittest.mock import Mock, patch

import pytest
import requests
from conftest import hourly_payload

from birdbase.datasources.weather import fetch_historical_hourly
from birdbase.enrich.outcomes import EnrichmentReport, Resolved, Unresolved
from birdbase.enrich.weather import (
    enrich_checklist,
    enrich_checklists,
    match_hourly,
    round_to_hour,
)
from birdbase.schemas import Checklist, Location

PORTLAND = Location(id="L1", name="Mt. Tabor", latitude=45.5, longitude=-122.6)


def _checklist(sub_id: str = "S1", observed_at: datetime | None = None, loc: str = "L1") -> Checklist:
    return Checklist(id=sub_id, location_id=loc, date=date(2022, 6, 1), observed_at=observed_at)


class TestFetchHistoricalHourly:
    """Request shape for the archive API."""

    @patch("birdbase.datasources.weather.historical.session.get")
    def test_requests_single_day_hourly_series(self, mock_get: Mock) -> None:
        mock_response = Mock()
        mock_response.json.return_value = hourly_payload(date(2022, 6, 1))
        mock_response.raise_for_status = Mock()
        mock_get.return_value = mock_response

        result = fetch_historical_hourly(45.5, -122.6, date(2022, 6, 1))

        assert len(result["hourly"]["time"]) == 24
        params = mock_get.call_args.kwargs["params"]
        assert params["latitude"] == 45.5
        assert params["longitude"] == -122.6
        assert params["start_date"] == "2022-06-01"
        assert params["end_date"] == "2022-06-01"
        assert params["hourly"] == [
            "temperature_2m",
            "wind_speed_10m",
            "cloud_cover",
            "precipitation",
        ]
        assert params["timezone"] == "auto"

    @patch("birdbase.datasources.weather.historical.session.get")
    def test_http_error_propagates(self, mock_get: Mock) -> None:
        mock_response = Mock()
        mock_response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        mock_get.return_value = mock_response

        with pytest.raises(requests.HTTPError):
            fetch_historical_hourly(45.5, -122.6, date(2022, 6, 1))


class TestRoundToHour:
    """Half-up rounding to the nearest hour."""

    @pytest.mark.parametrize(
        ("observed", "expected"),
        [
            (datetime(2022, 6, 1, 7, 0), datetime(2022, 6, 1, 7, 0)),
            (datetime(2022, 6, 1, 7, 29), datetime(2022, 6, 1, 7, 0)),
            (datetime(2022, 6, 1, 7, 29, 59), datetime(2022, 6, 1, 7, 0)),
            (datetime(2022, 6, 1, 7, 30), datetime(2022, 6, 1, 8, 0)),
            (datetime(2022, 6, 1, 7, 31), datetime(2022, 6, 1, 8, 0)),
            (datetime(2022, 6, 1, 7, 42), datetime(2022, 6, 1, 8, 0)),
            (datetime(2022, 6, 1, 23, 45), datetime(2022, 6, 2, 0, 0)),
        ],
    )
    def test_round(self, observed: datetime, expected: datetime) -> None:
        assert round_to_hour(observed) == expected


class TestMatchHourly:
    """Selecting the hourly row."""

    def test_selects_exact_hour(self) -> None:
        reading = match_hourly(hourly_payload(date(2022, 6, 1)), datetime(2022, 6, 1, 7, 0))

        assert reading is not None
        assert reading.time == datetime(2022, 6, 1, 7, 0)
        assert reading.temperature_c == 17.0
        assert reading.wind_speed_kmh == 7.0
        assert reading.cloud_cover_pct == 28.0
        assert reading.precipitation_mm == pytest.approx(0.7)

    def test_no_matching_hour(self) -> None:
        assert match_hourly(hourly_payload(date(2022, 6, 1)), datetime(2022, 6, 2, 7, 0)) is None

    def test_empty_payload(self) -> None:
        assert match_hourly({}, datetime(2022, 6, 1, 7, 0)) is None

    def test_null_values_kept_as_none(self) -> None:
        payload = hourly_payload(date(2022, 6, 1))
        payload["hourly"]["precipitation"][7] = None
        reading = match_hourly(payload, datetime(2022, 6, 1, 7, 0))

        assert reading is not None
        assert reading.precipitation_mm is None
        assert reading.temperature_c == 17.0


class TestEnrichChecklist:
    """Single-checklist enrichment."""

    @pytest.mark.parametrize(
        ("observed", "hour"),
        [
            (datetime(2022, 6, 1, 7, 29), 7),
            (datetime(2022, 6, 1, 7, 31), 8),
            (datetime(2022, 6, 1, 7, 42), 8),
        ],
    )
    def test_half_hour_boundary(self, observed: datetime, hour: int) -> None:
        fetch = Mock(return_value=hourly_payload(date(2022, 6, 1)))
        outcome = enrich_checklist(_checklist(observed_at=observed), PORTLAND, fetch)

        assert isinstance(outcome, Resolved)
        assert outcome.value.time == datetime(2022, 6, 1, hour, 0)
        assert outcome.value.temperature_c == 10.0 + hour
        fetch.assert_called_once_with(45.5, -122.6, date(2022, 6, 1), date(2022, 6, 1))

    def test_rounding_past_midnight_extends_request(self) -> None:
        fetch = Mock(side_effect=lambda lat, lon, start, end: hourly_payload(start, end))
        outcome = enrich_checklist(
            _checklist(observed_at=datetime(2022, 6, 1, 23, 50)), PORTLAND, fetch
        )

        assert isinstance(outcome, Resolved)
        assert outcome.value.time == datetime(2022, 6, 2, 0, 0)
        fetch.assert_called_once_with(45.5, -122.6, date(2022, 6, 1), date(2022, 6, 2))

    def test_misaligned_series_is_unresolved(self) -> None:
        fetch = Mock(return_value=hourly_payload(date(2022, 5, 31)))
        outcome = enrich_checklist(
            _checklist(observed_at=datetime(2022, 6, 1, 7, 0)), PORTLAND, fetch
        )
        assert isinstance(outcome, Unresolved)
        assert "2022-06-01 07:00" in outcome.reason

    def test_service_error_is_unresolved(self) -> None:
        fetch = Mock(side_effect=requests.ConnectionError("connection reset"))
        outcome = enrich_checklist(
            _checklist(observed_at=datetime(2022, 6, 1, 7, 0)), PORTLAND, fetch
        )
        assert isinstance(outcome, Unresolved)
        assert "connection reset" in outcome.reason

    def test_no_time_skips_service(self) -> None:
        fetch = Mock()
        outcome = enrich_checklist(_checklist(observed_at=None), PORTLAND, fetch)
        assert isinstance(outcome, Unresolved)
        fetch.assert_not_called()

    def test_unresolved_location_skips_service(self) -> None:
        fetch = Mock()
        outcome = enrich_checklist(
            _checklist(observed_at=datetime(2022, 6, 1, 7, 0)), Location(id="L1"), fetch
        )
        assert isinstance(outcome, Unresolved)
        fetch.assert_not_called()


class TestEnrichChecklists:
    """Enrichment over the Checklist map."""

    def test_failures_do_not_block_other_checklists(self) -> None:
        def fetch(lat: float, lon: float, start: date, end: date) -> dict[str, object]:
            if lat == 10.0:
                raise requests.Timeout("read timed out")
            return hourly_payload(start, end)

        locations = {
            "L1": PORTLAND,
            "L2": Location(id="L2", latitude=10.0, longitude=10.0),
            "L3": Location(id="L3"),
        }
        checklists = {
            "S1": _checklist("S1", datetime(2022, 6, 1, 7, 42), "L1"),
            "S2": _checklist("S2", datetime(2022, 6, 1, 9, 0), "L2"),
            "S3": _checklist("S3", datetime(2022, 6, 1, 9, 0), "L3"),
        }
        report = EnrichmentReport()

        outcomes = enrich_checklists(checklists, locations, report, fetch=fetch, max_workers=3)

        assert isinstance(outcomes["S1"], Resolved)
        assert checklists["S1"].temperature_c == 18.0
        assert checklists["S1"].wind_speed_kmh == 8.0
        assert checklists["S1"].cloud_cover_pct == 32.0
        assert checklists["S2"].temperature_c is None
        assert checklists["S3"].temperature_c is None

        failed = {f.key: f for f in report.for_stage("weather")}
        assert set(failed) == {"S2", "S3"}
        assert "timed out" in failed["S2"].reason
        assert failed["S2"].index == 1

    def test_already_enriched_checklists_are_skipped(self) -> None:
        checklist = _checklist("S1", datetime(2022, 6, 1, 7, 0))
        checklist.temperature_c = 3.0
        fetch = Mock()

        outcomes = enrich_checklists({"S1": checklist}, {"L1": PORTLAND}, EnrichmentReport(), fetch=fetch)

        assert outcomes == {}
        fetch.assert_not_called()
        assert checklist.temperature_c == 3.0
