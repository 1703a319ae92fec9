"""Weather Enricher.

Attaches one hourly historical weather record to each checklist: the hour
nearest the checklist's local start time, at the checklist location.

Rounding is half-up: 07:29 → 07:00, 07:30 → 08:00. A start time late enough
to round into the next day extends the request by one day so the matching
hour is in the series.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

import requests

from birdbase.datasources.weather.historical import fetch_historical_hourly
from birdbase.enrich.outcomes import Outcome, Resolved, Unresolved

if TYPE_CHECKING:
    from birdbase.enrich.outcomes import EnrichmentReport
    from birdbase.schemas import Checklist, Location

logger = logging.getLogger(__name__)

STAGE = "weather"

#: ``(lat, lon, start_date, end_date) -> Open-Meteo payload``
WeatherFetch = Callable[[float, float, date, date], dict[str, Any]]


@dataclass(frozen=True)
class WeatherReading:
    """One hour of weather at a checklist location."""

    time: datetime
    temperature_c: float | None
    wind_speed_kmh: float | None
    cloud_cover_pct: float | None
    precipitation_mm: float | None


def round_to_hour(dt: datetime) -> datetime:
    """Round to the nearest whole hour, half-up."""
    floor = dt.replace(minute=0, second=0, microsecond=0)
    if dt - floor >= timedelta(minutes=30):
        return floor + timedelta(hours=1)
    return floor


def _series_value(hourly: dict[str, Any], var: str, idx: int) -> float | None:
    series = hourly.get(var) or []
    if idx >= len(series) or series[idx] is None:
        return None
    return float(series[idx])


def match_hourly(payload: dict[str, Any], target: datetime) -> WeatherReading | None:
    """
    Select the hourly record whose timestamp equals ``target``.

    Args:
        payload: Open-Meteo response with an ``hourly`` block.
        target: Whole-hour local timestamp.

    Returns:
        The matching reading, or None if the series has no such hour.
    """
    hourly = payload.get("hourly") or {}
    for idx, raw in enumerate(hourly.get("time") or []):
        try:
            stamp = datetime.fromisoformat(raw)
        except (TypeError, ValueError):
            continue
        if stamp == target:
            return WeatherReading(
                time=stamp,
                temperature_c=_series_value(hourly, "temperature_2m", idx),
                wind_speed_kmh=_series_value(hourly, "wind_speed_10m", idx),
                cloud_cover_pct=_series_value(hourly, "cloud_cover", idx),
                precipitation_mm=_series_value(hourly, "precipitation", idx),
            )
    return None


def enrich_checklist(
    checklist: Checklist,
    location: Location | None,
    fetch: WeatherFetch = fetch_historical_hourly,
) -> Outcome[WeatherReading]:
    """Fetch and match the weather for one checklist. Never raises for service errors."""
    if checklist.observed_at is None:
        return Unresolved("no observation time")
    if location is None or location.latitude is None or location.longitude is None:
        return Unresolved("location has no coordinates")

    target = round_to_hour(checklist.observed_at)
    start = checklist.observed_at.date()
    end = max(start, target.date())
    try:
        payload = fetch(location.latitude, location.longitude, start, end)
    except requests.RequestException as e:
        return Unresolved(f"weather service error: {e}")

    reading = match_hourly(payload, target)
    if reading is None:
        return Unresolved(f"no hourly record at {target:%Y-%m-%d %H:%M}")
    return Resolved(reading, source="open-meteo")


def apply_reading(checklist: Checklist, reading: WeatherReading) -> None:
    checklist.temperature_c = reading.temperature_c
    checklist.wind_speed_kmh = reading.wind_speed_kmh
    checklist.cloud_cover_pct = reading.cloud_cover_pct
    checklist.precipitation_mm = reading.precipitation_mm


def enrich_checklists(
    checklists: dict[str, Checklist],
    locations: dict[str, Location],
    report: EnrichmentReport,
    *,
    fetch: WeatherFetch = fetch_historical_hourly,
    max_workers: int = 4,
) -> dict[str, Outcome[WeatherReading]]:
    """
    Enrich every checklist that has no weather yet.

    Checklists that cannot be looked up (no start time, unresolved location)
    are reported without a service call. Failures are logged and reported
    with the checklist's iteration index so a later run can target them.

    Returns:
        Outcome per attempted checklist id.
    """
    pending = [c for c in checklists.values() if not c.has_weather]
    report.attempt(STAGE, len(pending))
    outcomes: dict[str, Outcome[WeatherReading]] = {}
    if not pending:
        return outcomes

    index_of = {c.id: i for i, c in enumerate(pending)}

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="weather") as pool:
        futures = {
            pool.submit(enrich_checklist, c, locations.get(c.location_id), fetch): c.id
            for c in pending
        }
        for future in as_completed(futures):
            sub_id = futures[future]
            try:
                outcome = future.result()
            except Exception as e:
                logger.exception("Weather enrichment crashed for %s", sub_id)
                outcome = Unresolved(f"enricher error: {e}")
            outcomes[sub_id] = outcome

            if isinstance(outcome, Resolved):
                apply_reading(checklists[sub_id], outcome.value)
            else:
                logger.warning(
                    "[%d] checklist %s weather unresolved: %s",
                    index_of[sub_id],
                    sub_id,
                    outcome.reason,
                )
                report.record(STAGE, sub_id, outcome.reason, index=index_of[sub_id])

    return outcomes
