"""Historical hourly weather from Open-Meteo Archive API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from birdbase.datasources.weather.client import HOURLY_VARS, OPEN_METEO_HISTORICAL
from birdbase.services.http import session

if TYPE_CHECKING:
    from datetime import date


def fetch_historical_hourly(
    lat: float,
    lon: float,
    start_date: date,
    end_date: date | None = None,
    *,
    timeout: float | None = None,
) -> dict[str, Any]:
    """
    Fetch hourly weather for a date range from the Open-Meteo Archive API.

    The archive's finest granularity is hourly, so even a single observation
    time costs a whole-day request. ``timezone=auto`` makes the series line up
    with the local clock eBird records checklist start times in.

    Args:
        lat: Latitude.
        lon: Longitude.
        start_date: First day to fetch.
        end_date: Last day to fetch (defaults to ``start_date``).
        timeout: Per-request timeout.

    Returns:
        Raw API response dict with ``hourly`` key containing arrays.
    """
    params: dict[str, Any] = {
        "latitude": lat,
        "longitude": lon,
        "start_date": start_date.isoformat(),
        "end_date": (end_date or start_date).isoformat(),
        "hourly": HOURLY_VARS,
        "timezone": "auto",
    }
    kwargs: dict[str, Any] = {"params": params}
    if timeout is not None:
        kwargs["timeout"] = timeout
    resp = session.get(OPEN_METEO_HISTORICAL, **kwargs)
    resp.raise_for_status()
    result: dict[str, Any] = resp.json()
    return result
