"""Shared fixtures: export rows, hourly weather payloads, a small biome layer."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any

import geopandas as gpd
import pytest
from shapely.geometry import box

from birdbase.datasources.biomes import prepare_layer
from birdbase.datasources.ebird.export import ExportRow


def make_row(
    line: int,
    common_name: str,
    sub_id: str,
    loc_id: str,
    *,
    obs_date: date = date(2022, 6, 1),
    location_name: str | None = "Some Park",
    scientific_name: str | None = None,
    obs_time: time | None = None,
) -> ExportRow:
    """Build an ExportRow with sensible defaults."""
    return ExportRow(
        line=line,
        common_name=common_name,
        date=obs_date,
        loc_id=loc_id,
        sub_id=sub_id,
        location_name=location_name,
        scientific_name=scientific_name,
        time=obs_time,
    )


def hourly_payload(start: date, end: date | None = None) -> dict[str, Any]:
    """Open-Meteo style hourly payload; temperature is 10 + hour of day."""
    end = end or start
    times: list[str] = []
    temps: list[float] = []
    wind: list[float] = []
    cloud: list[float] = []
    precip: list[float] = []
    day = start
    while day <= end:
        for hour in range(24):
            stamp = datetime.combine(day, time(hour))
            times.append(stamp.strftime("%Y-%m-%dT%H:%M"))
            temps.append(10.0 + hour)
            wind.append(float(hour))
            cloud.append(float(hour * 4))
            precip.append(0.1 * hour)
        day += timedelta(days=1)
    return {
        "latitude": 45.5,
        "longitude": -122.6,
        "timezone": "America/Los_Angeles",
        "hourly": {
            "time": times,
            "temperature_2m": temps,
            "wind_speed_10m": wind,
            "cloud_cover": cloud,
            "precipitation": precip,
        },
    }


@pytest.fixture
def biome_layer() -> gpd.GeoDataFrame:
    """Two adjacent squares sharing the lon=10 edge, plus a Pacific NW block."""
    raw = gpd.GeoDataFrame(
        {
            "BIOME_NAME": ["Deserts", "Mangroves", "Temperate Conifer Forests"],
            "ECO_NAME": ["West Block", "East Block", "Central Pacific Northwest coastal forests"],
        },
        geometry=[box(0, 0, 10, 10), box(10, 0, 20, 10), box(-125, 40, -120, 50)],
        crs="EPSG:4326",
    )
    return prepare_layer(raw)
