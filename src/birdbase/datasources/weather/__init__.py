"""Open-Meteo weather data source.

Fetches historical hourly weather from the Open-Meteo archive (free, no API key).

Public API:
  - historical: fetch_historical_hourly (archive API for past dates)
  - client: API URL, hourly variable names
"""

from birdbase.datasources.weather.client import HOURLY_VARS, OPEN_METEO_HISTORICAL
from birdbase.datasources.weather.historical import fetch_historical_hourly

__all__ = [
    "HOURLY_VARS",
    "OPEN_METEO_HISTORICAL",
    "fetch_historical_hourly",
]
