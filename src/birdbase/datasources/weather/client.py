"""Open-Meteo API client constants and shared configuration.

API docs:
  - Archive: https://open-meteo.com/en/docs/historical-weather-api
"""

OPEN_METEO_HISTORICAL = "https://archive-api.open-meteo.com/v1/archive"

# Hourly variables we request from Open-Meteo (order matches WeatherReading)
HOURLY_VARS = [
    "temperature_2m",
    "wind_speed_10m",
    "cloud_cover",
    "precipitation",
]
