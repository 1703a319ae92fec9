"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, request helper
    └── {feature}.py      # Fetch/load functions (one per endpoint/concept)

Sources:
  - ebird/     eBird API 2.0 (hotspot info, checklist view, taxonomy) + export CSV
  - weather/   Open-Meteo archive (hourly historical weather)
  - biomes/    Static biome polygon layer (read with geopandas)

Fetch functions return dataclasses (or raw dicts for pass-through payloads)
and raise ``requests.RequestException`` on transport/HTTP failure. Deciding
whether a failure is fatal belongs to the caller (``enrich/`` treats every
per-item failure as an unresolved outcome).
"""
