"""Per-item enrichment stages.

Each stage takes the orchestrator's entity map, works out which items still
need enrichment, and answers each with ``Resolved`` or ``Unresolved``:

  - coordinates: Location → latitude/longitude (hotspot → display name → override)
  - weather: Checklist → hourly temperature, wind, cloud cover, precipitation
  - biomes: Location → biome/subbiome (intersects → nearest within threshold)

Rules:
  - A stage only writes to the map from the calling thread.
  - Items already enriched are skipped, so stages are safe to re-run.
  - Per-item failures go to the ``EnrichmentReport``; stages never raise for them.
"""

from birdbase.enrich.biomes import BiomeClassifier, BiomeMatch, classify_locations
from birdbase.enrich.coordinates import (
    CoordinateResolver,
    display_name_strategy,
    hotspot_strategy,
    override_strategy,
    resolve_locations,
)
from birdbase.enrich.outcomes import EnrichmentReport, ItemFailure, Resolved, Unresolved
from birdbase.enrich.weather import (
    WeatherReading,
    enrich_checklist,
    enrich_checklists,
    match_hourly,
    round_to_hour,
)

__all__ = [
    "BiomeClassifier",
    "BiomeMatch",
    "CoordinateResolver",
    "EnrichmentReport",
    "ItemFailure",
    "Resolved",
    "Unresolved",
    "WeatherReading",
    "classify_locations",
    "display_name_strategy",
    "enrich_checklist",
    "enrich_checklists",
    "hotspot_strategy",
    "match_hourly",
    "override_strategy",
    "resolve_locations",
    "round_to_hour",
]
