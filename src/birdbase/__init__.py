"""birdbase - normalized tables from a personal eBird export.

Architecture::

    datasources/   External inputs (eBird API + export CSV, Open-Meteo archive, biome polygons)
    reference/     Externally supplied static tables (coordinate overrides, LocID remaps, statuses)
    enrich/        Per-item enrichment stages (coordinates → weather → biomes)
    pipeline.py    Orchestrator: sequences stages, owns the entity maps, assembles tables
    store.py       Tiered cache with TTL (reference → historical → derived)
    flows/         Prefect orchestration around the pipeline stages
    services/      Shared utilities (HTTP client with retry and default timeout)

Data flow: export rows → remap/dedupe → locations → coordinates → checklists
→ weather → biomes → Species / Observations / Locations / Checklists.
"""

__version__ = "0.1.0"

from birdbase.config import Settings
from birdbase.schemas import Checklist, Location, Observation, Species

__all__ = ["Checklist", "Location", "Observation", "Settings", "Species", "__version__"]
