"""eBird data source.

Public API:
  - hotspots: HotspotInfo, fetch_hotspot_info (registry coordinates by LocID)
  - checklists: ChecklistDetail, fetch_checklist (start time, duration, species count)
  - taxonomy: TaxonRecord, fetch_taxonomy (common name → code, scientific name, family)
  - export: ExportRow, read_export (the user's CSV download)
"""

from birdbase.datasources.ebird.checklists import ChecklistDetail, fetch_checklist
from birdbase.datasources.ebird.client import EBIRD_API
from birdbase.datasources.ebird.export import ExportRow, read_export
from birdbase.datasources.ebird.hotspots import HotspotInfo, fetch_hotspot_info
from birdbase.datasources.ebird.taxonomy import (
    TaxonRecord,
    fetch_taxonomy,
    taxonomy_from_dict,
    taxonomy_to_dict,
)

__all__ = [
    "EBIRD_API",
    "ChecklistDetail",
    "ExportRow",
    "HotspotInfo",
    "TaxonRecord",
    "fetch_checklist",
    "fetch_hotspot_info",
    "fetch_taxonomy",
    "read_export",
    "taxonomy_from_dict",
    "taxonomy_to_dict",
]
