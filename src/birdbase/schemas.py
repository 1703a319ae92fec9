"""
Normalized table rows.

Pydantic models for the four output tables. These define the canonical
schema consumed by the relational sink:

    Observations.species_id   → Species.id
    Observations.location_id  → Locations.id
    Observations.checklist_id → Checklists.id
    Checklists.location_id    → Locations.id

Locations and Checklists are created once per identifier and then filled in
place by the enrichment stages; every enrichment field is nullable.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# =============================================================================
# Species
# =============================================================================


class Species(BaseModel):
    """A bird species encountered at least once in the export."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    id: str = Field(..., description="eBird species code, or a slug of the common name")
    common_name: str
    scientific_name: str | None = None
    family: str | None = None
    conservation_status: str | None = None


# =============================================================================
# Locations
# =============================================================================


class CoordinateSource(StrEnum):
    """Which resolution tier produced a location's coordinates."""

    HOTSPOT = "hotspot"
    DISPLAY_NAME = "display_name"
    OVERRIDE = "override"


class Location(BaseModel):
    """A birding location, keyed by its canonical eBird LocID."""

    model_config = {"validate_assignment": True}

    id: str = Field(..., description="Canonical eBird location id (after remapping)")
    name: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    coordinate_source: CoordinateSource | None = None
    biome: str | None = None
    subbiome: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_classified(self) -> bool:
        return self.biome is not None


# =============================================================================
# Checklists
# =============================================================================


class Checklist(BaseModel):
    """A single outing (eBird submission)."""

    model_config = {"validate_assignment": True}

    id: str = Field(..., description="eBird submission id (SubID)")
    location_id: str
    date: date
    observed_at: datetime | None = Field(default=None, description="Local start time")
    duration_minutes: int | None = None
    species_count: int | None = None
    temperature_c: float | None = None
    wind_speed_kmh: float | None = None
    cloud_cover_pct: float | None = None
    precipitation_mm: float | None = None

    @property
    def has_weather(self) -> bool:
        return any(
            value is not None
            for value in (
                self.temperature_c,
                self.wind_speed_kmh,
                self.cloud_cover_pct,
                self.precipitation_mm,
            )
        )


# =============================================================================
# Observations
# =============================================================================


class Observation(BaseModel):
    """One sighting of one species on one checklist."""

    model_config = {"frozen": True}

    id: int = Field(..., ge=1)
    species_id: str
    date: date
    location_id: str
    checklist_id: str
