"""
Prefect flow for building the dataset.

Loads the inputs, runs the orchestrator, and writes the tables, the location
state and the enrichment report to the data store.

Run locally:
    python -m birdbase.flows.pipeline

Run with Prefect dashboard:
    prefect server start &
    python -m birdbase.flows.pipeline
"""

from __future__ import annotations

from datetime import timedelta
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests
from prefect import flow, task
from prefect.cache_policies import NO_CACHE

from birdbase import pipeline
from birdbase.config import Settings, get_settings
from birdbase.datasources import biomes, ebird
from birdbase.datasources.weather import fetch_historical_hourly
from birdbase.enrich import BiomeClassifier, CoordinateResolver
from birdbase.reference import (
    load_conservation_statuses,
    load_coordinate_overrides,
    load_location_remaps,
)
from birdbase.schemas import Location
from birdbase.store import DataStore
from birdbase.tables import write_tables

if TYPE_CHECKING:
    import geopandas as gpd

    from birdbase.datasources.ebird import ExportRow, TaxonRecord
    from birdbase.enrich import EnrichmentReport

# Relative paths within the store
TAXONOMY_PATH = Path("reference/ebird_taxonomy.json")
LOCATIONS_PATH = Path("historical/locations.json")
REPORT_PATH = Path("derived/report.json")

TAXONOMY_TTL = timedelta(days=90)


@task(name="load-export", cache_policy=NO_CACHE)
def load_export(path: Path) -> list[ExportRow]:
    """Read the raw eBird export (fatal if missing or malformed)."""
    return ebird.read_export(path)


@task(name="load-reference-tables", cache_policy=NO_CACHE)
def load_reference_tables(settings: Settings) -> dict[str, dict[str, Any]]:
    """Load the override, remap and conservation-status tables."""
    return {
        "overrides": load_coordinate_overrides(settings.overrides_path),
        "remaps": load_location_remaps(settings.remaps_path),
        "statuses": load_conservation_statuses(settings.statuses_path),
    }


@task(name="load-taxonomy", cache_policy=NO_CACHE)
def load_taxonomy(store: DataStore, api_key: str | None, timeout: float) -> dict[str, TaxonRecord]:
    """Load the eBird taxonomy from the reference tier, refreshing it every 90 days.

    A failed refresh falls back to the stale copy, or to an empty taxonomy
    (species are then emitted without family).
    """
    if store.is_fresh(TAXONOMY_PATH):
        return ebird.taxonomy_from_dict(store.read(TAXONOMY_PATH) or {})
    try:
        taxa = ebird.fetch_taxonomy(api_key, timeout=timeout)
    except requests.RequestException as e:
        print(f"Taxonomy refresh failed ({e}); using cached copy if present.")
        return ebird.taxonomy_from_dict(store.read(TAXONOMY_PATH) or {})
    store.write(
        TAXONOMY_PATH,
        ebird.taxonomy_to_dict(taxa),
        source="api.ebird.org",
        ttl=TAXONOMY_TTL,
    )
    return taxa


@task(name="load-biome-layer", cache_policy=NO_CACHE)
def load_biome_layer(settings: Settings) -> gpd.GeoDataFrame:
    """Load the biome polygon layer (fatal if missing or unreadable)."""
    return biomes.load_biome_layer(
        settings.biome_layer_path, settings.biome_field, settings.subbiome_field
    )


@task(name="load-previous-locations", cache_policy=NO_CACHE)
def load_previous_locations(store: DataStore) -> dict[str, Location]:
    """Load locations resolved by earlier runs."""
    data = store.read(LOCATIONS_PATH) or []
    return {row["id"]: Location.model_validate(row) for row in data}


@task(name="build-tables", cache_policy=NO_CACHE)
def build_tables(
    rows: list[ExportRow],
    layer: gpd.GeoDataFrame,
    reference: dict[str, dict[str, Any]],
    taxonomy: dict[str, TaxonRecord],
    previous: dict[str, Location],
    settings: Settings,
) -> pipeline.PipelineResult:
    """Wire the live services into the orchestrator and run it."""
    api_key = settings.api_key
    timeout = settings.request_timeout
    resolver = CoordinateResolver.default(
        reference["overrides"],
        lookup=partial(ebird.fetch_hotspot_info, api_key=api_key, timeout=timeout),
    )
    checklist_fetch = (
        partial(ebird.fetch_checklist, api_key=api_key, timeout=timeout) if api_key else None
    )
    if checklist_fetch is None:
        print("No eBird API key configured; checklist times come from the export only.")

    return pipeline.build_dataset(
        rows,
        resolver=resolver,
        weather_fetch=partial(fetch_historical_hourly, timeout=timeout),
        checklist_fetch=checklist_fetch,
        classifier=BiomeClassifier(layer, max_distance=settings.biome_max_distance),
        taxonomy=taxonomy,
        remaps=reference["remaps"],
        statuses=reference["statuses"],
        previous_locations=previous,
        max_workers=settings.max_workers,
    )


@task(name="save-outputs", cache_policy=NO_CACHE)
def save_outputs(store: DataStore, result: pipeline.PipelineResult) -> dict[str, Path]:
    """Write tables, location state and the enrichment report."""
    written = write_tables(result.tables, store)
    save_locations(store, result.locations)
    save_report(store, result.report)
    return written


def save_locations(store: DataStore, locations: dict[str, Location]) -> Path:
    """Persist every known location so the next run skips resolved ones."""
    rows = [loc.model_dump(mode="json") for loc in sorted(locations.values(), key=lambda x: x.id)]
    return store.write(LOCATIONS_PATH, rows, source="birdbase")


def save_report(store: DataStore, report: EnrichmentReport) -> Path:
    return store.write(REPORT_PATH, report.to_dict(), source="birdbase")


@flow(name="build-dataset", log_prints=True)
def build_dataset(settings: Settings | None = None) -> dict[str, Any]:
    """
    Build the four tables from the configured export.

    This is the main Prefect flow. It always writes all four tables when the
    preconditions hold; enrichment gaps are reported, not raised.
    """
    settings = settings or get_settings()
    store = DataStore(settings.data_dir)

    print(f"Reading export {settings.export_path}...")
    rows = load_export(settings.export_path)
    reference = load_reference_tables(settings)
    layer = load_biome_layer(settings)
    taxonomy = load_taxonomy(store, settings.api_key, settings.request_timeout)
    previous = load_previous_locations(store)
    print(
        f"Loaded {len(rows)} rows, {len(layer)} biome polygons, "
        f"{len(taxonomy)} taxa, {len(previous)} known locations"
    )

    result = build_tables(rows, layer, reference, taxonomy, previous, settings)
    written = save_outputs(store, result)
    print(f"Wrote tables: {result.tables.counts()}")
    print(result.report.summary())

    return {
        "counts": result.tables.counts(),
        "unresolved": result.report.unresolved_counts(),
        "outputs": {name: str(path) for name, path in written.items()},
    }


if __name__ == "__main__":
    summary = build_dataset()
    print(f"Flow complete: {summary}")
