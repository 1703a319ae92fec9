"""Pipeline Orchestrator.

Turns export rows into the four normalized tables::

    rows → remap + dedupe → Locations → coordinates
         → Checklists → checklist details → weather
         → biomes → Species + Observations → assemble_tables

The orchestrator owns the Location and Checklist maps and hands them to each
stage in turn; stages fill them in place and report what they could not
resolve. Nothing here talks to the network directly: service calls arrive as
injected callables so the same code runs under Prefect, from the CLI, or in
tests against mocks.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from datetime import datetime, time
from typing import TYPE_CHECKING

import requests

from birdbase.enrich.biomes import classify_locations
from birdbase.enrich.coordinates import resolve_locations
from birdbase.enrich.outcomes import EnrichmentReport
from birdbase.enrich.weather import enrich_checklists
from birdbase.schemas import Checklist, Location, Observation, Species
from birdbase.tables import Tables, assemble_tables

if TYPE_CHECKING:
    from birdbase.datasources.ebird.checklists import ChecklistDetail
    from birdbase.datasources.ebird.export import ExportRow
    from birdbase.datasources.ebird.taxonomy import TaxonRecord
    from birdbase.enrich.biomes import BiomeClassifier
    from birdbase.enrich.coordinates import CoordinateResolver
    from birdbase.enrich.weather import WeatherFetch

logger = logging.getLogger(__name__)

ChecklistFetch = Callable[[str], "ChecklistDetail"]


@dataclass
class PipelineResult:
    """Output tables plus everything that could not be enriched."""

    tables: Tables
    report: EnrichmentReport
    locations: dict[str, Location] = field(default_factory=dict)


# =============================================================================
# Normalization
# =============================================================================


def normalize_rows(
    rows: Iterable[ExportRow],
    remaps: Mapping[str, str],
    report: EnrichmentReport,
) -> list[ExportRow]:
    """
    Apply LocID remaps, then drop incomplete and duplicate rows.

    Remapping happens first so every later stage sees canonical LocIDs.
    A duplicate is a repeated (species, SubID) pair; the first row is kept.
    """
    seen: set[tuple[str, str]] = set()
    kept: list[ExportRow] = []
    for row in rows:
        if row.loc_id in remaps:
            row = replace(row, loc_id=remaps[row.loc_id])

        missing = [
            name
            for name, value in (
                ("species", row.common_name),
                ("date", row.date),
                ("LocID", row.loc_id),
                ("SubID", row.sub_id),
            )
            if not value
        ]
        if missing:
            report.record("rows", f"line {row.line}", f"missing {', '.join(missing)}")
            continue

        key = (row.common_name, row.sub_id)
        if key in seen:
            report.record("rows", f"line {row.line}", "duplicate species on checklist")
            continue
        seen.add(key)
        kept.append(row)
    return kept


def build_locations(
    rows: Iterable[ExportRow],
    previous: Mapping[str, Location] | None = None,
) -> dict[str, Location]:
    """
    One Location per canonical LocID, named after its first row.

    Locations found in ``previous`` (an earlier run) keep their coordinates
    and biome so enrichment is not repeated.
    """
    previous = previous or {}
    locations: dict[str, Location] = {}
    for row in rows:
        if row.loc_id in locations:
            continue
        prior = previous.get(row.loc_id)
        if prior is not None:
            locations[row.loc_id] = prior.model_copy(update={"name": prior.name or row.location_name})
        else:
            locations[row.loc_id] = Location(id=row.loc_id, name=row.location_name)
    return locations


def build_checklists(rows: Iterable[ExportRow], report: EnrichmentReport) -> dict[str, Checklist]:
    """One Checklist per SubID, placed at the location of its first row."""
    checklists: dict[str, Checklist] = {}
    for row in rows:
        if row.date is None:
            continue
        existing = checklists.get(row.sub_id)
        if existing is None:
            checklists[row.sub_id] = Checklist(
                id=row.sub_id,
                location_id=row.loc_id,
                date=row.date,
                observed_at=datetime.combine(row.date, row.time) if row.time else None,
            )
        elif existing.location_id != row.loc_id:
            report.record(
                "rows",
                f"line {row.line}",
                f"checklist {row.sub_id} is at {existing.location_id}, row says {row.loc_id}",
            )
    return checklists


# =============================================================================
# Checklist details
# =============================================================================


def _with_detail(checklist: Checklist, detail: ChecklistDetail) -> Checklist:
    """Validated copy of ``checklist`` carrying the service detail."""
    update = checklist.model_dump()
    if detail.observed_at is not None:
        update["observed_at"] = detail.observed_at
        if detail.observed_at.date() != checklist.date:
            logger.warning(
                "Checklist %s: service date %s differs from export date %s",
                checklist.id,
                detail.observed_at.date(),
                checklist.date,
            )
    update["duration_minutes"] = detail.duration_minutes
    update["species_count"] = detail.species_count
    return Checklist.model_validate(update)


def fetch_checklist_details(
    checklists: dict[str, Checklist],
    fetch: ChecklistFetch,
    report: EnrichmentReport,
    *,
    remaps: Mapping[str, str] | None = None,
    max_workers: int = 4,
) -> None:
    """
    Fill start time, duration and species count from the checklist service.

    Checklists that already have a species count are skipped. A service error
    leaves the checklist as built from the export.
    """
    remaps = remaps or {}
    pending = [c for c in checklists.values() if c.species_count is None]
    report.attempt("checklists", len(pending))
    if not pending:
        return
    index_of = {c.id: i for i, c in enumerate(pending)}

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="checklists") as pool:
        futures = {pool.submit(fetch, c.id): c.id for c in pending}
        for future in as_completed(futures):
            sub_id = futures[future]
            checklist = checklists[sub_id]
            try:
                detail = future.result()
                updated = _with_detail(checklist, detail)
            except requests.RequestException as e:
                logger.warning("[%d] checklist %s lookup failed: %s", index_of[sub_id], sub_id, e)
                report.record("checklists", sub_id, f"checklist service error: {e}", index_of[sub_id])
                continue
            except Exception as e:
                logger.exception("[%d] checklist %s detail unusable", index_of[sub_id], sub_id)
                report.record("checklists", sub_id, f"bad checklist detail: {e}", index_of[sub_id])
                continue

            service_loc = remaps.get(detail.loc_id or "", detail.loc_id)
            if service_loc and service_loc != checklist.location_id:
                logger.warning(
                    "Checklist %s: service location %s differs from export location %s; keeping export",
                    sub_id,
                    service_loc,
                    checklist.location_id,
                )
            checklists[sub_id] = updated


# =============================================================================
# Species and observations
# =============================================================================


def species_slug(common_name: str) -> str:
    """Stable id for a species the taxonomy doesn't know."""
    return "x-" + re.sub(r"[^a-z0-9]+", "-", common_name.lower()).strip("-")


def build_species(
    rows: Iterable[ExportRow],
    taxonomy: Mapping[str, TaxonRecord],
    statuses: Mapping[str, str],
    report: EnrichmentReport,
) -> dict[str, Species]:
    """One Species per common name, keyed by common name."""
    species: dict[str, Species] = {}
    for row in rows:
        if row.common_name in species:
            continue
        report.attempt("taxonomy")
        taxon = taxonomy.get(row.common_name)
        if taxon is None:
            reason = "taxonomy unavailable" if not taxonomy else "not in eBird taxonomy"
            report.record("taxonomy", row.common_name, reason)
        scientific_name = taxon.scientific_name if taxon else row.scientific_name
        species[row.common_name] = Species(
            id=taxon.species_code if taxon else species_slug(row.common_name),
            common_name=row.common_name,
            scientific_name=scientific_name,
            family=taxon.family if taxon else None,
            conservation_status=statuses.get(scientific_name or ""),
        )
    return species


def number_observations(
    rows: list[ExportRow],
    species: Mapping[str, Species],
    checklists: Mapping[str, Checklist],
) -> list[Observation]:
    """
    Assign observation ids in reverse chronological order.

    Newest sighting gets id 1, the earliest gets the highest id. Ties keep
    file order. An observation always takes its checklist's location.
    """

    def when(row: ExportRow) -> datetime:
        checklist = checklists[row.sub_id]
        if checklist.observed_at is not None:
            return checklist.observed_at
        return datetime.combine(checklist.date, row.time or time.min)

    ordered = sorted(rows, key=when, reverse=True)
    return [
        Observation(
            id=i,
            species_id=species[row.common_name].id,
            date=checklists[row.sub_id].date,
            location_id=checklists[row.sub_id].location_id,
            checklist_id=row.sub_id,
        )
        for i, row in enumerate(ordered, start=1)
    ]


# =============================================================================
# Orchestration
# =============================================================================


def build_dataset(
    rows: Iterable[ExportRow],
    *,
    resolver: CoordinateResolver,
    weather_fetch: WeatherFetch,
    checklist_fetch: ChecklistFetch | None,
    classifier: BiomeClassifier,
    taxonomy: Mapping[str, TaxonRecord] | None = None,
    remaps: Mapping[str, str] | None = None,
    statuses: Mapping[str, str] | None = None,
    previous_locations: Mapping[str, Location] | None = None,
    max_workers: int = 4,
) -> PipelineResult:
    """
    Run every stage and assemble the tables.

    Args:
        rows: Export rows in file order.
        resolver: Coordinate strategy chain.
        weather_fetch: ``(lat, lon, start, end) -> Open-Meteo payload``.
        checklist_fetch: ``sub_id -> ChecklistDetail``; None skips the lookup
            (checklists then rely on export times only).
        classifier: Biome classifier over the loaded polygon layer.
        taxonomy: Common name → taxon; empty when the taxonomy is unavailable.
        remaps: Raw LocID → canonical LocID.
        statuses: Scientific name → conservation status.
        previous_locations: Locations from an earlier run, reused as-is.
        max_workers: Thread pool size for per-item service calls.

    Returns:
        PipelineResult with all four tables (enrichment gaps as nulls) and the report.
    """
    remaps = remaps or {}
    report = EnrichmentReport()

    kept = normalize_rows(rows, remaps, report)
    logger.info("Normalized %d rows", len(kept))

    locations = build_locations(kept, previous_locations)
    resolve_locations(locations, resolver, report, max_workers=max_workers)

    checklists = build_checklists(kept, report)
    if checklist_fetch is not None:
        fetch_checklist_details(
            checklists, checklist_fetch, report, remaps=remaps, max_workers=max_workers
        )
    enrich_checklists(
        checklists, locations, report, fetch=weather_fetch, max_workers=max_workers
    )

    classify_locations(locations, classifier, report)

    species = build_species(kept, taxonomy or {}, statuses or {}, report)
    observations = number_observations(kept, species, checklists)

    tables = assemble_tables(
        {s.id: s for s in species.values()}, observations, locations, checklists
    )
    logger.info("Assembled tables: %s", tables.counts())
    for stage, count in sorted(report.unresolved_counts().items()):
        logger.info("%s: %d unresolved", stage, count)
    return PipelineResult(tables=tables, report=report, locations=locations)
