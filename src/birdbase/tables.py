"""The four output tables: assembly, integrity checks and serialization.

``assemble_tables`` is the last pipeline step. It emits every row it is given,
including rows whose enrichment fields are null, and refuses to emit a table
set with a dangling foreign key.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from birdbase.errors import IntegrityError
from birdbase.schemas import Checklist, Location, Observation, Species

if TYPE_CHECKING:
    from pydantic import BaseModel

    from birdbase.store import DataStore

TABLES_DIR = Path("derived/tables")

TABLE_FIELDS: dict[str, list[str]] = {
    "species": list(Species.model_fields),
    "observations": list(Observation.model_fields),
    "locations": list(Location.model_fields),
    "checklists": list(Checklist.model_fields),
}


@dataclass
class Tables:
    """Rows ready for the relational sink, in primary-key order."""

    species: list[Species]
    observations: list[Observation]
    locations: list[Location]
    checklists: list[Checklist]

    def rows(self) -> dict[str, list[dict[str, Any]]]:
        """JSON-compatible rows per table."""
        return {
            name: [_dump(row) for row in getattr(self, name)]
            for name in ("species", "observations", "locations", "checklists")
        }

    def counts(self) -> dict[str, int]:
        return {name: len(rows) for name, rows in self.rows().items()}


def _dump(row: BaseModel) -> dict[str, Any]:
    return row.model_dump(mode="json")


def check_integrity(tables: Tables) -> list[str]:
    """Return one message per broken foreign key or duplicate primary key."""
    problems: list[str] = []
    species_ids = {s.id for s in tables.species}
    location_ids = {loc.id for loc in tables.locations}
    checklist_by_id = {c.id: c for c in tables.checklists}

    for name, ids in (
        ("species", [s.id for s in tables.species]),
        ("locations", [loc.id for loc in tables.locations]),
        ("checklists", [c.id for c in tables.checklists]),
        ("observations", [o.id for o in tables.observations]),
    ):
        if len(ids) != len(set(ids)):
            problems.append(f"duplicate primary keys in {name}")

    for obs in tables.observations:
        if obs.species_id not in species_ids:
            problems.append(f"observation {obs.id}: unknown species {obs.species_id}")
        if obs.location_id not in location_ids:
            problems.append(f"observation {obs.id}: unknown location {obs.location_id}")
        checklist = checklist_by_id.get(obs.checklist_id)
        if checklist is None:
            problems.append(f"observation {obs.id}: unknown checklist {obs.checklist_id}")
        elif checklist.location_id != obs.location_id:
            problems.append(
                f"observation {obs.id}: location {obs.location_id} differs from "
                f"checklist {checklist.id} location {checklist.location_id}"
            )

    for checklist in tables.checklists:
        if checklist.location_id not in location_ids:
            problems.append(f"checklist {checklist.id}: unknown location {checklist.location_id}")
    return problems


def assemble_tables(
    species: dict[str, Species],
    observations: list[Observation],
    locations: dict[str, Location],
    checklists: dict[str, Checklist],
) -> Tables:
    """
    Build the final table set.

    Only locations referenced by an observation or checklist are emitted, so
    stale entries carried over from an earlier run don't leak into the output.

    Raises:
        IntegrityError: If any foreign key does not resolve.
    """
    referenced = {o.location_id for o in observations} | {
        c.location_id for c in checklists.values()
    }
    used_species = {o.species_id for o in observations}

    tables = Tables(
        species=sorted((s for s in species.values() if s.id in used_species), key=lambda s: s.id),
        observations=sorted(observations, key=lambda o: o.id),
        locations=sorted(
            (loc for loc in locations.values() if loc.id in referenced), key=lambda loc: loc.id
        ),
        checklists=sorted(checklists.values(), key=lambda c: c.id),
    )
    problems = check_integrity(tables)
    if problems:
        msg = "Referential integrity violated:\n  " + "\n  ".join(problems[:20])
        raise IntegrityError(msg)
    return tables


def write_tables(tables: Tables, store: DataStore, *, source: str = "birdbase") -> dict[str, Path]:
    """
    Write each table as a JSON envelope and a CSV file under ``derived/tables/``.

    Returns:
        Mapping of table name → CSV path.
    """
    written: dict[str, Path] = {}
    for name, rows in tables.rows().items():
        store.write(TABLES_DIR / f"{name}.json", rows, source=source, rows=len(rows))

        written[name] = store.write_csv(TABLES_DIR / f"{name}.csv", TABLE_FIELDS[name], rows)
    return written
