"""Loaders for externally supplied reference tables.

All three tables are personal data maintained out-of-band, in CSV (with a
header row) or JSON (a single object):

* coordinate overrides  ``loc_id,latitude,longitude``  /  ``{"L1": [lat, lon]}``
* location remaps       ``from_loc_id,to_loc_id``      /  ``{"L2": "L1"}``
* conservation statuses ``scientific_name,status``     /  ``{"Strix occidentalis": "NT"}``

A ``None`` path means "no table" and yields an empty mapping. A path that is
configured but unreadable is fatal.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path  # noqa: TC003 (runtime use)
from typing import Any

from birdbase.errors import ReferenceDataError


def _read_records(path: Path, columns: tuple[str, ...]) -> list[list[Any]]:
    """Read rows of ``columns`` from a CSV file or a JSON object."""
    if not path.exists():
        msg = f"Reference table not found: {path}"
        raise ReferenceDataError(msg)

    if path.suffix.lower() == ".json":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            msg = f"Invalid JSON in {path}: {e}"
            raise ReferenceDataError(msg) from e
        if not isinstance(data, dict):
            msg = f"{path}: expected a JSON object"
            raise ReferenceDataError(msg)
        records: list[list[Any]] = []
        for key, value in data.items():
            values = list(value) if isinstance(value, list | tuple) else [value]
            records.append([key, *values])
        return records

    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        missing = [c for c in columns if c not in (reader.fieldnames or [])]
        if missing:
            msg = f"{path}: missing columns {', '.join(missing)}"
            raise ReferenceDataError(msg)
        return [[(row.get(c) or "").strip() for c in columns] for row in reader]


def load_coordinate_overrides(path: Path | None) -> dict[str, tuple[float, float]]:
    """Load the manual ``loc_id → (latitude, longitude)`` override table."""
    if path is None:
        return {}
    overrides: dict[str, tuple[float, float]] = {}
    for record in _read_records(path, ("loc_id", "latitude", "longitude")):
        if len(record) != 3:
            msg = f"{path}: override for {record[0]!r} needs latitude and longitude"
            raise ReferenceDataError(msg)
        loc_id, lat, lon = record
        try:
            overrides[str(loc_id).strip()] = (float(lat), float(lon))
        except (TypeError, ValueError) as e:
            msg = f"{path}: bad coordinates for {loc_id!r}"
            raise ReferenceDataError(msg) from e
    return overrides


def load_location_remaps(path: Path | None) -> dict[str, str]:
    """Load the ``raw loc_id → canonical loc_id`` remap table.

    Chains (A → B, B → C) are rejected; every target must be canonical.
    """
    if path is None:
        return {}
    remaps = {
        str(record[0]).strip(): str(record[1]).strip()
        for record in _read_records(path, ("from_loc_id", "to_loc_id"))
    }
    chained = sorted(src for src, dst in remaps.items() if dst in remaps)
    if chained:
        msg = f"{path}: remap targets must be canonical ids, chained: {', '.join(chained)}"
        raise ReferenceDataError(msg)
    return remaps


def load_conservation_statuses(path: Path | None) -> dict[str, str]:
    """Load the ``scientific name → conservation status`` table."""
    if path is None:
        return {}
    return {
        str(record[0]).strip(): str(record[1]).strip()
        for record in _read_records(path, ("scientific_name", "status"))
        if record[1]
    }
