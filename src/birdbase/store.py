"""Tiered on-disk store for run state and outputs.

Layout under ``data_dir``::

    reference/    slow-changing lookups with a TTL (eBird taxonomy, 90 days)
    historical/   state carried between runs (resolved + classified locations)
    derived/      outputs rewritten on every run (tables, enrichment report)

JSON files carry a ``{"meta": ..., "data": ...}`` envelope. ``meta`` records
the source, the write time and, for cached lookups, ``valid_until``. Writes go
through a temporary file and an atomic rename so an interrupted run never
leaves half a location state behind.
"""

from __future__ import annotations

import csv
import json
import os
import tempfile
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path  # noqa: TC003 (runtime use)
from typing import IO, TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence


class DataStore:
    """JSON and CSV files under one base directory, organized by tier."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir
        self.reference = base_dir / "reference"
        self.historical = base_dir / "historical"
        self.derived = base_dir / "derived"

    def _resolve(self, path: Path) -> Path:
        full = path if path.is_absolute() else self.base / path
        try:
            full.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        return full

    @contextmanager
    def _atomic(self, path: Path, newline: str | None = None) -> Iterator[IO[str]]:
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=full.parent, prefix=f".{full.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline=newline) as f:
                yield f
            os.replace(tmp, full)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    # -- JSON envelopes ------------------------------------------------------

    def write(
        self,
        path: Path,
        data: Any,
        source: str,
        ttl: timedelta | None = None,
        **params: Any,
    ) -> Path:
        """Write ``data`` in a metadata envelope.

        Args:
            path: Path relative to the store base (e.g. ``historical/locations.json``).
            data: JSON-compatible payload; dates and datetimes are written as strings.
            source: Where the data came from (``"api.ebird.org"``, ``"birdbase"``).
            ttl: How long a cached lookup stays fresh. None means never fresh,
                which is right for run state and outputs.
            **params: Extra metadata (row counts, locale, ...).

        Returns:
            Absolute path of the written file.
        """
        now = datetime.now(UTC)
        meta: dict[str, Any] = {"source": source, "fetched_at": now.isoformat()}
        if ttl is not None:
            meta["valid_until"] = (now + ttl).isoformat()
        meta.update(params)

        with self._atomic(path) as f:
            json.dump({"meta": meta, "data": data}, f, indent=2, default=str)
        return self._resolve(path)

    def read_raw(self, path: Path) -> dict[str, Any] | None:
        """Full envelope, or None if the file doesn't exist."""
        full = self._resolve(path)
        if not full.exists():
            return None
        with full.open(encoding="utf-8") as f:
            envelope: dict[str, Any] = json.load(f)
        return envelope

    def read(self, path: Path) -> Any:
        """The ``data`` payload, or None if the file doesn't exist."""
        envelope = self.read_raw(path)
        if envelope is None:
            return None
        return envelope.get("data", envelope)

    def is_fresh(self, path: Path) -> bool:
        """True if the file exists and its ``valid_until`` is in the future."""
        envelope = self.read_raw(path)
        if envelope is None:
            return False
        valid_until = envelope.get("meta", {}).get("valid_until")
        if valid_until is None:
            return False
        expiry = datetime.fromisoformat(valid_until)
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return datetime.now(UTC) < expiry

    # -- CSV -----------------------------------------------------------------

    def write_csv(
        self,
        path: Path,
        fieldnames: Sequence[str],
        rows: Iterable[Mapping[str, Any]],
    ) -> Path:
        """Write rows as CSV with a header; None becomes an empty cell."""
        with self._atomic(path, newline="") as f:
            writer = csv.DictWriter(f, fieldnames=list(fieldnames))
            writer.writeheader()
            writer.writerows(rows)
        return self._resolve(path)
