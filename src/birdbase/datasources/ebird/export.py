"""Raw eBird export reader.

Accepts both export flavours eBird produces:

* the life list CSV (``Row #``, ``Common Name``, ``Date``, ``LocID``, ``SubID`` …)
* the full "Download My Data" CSV (``Submission ID``, ``Location ID``, ``Time`` …)

Only the columns the dataset needs are read. A missing file or a file without
the required columns is fatal; individual rows with blank identifiers are
passed through for the pipeline to skip and report.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path  # noqa: TC003 (runtime use)

from birdbase.errors import ExportFormatError, ExportNotFoundError

# Field → accepted header names, first match wins
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "row_number": ("Row #",),
    "common_name": ("Common Name",),
    "scientific_name": ("Scientific Name",),
    "date": ("Date",),
    "time": ("Time",),
    "loc_id": ("LocID", "Location ID"),
    "location_name": ("Location",),
    "sub_id": ("SubID", "Submission ID"),
}
REQUIRED_FIELDS = ("common_name", "date", "loc_id", "sub_id")

DATE_FORMATS = ("%Y-%m-%d", "%d %b %Y", "%m/%d/%Y")
TIME_FORMATS = ("%I:%M %p", "%H:%M", "%H:%M:%S")


@dataclass(frozen=True)
class ExportRow:
    """One sighting row from the export, before normalization."""

    line: int
    common_name: str
    date: date | None
    loc_id: str
    sub_id: str
    location_name: str | None = None
    scientific_name: str | None = None
    time: time | None = None
    row_number: int | None = None


def parse_date(value: str) -> date:
    """Parse an export date in any of the supported formats."""
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    msg = f"Unrecognized date: {value!r}"
    raise ValueError(msg)


def parse_time(value: str) -> time | None:
    """Parse an export time; blank or unrecognized values yield None."""
    value = value.strip()
    if not value:
        return None
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    return None


def _map_columns(header: list[str]) -> dict[str, str]:
    """Map dataset fields onto the header names present in this file."""
    present = {name.strip() for name in header}
    columns: dict[str, str] = {}
    for field, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in present:
                columns[field] = alias
                break
    missing = [f for f in REQUIRED_FIELDS if f not in columns]
    if missing:
        wanted = ", ".join(COLUMN_ALIASES[f][0] for f in missing)
        msg = f"Export is missing required columns: {wanted}"
        raise ExportFormatError(msg)
    return columns


def _cell(record: dict[str, str], columns: dict[str, str], field: str) -> str:
    header = columns.get(field)
    if header is None:
        return ""
    return (record.get(header) or "").strip()


def read_export(path: Path) -> list[ExportRow]:
    """
    Read an eBird export CSV.

    Args:
        path: Path to the CSV file.

    Returns:
        Rows in file order.

    Raises:
        ExportNotFoundError: If the file does not exist.
        ExportFormatError: If required columns are missing or a date or
            row number cannot be parsed.
    """
    if not path.exists():
        msg = f"Export file not found: {path}"
        raise ExportNotFoundError(msg)

    rows: list[ExportRow] = []
    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            msg = f"Export file has no header row: {path}"
            raise ExportFormatError(msg)
        reader.fieldnames = [name.strip() for name in reader.fieldnames]
        columns = _map_columns(list(reader.fieldnames))

        for line, record in enumerate(reader, start=2):
            raw_date = _cell(record, columns, "date")
            raw_row = _cell(record, columns, "row_number")
            try:
                parsed_date = parse_date(raw_date) if raw_date else None
                row_number = int(raw_row) if raw_row else None
            except ValueError as e:
                msg = f"{path}:{line}: {e}"
                raise ExportFormatError(msg) from e

            rows.append(
                ExportRow(
                    line=line,
                    common_name=_cell(record, columns, "common_name"),
                    date=parsed_date,
                    loc_id=_cell(record, columns, "loc_id"),
                    sub_id=_cell(record, columns, "sub_id"),
                    location_name=_cell(record, columns, "location_name") or None,
                    scientific_name=_cell(record, columns, "scientific_name") or None,
                    time=parse_time(_cell(record, columns, "time")),
                    row_number=row_number,
                )
            )
    return rows
