"""Checklist (submission) details."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from birdbase.datasources.ebird import client

OBS_DT_FORMAT = "%Y-%m-%d %H:%M"


@dataclass(frozen=True)
class ChecklistDetail:
    """The parts of an eBird checklist view the dataset uses."""

    sub_id: str
    loc_id: str | None
    observed_at: datetime | None
    duration_minutes: int | None
    species_count: int | None


def _parse_obs_dt(data: dict[str, Any]) -> datetime | None:
    """Parse ``obsDt``; checklists submitted without a start time yield None."""
    raw = data.get("obsDt")
    if not raw or data.get("obsTimeValid") is False:
        return None
    try:
        return datetime.strptime(raw, OBS_DT_FORMAT)
    except ValueError:
        return None


def _parse_checklist(sub_id: str, data: dict[str, Any]) -> ChecklistDetail:
    duration_hrs = data.get("durationHrs")
    num_species = data.get("numSpecies")
    return ChecklistDetail(
        sub_id=data.get("subId", sub_id),
        loc_id=data.get("locId"),
        observed_at=_parse_obs_dt(data),
        duration_minutes=round(float(duration_hrs) * 60) if duration_hrs is not None else None,
        species_count=int(num_species) if num_species is not None else None,
    )


def fetch_checklist(
    sub_id: str,
    api_key: str | None = None,
    *,
    timeout: float | None = None,
) -> ChecklistDetail:
    """
    Fetch a checklist by submission id.

    Args:
        sub_id: eBird submission id (e.g. ``S112233445``).
        api_key: eBird API token (required by this endpoint).
        timeout: Per-request timeout.
    """
    data = client.get_json(f"/product/checklist/view/{sub_id}", api_key, timeout=timeout) or {}
    return _parse_checklist(sub_id, data)
