"""Hotspot coordinate lookup."""

from __future__ import annotations

from dataclasses import dataclass

from birdbase.datasources.ebird import client


@dataclass(frozen=True)
class HotspotInfo:
    """Registry record for an eBird location."""

    loc_id: str
    name: str | None
    latitude: float | None
    longitude: float | None


def fetch_hotspot_info(
    loc_id: str,
    api_key: str | None = None,
    *,
    timeout: float | None = None,
) -> HotspotInfo:
    """
    Fetch registry details for a hotspot.

    Personal (non-hotspot) locations are not in the registry; eBird answers
    those with a 4xx, which surfaces as ``requests.HTTPError``.

    Args:
        loc_id: eBird location id (e.g. ``L1234567``).
        api_key: eBird API token.
        timeout: Per-request timeout.

    Returns:
        HotspotInfo; latitude/longitude are None when the record omits them.
    """
    data = client.get_json(f"/ref/hotspot/info/{loc_id}", api_key, timeout=timeout) or {}
    lat = data.get("latitude")
    lon = data.get("longitude")
    return HotspotInfo(
        loc_id=data.get("locId", loc_id),
        name=data.get("name"),
        latitude=float(lat) if lat is not None else None,
        longitude=float(lon) if lon is not None else None,
    )
