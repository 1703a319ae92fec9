"""Coordinate Resolver.

Resolves a location id to a latitude/longitude pair with an ordered chain of
strategies, stopping at the first that succeeds:

1. ``hotspot``       eBird hotspot registry lookup
2. ``display_name``  coordinates typed into the location name ("Yard 45.52, -122.68")
3. ``override``      the hand-maintained override table

Each strategy is a plain callable ``(location_id, display_name) -> Outcome``.
``resolve_locations`` fans resolution out over a thread pool and merges the
results back into the Location map on the calling thread.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING

import requests

from birdbase.datasources.ebird.hotspots import HotspotInfo, fetch_hotspot_info
from birdbase.enrich.outcomes import Outcome, Resolved, Unresolved
from birdbase.schemas import CoordinateSource

if TYPE_CHECKING:
    from birdbase.enrich.outcomes import EnrichmentReport
    from birdbase.schemas import Location

logger = logging.getLogger(__name__)

STAGE = "coordinates"

Coordinates = tuple[float, float]
CoordinateStrategy = Callable[[str, str | None], Outcome[Coordinates]]

COORDINATE_TEXT = re.compile(r"(-?\d+\.\d+)\s*,\s*(-?\d+\.\d+)")


def _in_range(lat: float, lon: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lon <= 180


# =============================================================================
# Strategies
# =============================================================================


def hotspot_strategy(
    lookup: Callable[[str], HotspotInfo] | None = None,
) -> CoordinateStrategy:
    """Tier 1: registry coordinates from the eBird hotspot service.

    Args:
        lookup: ``loc_id -> HotspotInfo``; defaults to an unauthenticated
            ``fetch_hotspot_info``.
    """
    fetch = lookup or fetch_hotspot_info

    def resolve(location_id: str, _display_name: str | None) -> Outcome[Coordinates]:
        try:
            info = fetch(location_id)
        except (requests.RequestException, ValueError, TypeError, AttributeError) as e:
            return Unresolved(f"hotspot lookup failed: {e}")
        if info.latitude is None or info.longitude is None:
            return Unresolved("hotspot record has no coordinates")
        if not _in_range(info.latitude, info.longitude):
            return Unresolved(f"hotspot coordinates out of range: {info.latitude}, {info.longitude}")
        return Resolved((info.latitude, info.longitude), source=CoordinateSource.HOTSPOT)

    return resolve


def display_name_strategy(_location_id: str, display_name: str | None) -> Outcome[Coordinates]:
    """Tier 2: first ``lat, lon`` pair written into the location's display name."""
    if not display_name:
        return Unresolved("no display name")
    match = COORDINATE_TEXT.search(display_name)
    if match is None:
        return Unresolved("no coordinates in display name")
    lat, lon = float(match.group(1)), float(match.group(2))
    if not _in_range(lat, lon):
        return Unresolved(f"display-name coordinates out of range: {lat}, {lon}")
    return Resolved((lat, lon), source=CoordinateSource.DISPLAY_NAME)


def override_strategy(overrides: Mapping[str, Coordinates]) -> CoordinateStrategy:
    """Tier 3: the manual override table."""

    def resolve(location_id: str, _display_name: str | None) -> Outcome[Coordinates]:
        coords = overrides.get(location_id)
        if coords is None:
            return Unresolved("no manual override")
        if not _in_range(*coords):
            return Unresolved(f"override coordinates out of range: {coords[0]}, {coords[1]}")
        return Resolved(coords, source=CoordinateSource.OVERRIDE)

    return resolve


# =============================================================================
# Resolver
# =============================================================================


class CoordinateResolver:
    """Tries each strategy in order and returns the first ``Resolved``."""

    def __init__(self, strategies: list[CoordinateStrategy]) -> None:
        if not strategies:
            msg = "CoordinateResolver needs at least one strategy"
            raise ValueError(msg)
        self.strategies = strategies

    @classmethod
    def default(
        cls,
        overrides: Mapping[str, Coordinates],
        lookup: Callable[[str], HotspotInfo] | None = None,
    ) -> CoordinateResolver:
        """Hotspot → display name → override chain."""
        return cls(
            [
                hotspot_strategy(lookup),
                display_name_strategy,
                override_strategy(overrides),
            ]
        )

    def resolve(self, location_id: str, display_name: str | None = None) -> Outcome[Coordinates]:
        reasons: list[str] = []
        for tier, strategy in enumerate(self.strategies, start=1):
            try:
                outcome = strategy(location_id, display_name)
            except Exception as e:
                logger.exception("Coordinate tier %d crashed for %s", tier, location_id)
                outcome = Unresolved(f"tier {tier} error: {e}")
            if isinstance(outcome, Resolved):
                return outcome
            reasons.append(outcome.reason)
        return Unresolved("; ".join(reasons))


def resolve_locations(
    locations: dict[str, Location],
    resolver: CoordinateResolver,
    report: EnrichmentReport,
    *,
    max_workers: int = 4,
) -> dict[str, Outcome[Coordinates]]:
    """
    Resolve every location that has no coordinates yet.

    Already-resolved locations are skipped, so re-running on a resolved map
    changes nothing. Each resolution runs on the pool; only this thread
    writes to ``locations``.

    Args:
        locations: Location map owned by the orchestrator (mutated in place).
        resolver: Strategy chain.
        report: Receives one entry per location left unresolved.
        max_workers: Thread pool size.

    Returns:
        Outcome per attempted location id.
    """
    pending = [loc for loc in locations.values() if not loc.is_resolved]
    report.attempt(STAGE, len(pending))
    if not pending:
        return {}

    index_of = {loc.id: i for i, loc in enumerate(pending)}
    outcomes: dict[str, Outcome[Coordinates]] = {}

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="coords") as pool:
        futures = {pool.submit(resolver.resolve, loc.id, loc.name): loc.id for loc in pending}
        for future in as_completed(futures):
            loc_id = futures[future]
            try:
                outcome = future.result()
            except Exception as e:
                logger.exception("Coordinate resolution crashed for %s", loc_id)
                outcome = Unresolved(f"resolver error: {e}")
            outcomes[loc_id] = outcome

            if isinstance(outcome, Resolved):
                lat, lon = outcome.value
                location = locations[loc_id]
                location.latitude = lat
                location.longitude = lon
                location.coordinate_source = outcome.source
                logger.debug("Resolved %s via %s: %s, %s", loc_id, outcome.source, lat, lon)
            else:
                logger.warning(
                    "[%d] location %s unresolved: %s", index_of[loc_id], loc_id, outcome.reason
                )
                report.record(STAGE, loc_id, outcome.reason, index=index_of[loc_id])

    return outcomes
