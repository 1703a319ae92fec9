"""Biome Classifier.

Point-in-polygon join of resolved locations against the biome layer.

All points are queried against the layer's STR-tree in one vectorized pass.
Points that intersect nothing (coastal sites just outside a coarse polygon,
points on a boundary the polygons don't quite share) fall back to the nearest
polygon within ``max_distance`` layer units. Points still unmatched stay
unclassified.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import geopandas as gpd
from shapely.geometry import Point

from birdbase.datasources.biomes.layer import LAYER_CRS
from birdbase.enrich.outcomes import Outcome, Resolved, Unresolved

if TYPE_CHECKING:
    from birdbase.enrich.outcomes import EnrichmentReport
    from birdbase.schemas import Location

logger = logging.getLogger(__name__)

STAGE = "biomes"

# ~2 km at the equator in EPSG:4326 degrees
DEFAULT_MAX_DISTANCE = 0.018


@dataclass(frozen=True)
class BiomeMatch:
    """Attributes copied from the polygon a point was assigned to."""

    biome: str | None
    subbiome: str | None


def _attr(value: Any) -> str | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return str(value)


class BiomeClassifier:
    """Classifies points against a prepared biome layer (see ``prepare_layer``)."""

    def __init__(self, layer: gpd.GeoDataFrame, *, max_distance: float = DEFAULT_MAX_DISTANCE) -> None:
        self.layer = layer.reset_index(drop=True)
        self.max_distance = max_distance
        # Built once; read-only afterwards
        self.sindex = self.layer.sindex

    def _match(self, poly_idx: int) -> BiomeMatch:
        row = self.layer.iloc[int(poly_idx)]
        return BiomeMatch(biome=_attr(row["biome"]), subbiome=_attr(row["subbiome"]))

    def classify_points(
        self, points: Mapping[str, tuple[float, float]]
    ) -> dict[str, Outcome[BiomeMatch]]:
        """
        Classify ``key → (lat, lon)`` points.

        A point on a shared edge intersects several polygons; the one listed
        first in the layer wins.

        Returns:
            Outcome per key. ``Resolved.source`` is ``"intersects"`` or ``"nearest"``.
        """
        keys = list(points)
        if not keys:
            return {}
        geoms = gpd.GeoSeries(
            [Point(lon, lat) for lat, lon in points.values()],
            crs=LAYER_CRS,
        )

        hits: dict[int, int] = {}
        point_idx, poly_idx = self.sindex.query(geoms, predicate="intersects")
        for p, poly in zip(point_idx.tolist(), poly_idx.tolist(), strict=True):
            if p not in hits or poly < hits[p]:
                hits[p] = poly

        outcomes: dict[str, Outcome[BiomeMatch]] = {
            keys[p]: Resolved(self._match(poly), source="intersects") for p, poly in hits.items()
        }

        misses = [i for i in range(len(keys)) if i not in hits]
        if misses:
            miss_geoms = geoms.iloc[misses].reset_index(drop=True)
            near_in, near_poly = self.sindex.nearest(
                miss_geoms, return_all=False, max_distance=self.max_distance
            )
            for m, poly in zip(near_in.tolist(), near_poly.tolist(), strict=True):
                outcomes[keys[misses[m]]] = Resolved(self._match(poly), source="nearest")

        for i in misses:
            key = keys[i]
            if key not in outcomes:
                outcomes[key] = Unresolved(
                    f"no polygon contains or lies within {self.max_distance} of point"
                )
        return outcomes


def classify_locations(
    locations: dict[str, Location],
    classifier: BiomeClassifier,
    report: EnrichmentReport,
) -> dict[str, Outcome[BiomeMatch]]:
    """
    Assign biome/subbiome to resolved locations that have none yet.

    Locations without coordinates and already-classified locations are left
    untouched.

    Returns:
        Outcome per attempted location id.
    """
    pending = [
        loc for loc in locations.values() if loc.is_resolved and not loc.is_classified
    ]
    report.attempt(STAGE, len(pending))
    points = {loc.id: (loc.latitude, loc.longitude) for loc in pending}
    outcomes = classifier.classify_points(points)  # type: ignore[arg-type]

    for index, loc in enumerate(pending):
        outcome = outcomes[loc.id]
        if isinstance(outcome, Resolved):
            loc.biome = outcome.value.biome
            loc.subbiome = outcome.value.subbiome
            if outcome.source == "nearest":
                logger.info("Location %s classified by proximity: %s", loc.id, loc.biome)
        else:
            logger.warning("[%d] location %s unclassified: %s", index, loc.id, outcome.reason)
            report.record(STAGE, loc.id, outcome.reason, index=index)
    return outcomes
