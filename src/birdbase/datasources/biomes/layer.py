"""Biome polygon layer loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

import geopandas as gpd

from birdbase.errors import BiomeLayerError

if TYPE_CHECKING:
    from pathlib import Path

LAYER_CRS = "EPSG:4326"


def prepare_layer(
    layer: gpd.GeoDataFrame,
    biome_field: str = "BIOME_NAME",
    subbiome_field: str = "ECO_NAME",
) -> gpd.GeoDataFrame:
    """
    Normalize a polygon layer to ``biome`` / ``subbiome`` / ``geometry`` in EPSG:4326.

    Rows with empty or missing geometry are dropped and the index is reset so
    positional spatial-index hits map straight onto rows.

    Raises:
        BiomeLayerError: If an attribute column is missing.
    """
    missing = [f for f in (biome_field, subbiome_field) if f not in layer.columns]
    if missing:
        msg = f"Biome layer is missing attribute columns: {', '.join(missing)}"
        raise BiomeLayerError(msg)

    if layer.crs is None:
        layer = layer.set_crs(LAYER_CRS)
    elif layer.crs != LAYER_CRS:
        layer = layer.to_crs(LAYER_CRS)

    layer = layer[~(layer.geometry.is_empty | layer.geometry.isna())]
    prepared = gpd.GeoDataFrame(
        {
            "biome": layer[biome_field].to_numpy(),
            "subbiome": layer[subbiome_field].to_numpy(),
        },
        geometry=layer.geometry.to_numpy(),
        crs=LAYER_CRS,
    )
    return prepared.reset_index(drop=True)


def load_biome_layer(
    path: Path,
    biome_field: str = "BIOME_NAME",
    subbiome_field: str = "ECO_NAME",
) -> gpd.GeoDataFrame:
    """
    Read a biome polygon layer (shapefile, GeoPackage, GeoJSON …).

    Args:
        path: Vector dataset readable by ``geopandas.read_file``.
        biome_field: Attribute column holding the biome name.
        subbiome_field: Attribute column holding the subbiome (ecoregion) name.

    Raises:
        BiomeLayerError: If the file is missing, unreadable, or lacks the
            attribute columns.
    """
    if not path.exists():
        msg = f"Biome layer not found: {path}"
        raise BiomeLayerError(msg)
    try:
        layer = gpd.read_file(path)
    except Exception as e:  # driver errors vary by backend (pyogrio / fiona)
        msg = f"Could not read biome layer {path}: {e}"
        raise BiomeLayerError(msg) from e
    return prepare_layer(layer, biome_field, subbiome_field)
