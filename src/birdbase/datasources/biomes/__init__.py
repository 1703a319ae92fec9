"""Static biome polygon layer.

Public API:
  - layer: load_biome_layer (read + normalize), prepare_layer (normalize an in-memory frame)
"""

from birdbase.datasources.biomes.layer import LAYER_CRS, load_biome_layer, prepare_layer

__all__ = ["LAYER_CRS", "load_biome_layer", "prepare_layer"]
