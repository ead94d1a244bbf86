# map_generator/__init__.py

from .biomes import BIOME_NAMES, BiomeKind, calculate_biome_map, classify_biome, is_land
from .generator import MapGenerator, generate_map_layers, synthesize
from .layers import GeneratedMapLayers
from .options import GenerationOptions, cache_key, grid_resolution
from .sampler import sample, sample_grid, sample_layers
from .simulation import generate_simulation_layers

__all__ = [
    "BIOME_NAMES",
    "BiomeKind",
    "calculate_biome_map",
    "classify_biome",
    "is_land",
    "MapGenerator",
    "generate_map_layers",
    "synthesize",
    "GeneratedMapLayers",
    "GenerationOptions",
    "cache_key",
    "grid_resolution",
    "sample",
    "sample_grid",
    "sample_layers",
    "generate_simulation_layers",
]
