# map_generator/biomes.py

"""
================================================================================
BIOME CLASSIFICATION
================================================================================
Maps (altitude, sea level, moisture, temperature) to a discrete biome.

The scalar `classify_biome` is the reference rule. `calculate_biome_map` is the
vectorized form used by the generator; it evaluates the same conditions in the
same priority order through np.select, so both agree on every cell.

Data Contract:
---------------
- Inputs: normalized [0, 1] altitude, moisture and temperature (scalars or
  same-shaped arrays) and a scalar sea level.
- Outputs: a BiomeKind, or a uint8 array of BiomeKind values.
- Side Effects: None.
================================================================================
"""

from enum import IntEnum

import numpy as np

from . import config as DEFAULTS


class BiomeKind(IntEnum):
    OCEAN = 0
    BEACH = 1
    SNOW = 2
    TUNDRA = 3
    TAIGA = 4
    GRASSLAND = 5
    FOREST = 6
    RAINFOREST = 7
    DESERT = 8
    SAVANNA = 9
    ROCK = 10


BIOME_NAMES = {
    BiomeKind.OCEAN: "Ocean",
    BiomeKind.BEACH: "Beach",
    BiomeKind.SNOW: "Snow",
    BiomeKind.TUNDRA: "Tundra",
    BiomeKind.TAIGA: "Taiga",
    BiomeKind.GRASSLAND: "Grassland",
    BiomeKind.FOREST: "Forest",
    BiomeKind.RAINFOREST: "Rainforest",
    BiomeKind.DESERT: "Desert",
    BiomeKind.SAVANNA: "Savanna",
    BiomeKind.ROCK: "Rock",
}


def is_land(altitude, sea_level):
    """Land is anything strictly above sea level. Works on scalars and arrays."""
    return altitude > sea_level


def classify_biome(altitude: float, sea_level: float, moisture: float, temperature: float,
                   thresholds: dict = None) -> BiomeKind:
    """Classifies a single cell. The first matching rule wins."""
    t = thresholds or DEFAULTS.BIOME_THRESHOLDS

    if altitude <= sea_level:
        return BiomeKind.OCEAN
    if altitude <= sea_level + t["beach_band"]:
        return BiomeKind.BEACH

    if altitude > t["peak_altitude"]:
        return BiomeKind.SNOW if temperature < t["peak_snow_max_temp"] else BiomeKind.ROCK

    if temperature < t["snow_max_temp"]:
        return BiomeKind.SNOW
    if temperature < t["boreal_max_temp"]:
        return BiomeKind.TAIGA if moisture > t["taiga_min_moisture"] else BiomeKind.TUNDRA

    if moisture < t["desert_max_moisture"]:
        return BiomeKind.DESERT
    if moisture < t["grassland_max_moisture"]:
        return BiomeKind.SAVANNA if temperature > t["savanna_min_temp"] else BiomeKind.GRASSLAND
    if moisture < t["forest_max_moisture"]:
        return BiomeKind.FOREST
    return BiomeKind.RAINFOREST if temperature > t["rainforest_min_temp"] else BiomeKind.FOREST


def calculate_biome_map(altitude: np.ndarray, sea_level: float, moisture: np.ndarray,
                        temperature: np.ndarray, thresholds: dict = None) -> np.ndarray:
    """
    Classifies every cell of a grid at once and returns a uint8 array of
    BiomeKind values with the same shape as the inputs.
    """
    t = thresholds or DEFAULTS.BIOME_THRESHOLDS
    beach_limit = sea_level + t["beach_band"]
    peak = altitude > t["peak_altitude"]
    boreal = temperature < t["boreal_max_temp"]
    grassland = moisture < t["grassland_max_moisture"]

    # Order matters: np.select picks the first condition that holds.
    conditions = [
        altitude <= sea_level,
        altitude <= beach_limit,
        peak & (temperature < t["peak_snow_max_temp"]),
        peak,
        temperature < t["snow_max_temp"],
        boreal & (moisture > t["taiga_min_moisture"]),
        boreal,
        moisture < t["desert_max_moisture"],
        grassland & (temperature > t["savanna_min_temp"]),
        grassland,
        moisture < t["forest_max_moisture"],
        temperature > t["rainforest_min_temp"],
    ]
    choices = [
        BiomeKind.OCEAN,
        BiomeKind.BEACH,
        BiomeKind.SNOW,
        BiomeKind.ROCK,
        BiomeKind.SNOW,
        BiomeKind.TAIGA,
        BiomeKind.TUNDRA,
        BiomeKind.DESERT,
        BiomeKind.SAVANNA,
        BiomeKind.GRASSLAND,
        BiomeKind.FOREST,
        BiomeKind.RAINFOREST,
    ]
    biome_map = np.select(conditions, [int(c) for c in choices], default=int(BiomeKind.FOREST))
    return biome_map.astype(np.uint8)
