# map_generator/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the map
generator and its preview pipeline. These values are used if they are not
explicitly provided by the user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC MAP.
Instead, pass a configuration dictionary to the MapGenerator instance.
================================================================================
"""

# --- Option Normalization ---
# Seed used when the caller supplies an empty (or whitespace-only) seed.
DEFAULT_SEED = "default-seed"
DEFAULT_WIDTH = 960
DEFAULT_HEIGHT = 480
DEFAULT_SEA_LEVEL = 0.45
DEFAULT_CLIMATE_PRESET = "temperate"
CLIMATE_PRESETS = ("temperate", "arid", "cold")

MIN_MAP_DIMENSION = 64
MAX_MAP_DIMENSION = 4096

# --- Grid Resolution ---
# One grid cell covers this many map pixels on each axis. The result is then
# clamped so previews stay cheap regardless of the requested canvas size.
CELL_SIZE_PX = 8
MIN_CELLS_X = 48
MAX_CELLS_X = 220
MIN_CELLS_Y = 32
MAX_CELLS_Y = 140

# --- Noise Generation ---
# Coordinate offsets keep each layer unique while staying deterministic
# from the master seed.
CONTINENT_SEED_OFFSET = 101
DETAIL_SEED_OFFSET = 303
RIDGE_SEED_OFFSET = 505
MOISTURE_SEED_OFFSET = 707
TEMPERATURE_SEED_OFFSET = 809
RIVER_SEED_OFFSET = 909

# Feature scales in map pixels. A larger number means a larger feature.
CONTINENT_FEATURE_SCALE_PX = 320.0
DETAIL_FEATURE_SCALE_PX = 110.0
RIDGE_FEATURE_SCALE_PX = 60.0
MOISTURE_FEATURE_SCALE_PX = 180.0
TEMPERATURE_FEATURE_SCALE_PX = 240.0

NOISE_OCTAVES = 4
NOISE_PERSISTENCE = 0.5
NOISE_LACUNARITY = 2.0
# Perlin fBm clusters around 0.5; this stretches it back over [0, 1].
NOISE_CONTRAST = 1.6

# --- Elevation Shaping ---
ELEVATION_WEIGHTS = {
    "continental": 0.58,
    "detail": 0.28,
    "ridge": 0.14,
}
RADIAL_FALLOFF = 0.52
ELEVATION_BIAS = 0.22

# --- Climate Shaping ---
MOISTURE_NOISE_WEIGHT = 0.65
MOISTURE_LATITUDE_WEIGHT = 0.2
MOISTURE_LOWLAND_WEIGHT = 0.15

TEMPERATURE_LATITUDE_WEIGHT = 0.72
TEMPERATURE_NOISE_WEIGHT = 0.28
# Cooling starts above this altitude and scales with LAPSE_RATE.
LAPSE_START_ALTITUDE = 0.55
LAPSE_RATE = 0.34

# Additive (temperature, moisture) shifts per climate preset.
CLIMATE_SHIFTS = {
    "temperate": (0.0, 0.0),
    "arid": (0.08, -0.2),
    "cold": (-0.16, -0.06),
}

# --- Biome Thresholds (normalized 0.0 to 1.0) ---
BIOME_THRESHOLDS = {
    "beach_band": 0.018,
    "peak_altitude": 0.9,
    "peak_snow_max_temp": 0.28,
    "snow_max_temp": 0.16,
    "boreal_max_temp": 0.30,
    "taiga_min_moisture": 0.42,
    "desert_max_moisture": 0.17,
    "grassland_max_moisture": 0.34,
    "savanna_min_temp": 0.58,
    "forest_max_moisture": 0.66,
    "rainforest_min_temp": 0.45,
}

# --- Rivers (preview pipeline) ---
RIVER_SOURCE_MIN_ELEVATION = 0.16 # Above sea level
RIVER_SOURCE_MIN_MOISTURE = 0.5
RIVER_CELLS_PER_SOURCE = 900
MIN_RIVER_SOURCES = 8
MAX_RIVER_SOURCES = 40
RIVER_MAX_STEPS = 240
RIVER_MOUTH_MARGIN = 0.008

# --- Simulation Terrain Pipeline ---
SIMULATION_CACHE_VERSION = "sim-terrain-v2"
THERMAL_EROSION_ITERATIONS = 14
THERMAL_TALUS_LAND = 0.023
THERMAL_TALUS_SEA = 0.01
THERMAL_TRANSFER_FACTOR = 0.22
THERMAL_MAX_TRANSFER_LAND = 0.052
THERMAL_MAX_TRANSFER_SEA = 0.024
# Fraction of the shorter grid side forced to open ocean around the border.
OCEAN_RIM_FRACTION = 0.045
OCEAN_RIM_DEPTH = 0.02

FLOW_FLAT_TOLERANCE = 0.018
FLOW_RETENTION = 0.985
FLOW_MIN_THRESHOLD = 0.48
FLOW_THRESHOLD_FRACTION = 0.028
FLOW_MOUTH_MARGIN = 0.004

# --- Preview Cache ---
CACHE_CAPACITY = 20
WORKER_CACHE_CAPACITY = 24 # Per worker process
