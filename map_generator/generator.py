# map_generator/generator.py

"""
================================================================================
CORE MAP GENERATOR
================================================================================
This module contains the MapGenerator class, responsible for synthesizing the
continuous terrain fields (elevation, moisture, temperature) of a map and for
assembling the full GeneratedMapLayers result.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): Parameters which can override the internal defaults in
      map_generator.config. Expected keys include 'seed', feature scales, etc.
    - logger: A configured Python logging object for runtime messages.
- Outputs (from methods):
    - NumPy arrays of shape (cells_y, cells_x) containing normalized [0, 1] data.
- Side Effects: Logs messages using the provided logger.
- Invariants: Given the same seed, grid and configuration, the output is
  bit-identical.
================================================================================
"""

import logging
import time

import numpy as np

from . import config as DEFAULTS
from . import noise
from .biomes import calculate_biome_map, is_land as land_mask
from .hydrology import build_river_layer
from .layers import GeneratedMapLayers
from .options import GenerationOptions, grid_resolution, normalize_climate

_SETTING_DEFAULTS = {
    'seed': DEFAULTS.DEFAULT_SEED,
    'continent_seed_offset': DEFAULTS.CONTINENT_SEED_OFFSET,
    'detail_seed_offset': DEFAULTS.DETAIL_SEED_OFFSET,
    'ridge_seed_offset': DEFAULTS.RIDGE_SEED_OFFSET,
    'moisture_seed_offset': DEFAULTS.MOISTURE_SEED_OFFSET,
    'temperature_seed_offset': DEFAULTS.TEMPERATURE_SEED_OFFSET,
    'river_seed_offset': DEFAULTS.RIVER_SEED_OFFSET,

    'continent_feature_scale_px': DEFAULTS.CONTINENT_FEATURE_SCALE_PX,
    'detail_feature_scale_px': DEFAULTS.DETAIL_FEATURE_SCALE_PX,
    'ridge_feature_scale_px': DEFAULTS.RIDGE_FEATURE_SCALE_PX,
    'moisture_feature_scale_px': DEFAULTS.MOISTURE_FEATURE_SCALE_PX,
    'temperature_feature_scale_px': DEFAULTS.TEMPERATURE_FEATURE_SCALE_PX,

    'noise_octaves': DEFAULTS.NOISE_OCTAVES,
    'noise_persistence': DEFAULTS.NOISE_PERSISTENCE,
    'noise_lacunarity': DEFAULTS.NOISE_LACUNARITY,
    'noise_contrast': DEFAULTS.NOISE_CONTRAST,

    'elevation_weights': DEFAULTS.ELEVATION_WEIGHTS,
    'radial_falloff': DEFAULTS.RADIAL_FALLOFF,
    'elevation_bias': DEFAULTS.ELEVATION_BIAS,

    'moisture_noise_weight': DEFAULTS.MOISTURE_NOISE_WEIGHT,
    'moisture_latitude_weight': DEFAULTS.MOISTURE_LATITUDE_WEIGHT,
    'moisture_lowland_weight': DEFAULTS.MOISTURE_LOWLAND_WEIGHT,
    'temperature_latitude_weight': DEFAULTS.TEMPERATURE_LATITUDE_WEIGHT,
    'temperature_noise_weight': DEFAULTS.TEMPERATURE_NOISE_WEIGHT,
    'lapse_start_altitude': DEFAULTS.LAPSE_START_ALTITUDE,
    'lapse_rate': DEFAULTS.LAPSE_RATE,
    'climate_shifts': DEFAULTS.CLIMATE_SHIFTS,

    'biome_thresholds': DEFAULTS.BIOME_THRESHOLDS,

    'river_source_min_elevation': DEFAULTS.RIVER_SOURCE_MIN_ELEVATION,
    'river_source_min_moisture': DEFAULTS.RIVER_SOURCE_MIN_MOISTURE,
    'river_cells_per_source': DEFAULTS.RIVER_CELLS_PER_SOURCE,
    'min_river_sources': DEFAULTS.MIN_RIVER_SOURCES,
    'max_river_sources': DEFAULTS.MAX_RIVER_SOURCES,
    'river_max_steps': DEFAULTS.RIVER_MAX_STEPS,
    'river_mouth_margin': DEFAULTS.RIVER_MOUTH_MARGIN,
}


class MapGenerator:
    """
    Synthesizes the raw fields for a seeded map.
    This class is backend-only and does not handle any visualization.
    """
    def __init__(self, config: dict = None, logger: logging.Logger = None, permutation_table: np.ndarray = None):
        """
        Initializes the map generator.

        Args:
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.
            permutation_table (np.ndarray, optional): A pre-computed noise
                permutation table. If None, one will be generated from the seed.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.user_config = config or {}

        # --- Consolidate Configuration ---
        self.settings = {
            key: self.user_config.get(key, default) for key, default in _SETTING_DEFAULTS.items()
        }
        self.settings['seed'] = str(self.settings['seed']).strip() or DEFAULTS.DEFAULT_SEED
        self.seed = self.settings['seed']

        # --- Initialize Noise ---
        if permutation_table is not None:
            self._p = permutation_table
            self.logger.debug("Initialized with injected permutation table.")
        else:
            self._p = noise.permutation_table(self.seed)

        self.permutation_table = self._p
        self.logger.debug(f"MapGenerator initialized with seed: '{self.seed}'")

    def _layer_noise(self, x_coords: np.ndarray, y_coords: np.ndarray, seed_offset: int, scale: float) -> np.ndarray:
        """A generic helper to produce a normalized [0, 1] noise map for one layer."""
        return noise.fractal_noise_2d(
            self._p,
            (x_coords + seed_offset) / scale,
            (y_coords + seed_offset) / scale,
            octaves=self.settings['noise_octaves'],
            persistence=self.settings['noise_persistence'],
            lacunarity=self.settings['noise_lacunarity'],
            contrast=self.settings['noise_contrast'],
        )

    def get_coordinate_grid(self, cells_x: int, cells_y: int, width: float, height: float):
        """
        Returns (x_coords, y_coords) in map pixels for every grid cell. Cell
        spacing follows the canvas size so features keep their pixel scale.
        """
        x = np.arange(cells_x, dtype=np.float64) * (width / cells_x)
        y = np.arange(cells_y, dtype=np.float64) * (height / cells_y)
        return np.meshgrid(x, y)

    def get_elevation(self, x_coords: np.ndarray, y_coords: np.ndarray) -> np.ndarray:
        """
        Blends three noise octaves of decreasing feature size and pulls the
        map edges down so land gathers towards the centre.
        """
        s = self.settings
        weights = s['elevation_weights']
        continental = self._layer_noise(x_coords, y_coords, s['continent_seed_offset'], s['continent_feature_scale_px'])
        detail = self._layer_noise(x_coords, y_coords, s['detail_seed_offset'], s['detail_feature_scale_px'])
        ridge = self._layer_noise(x_coords, y_coords, s['ridge_seed_offset'], s['ridge_feature_scale_px'])

        cells_y, cells_x = x_coords.shape
        nx = np.linspace(-0.5, 0.5, cells_x)
        ny = np.linspace(-0.5, 0.5, cells_y)
        xv, yv = np.meshgrid(nx, ny)
        distance_from_center = np.sqrt(xv ** 2 + yv ** 2)

        altitude = (
            continental * weights['continental']
            + detail * weights['detail']
            + ridge * weights['ridge']
        )
        altitude = altitude - distance_from_center * s['radial_falloff'] + s['elevation_bias']
        return np.clip(altitude, 0.0, 1.0)

    def _latitude_band(self, shape: tuple) -> np.ndarray:
        """1.0 on the equator row (middle of the map), 0.0 on the top and bottom rows."""
        cells_y, cells_x = shape
        band = 1.0 - np.abs(np.linspace(0.0, 1.0, cells_y) * 2.0 - 1.0)
        return np.repeat(band[:, np.newaxis], cells_x, axis=1)

    def get_moisture(self, x_coords: np.ndarray, y_coords: np.ndarray, elevation_data: np.ndarray,
                     sea_level: float, climate_preset: str = DEFAULTS.DEFAULT_CLIMATE_PRESET) -> np.ndarray:
        s = self.settings
        _, moisture_shift = s['climate_shifts'][normalize_climate(climate_preset)]
        wetness = (
            self._layer_noise(x_coords, y_coords, s['moisture_seed_offset'], s['moisture_feature_scale_px']) * s['moisture_noise_weight']
            + self._latitude_band(x_coords.shape) * s['moisture_latitude_weight']
            + (1.0 - np.maximum(0.0, elevation_data - sea_level)) * s['moisture_lowland_weight']
        )
        return np.clip(wetness + moisture_shift, 0.0, 1.0)

    def get_temperature(self, x_coords: np.ndarray, y_coords: np.ndarray, elevation_data: np.ndarray,
                        climate_preset: str = DEFAULTS.DEFAULT_CLIMATE_PRESET) -> np.ndarray:
        s = self.settings
        temperature_shift, _ = s['climate_shifts'][normalize_climate(climate_preset)]
        heat = (
            self._latitude_band(x_coords.shape) * s['temperature_latitude_weight']
            + self._layer_noise(x_coords, y_coords, s['temperature_seed_offset'], s['temperature_feature_scale_px']) * s['temperature_noise_weight']
            - np.maximum(0.0, elevation_data - s['lapse_start_altitude']) * s['lapse_rate']
        )
        return np.clip(heat + temperature_shift, 0.0, 1.0)

    def synthesize(self, cells_x: int, cells_y: int, sea_level: float = DEFAULTS.DEFAULT_SEA_LEVEL,
                   climate_preset: str = DEFAULTS.DEFAULT_CLIMATE_PRESET,
                   width: float = None, height: float = None) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Returns the (height, moisture, temperature) fields for a cells_y x cells_x grid."""
        if cells_x < 2 or cells_y < 2:
            raise ValueError(f"Grid must be at least 2x2, got {cells_x}x{cells_y}")
        width = width if width is not None else cells_x * DEFAULTS.CELL_SIZE_PX
        height = height if height is not None else cells_y * DEFAULTS.CELL_SIZE_PX

        x_coords, y_coords = self.get_coordinate_grid(cells_x, cells_y, width, height)
        elevation = self.get_elevation(x_coords, y_coords)
        moisture = self.get_moisture(x_coords, y_coords, elevation, sea_level, climate_preset)
        temperature = self.get_temperature(x_coords, y_coords, elevation, climate_preset)
        return elevation, moisture, temperature

    def assemble_layers(self, height: np.ndarray, moisture: np.ndarray, temperature: np.ndarray,
                        sea_level: float, river: np.ndarray = None) -> GeneratedMapLayers:
        """
        Derives land, biome and (unless given) river grids from the fields and
        packs everything into an immutable GeneratedMapLayers.
        """
        land = land_mask(height, sea_level)
        biome = calculate_biome_map(height, sea_level, moisture, temperature, self.settings['biome_thresholds'])
        if river is None:
            river = build_river_layer(self.seed, height, moisture, land, sea_level, self.settings)
        cells_y, cells_x = height.shape
        return GeneratedMapLayers(
            cells_x=cells_x,
            cells_y=cells_y,
            height=height,
            moisture=moisture,
            temperature=temperature,
            is_land=land,
            biome=biome,
            river=river & land,
        )


def synthesize(seed: str, cells_x: int, cells_y: int, *, sea_level: float = DEFAULTS.DEFAULT_SEA_LEVEL,
               climate_preset: str = DEFAULTS.DEFAULT_CLIMATE_PRESET, width: float = None,
               height: float = None, config: dict = None) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Deterministic field synthesis for a seed and grid size."""
    generator = MapGenerator(config={**(config or {}), 'seed': seed})
    return generator.synthesize(cells_x, cells_y, sea_level, climate_preset, width, height)


def generate_map_layers(options: GenerationOptions, config: dict = None, logger: logging.Logger = None) -> GeneratedMapLayers:
    """Runs the full preview pipeline: synthesis, classification and rivers."""
    logger = logger or logging.getLogger(__name__)
    start_time = time.perf_counter()

    generator = MapGenerator(config={**(config or {}), 'seed': options.seed}, logger=logger)
    cells_x, cells_y = grid_resolution(options.width, options.height)
    height, moisture, temperature = generator.synthesize(
        cells_x, cells_y, options.sea_level, options.climate_preset, options.width, options.height
    )
    layers = generator.assemble_layers(height, moisture, temperature, options.sea_level)

    logger.debug(
        f"Generated {cells_x}x{cells_y} layers for seed '{options.seed}' "
        f"in {time.perf_counter() - start_time:.3f}s"
    )
    return layers
