# map_generator/options.py

"""
Generation options and their canonical cache keys.

Options arrive straight from a parameter form on every edit, so nothing in
here ever raises: out-of-range values are clamped, unknown presets fall back
to the default one and blank seeds become the sentinel seed.
"""

import json
import math
from dataclasses import dataclass

from . import config as DEFAULTS

PIPELINE_PREVIEW = "preview"
PIPELINE_SIMULATION = "simulation"
PIPELINES = (PIPELINE_PREVIEW, PIPELINE_SIMULATION)


def clamp(value, minimum, maximum):
    return min(maximum, max(minimum, value))


def _as_number(value, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if math.isnan(number):
        return fallback
    return number


def normalize_climate(value) -> str:
    if value in DEFAULTS.CLIMATE_PRESETS:
        return value
    return DEFAULTS.DEFAULT_CLIMATE_PRESET


@dataclass(frozen=True)
class GenerationOptions:
    """
    An immutable set of generation parameters. Every field is normalized on
    construction, so two instances describing the same map compare equal and
    share one cache key.
    """
    seed: str = DEFAULTS.DEFAULT_SEED
    width: int = DEFAULTS.DEFAULT_WIDTH
    height: int = DEFAULTS.DEFAULT_HEIGHT
    sea_level: float = DEFAULTS.DEFAULT_SEA_LEVEL
    climate_preset: str = DEFAULTS.DEFAULT_CLIMATE_PRESET

    def __post_init__(self):
        seed_text = str(self.seed).strip() if self.seed is not None else ""
        safe_width = clamp(
            _as_number(self.width, DEFAULTS.DEFAULT_WIDTH),
            DEFAULTS.MIN_MAP_DIMENSION, DEFAULTS.MAX_MAP_DIMENSION
        )
        safe_height = clamp(
            _as_number(self.height, DEFAULTS.DEFAULT_HEIGHT),
            DEFAULTS.MIN_MAP_DIMENSION, DEFAULTS.MAX_MAP_DIMENSION
        )
        safe_sea_level = clamp(_as_number(self.sea_level, DEFAULTS.DEFAULT_SEA_LEVEL), 0.0, 1.0)

        # Frozen dataclass: fields can only be replaced through object.__setattr__.
        object.__setattr__(self, 'seed', seed_text or DEFAULTS.DEFAULT_SEED)
        object.__setattr__(self, 'width', int(safe_width))
        object.__setattr__(self, 'height', int(safe_height))
        object.__setattr__(self, 'sea_level', float(safe_sea_level))
        object.__setattr__(self, 'climate_preset', normalize_climate(self.climate_preset))

    @classmethod
    def normalize(cls, seed=None, width=None, height=None, sea_level=None, climate_preset=None) -> "GenerationOptions":
        """Builds options from raw form values. Missing values take the defaults."""
        return cls(seed=seed, width=width, height=height, sea_level=sea_level, climate_preset=climate_preset)

    @classmethod
    def from_dict(cls, data: dict) -> "GenerationOptions":
        return cls.normalize(
            seed=data.get('seed'),
            width=data.get('width'),
            height=data.get('height'),
            sea_level=data.get('sea_level'),
            climate_preset=data.get('climate_preset'),
        )

    def to_dict(self) -> dict:
        return {
            'seed': self.seed,
            'width': self.width,
            'height': self.height,
            'sea_level': self.sea_level,
            'climate_preset': self.climate_preset,
        }


def grid_resolution(width: int, height: int) -> tuple[int, int]:
    """
    Maps a canvas size in pixels to the (cells_x, cells_y) synthesis grid.
    The default 960x480 canvas maps to a 120x60 grid.
    """
    cells_x = clamp(int(width) // DEFAULTS.CELL_SIZE_PX, DEFAULTS.MIN_CELLS_X, DEFAULTS.MAX_CELLS_X)
    cells_y = clamp(int(height) // DEFAULTS.CELL_SIZE_PX, DEFAULTS.MIN_CELLS_Y, DEFAULTS.MAX_CELLS_Y)
    return cells_x, cells_y


def cache_key(options: GenerationOptions, pipeline: str = PIPELINE_PREVIEW) -> str:
    """
    Returns the canonical cache key for a set of options.

    The key is a JSON array, so a seed containing separators cannot collide
    with another option set. Floats serialize through repr() and round-trip
    exactly.
    """
    if pipeline not in PIPELINES:
        raise ValueError(f"Unknown generation pipeline: {pipeline!r}")

    key = json.dumps([
        options.seed,
        options.width,
        options.height,
        options.sea_level,
        options.climate_preset,
    ], ensure_ascii=False, separators=(",", ":"))

    if pipeline == PIPELINE_SIMULATION:
        return f"{DEFAULTS.SIMULATION_CACHE_VERSION}|{key}"
    return key
