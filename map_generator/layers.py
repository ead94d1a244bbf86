# map_generator/layers.py

"""
The immutable result of one generation run.

All grids are indexed [y, x] and share the shape (cells_y, cells_x). Arrays
are flagged read-only on construction; pickling rebuilds the object through
its constructor so the flags survive the trip back from a worker process.
"""

import collections
from dataclasses import dataclass, fields

import numpy as np

from .biomes import BiomeKind

_GRID_FIELDS = ("height", "moisture", "temperature", "is_land", "biome", "river")


@dataclass(frozen=True, eq=False)
class GeneratedMapLayers:
    cells_x: int
    cells_y: int
    height: np.ndarray
    moisture: np.ndarray
    temperature: np.ndarray
    is_land: np.ndarray
    biome: np.ndarray
    river: np.ndarray

    def __post_init__(self):
        if self.cells_x <= 0 or self.cells_y <= 0:
            raise ValueError(f"Grid must be non-empty, got {self.cells_x}x{self.cells_y}")
        expected = (self.cells_y, self.cells_x)
        for name in _GRID_FIELDS:
            grid = getattr(self, name)
            if grid.shape != expected:
                raise ValueError(f"Layer '{name}' has shape {grid.shape}, expected {expected}")
            grid.setflags(write=False)

    def __reduce__(self):
        return (self.__class__, tuple(getattr(self, f.name) for f in fields(self)))

    def biome_at(self, x: int, y: int) -> BiomeKind:
        return BiomeKind(int(self.biome[y, x]))

    def biome_counts(self) -> collections.Counter:
        """Counts cells per biome, keyed by BiomeKind."""
        values, counts = np.unique(self.biome, return_counts=True)
        return collections.Counter({BiomeKind(int(v)): int(c) for v, c in zip(values, counts)})

    def equals(self, other: "GeneratedMapLayers") -> bool:
        """Element-wise equality of every layer."""
        if (self.cells_x, self.cells_y) != (other.cells_x, other.cells_y):
            return False
        return all(np.array_equal(getattr(self, name), getattr(other, name)) for name in _GRID_FIELDS)

    def save_npz(self, path: str) -> None:
        np.savez_compressed(path, **{name: getattr(self, name) for name in _GRID_FIELDS})

    @classmethod
    def load_npz(cls, path: str) -> "GeneratedMapLayers":
        with np.load(path) as data:
            grids = {name: np.array(data[name]) for name in _GRID_FIELDS}
        cells_y, cells_x = grids["height"].shape
        return cls(cells_x=cells_x, cells_y=cells_y, **grids)
