# map_generator/sampler.py

"""
Continuous sampling of discrete layer grids.

Renderers query layers at normalized (u, v) coordinates so the drawing
resolution is independent of the synthesis grid. Coordinates outside [0, 1]
clamp to the border; there is no wraparound.
"""

import numpy as np
from scipy.ndimage import map_coordinates

from .options import clamp

# i / (n - 1) * (n - 1) can land one ulp short of i (e.g. 1/49 * 49).
_SNAP_EPSILON = 1e-9


def _snap(coordinate: float) -> float:
    nearest = round(coordinate)
    if abs(coordinate - nearest) < _SNAP_EPSILON:
        return float(nearest)
    return coordinate


def sample(matrix, u: float, v: float) -> float:
    """
    Bilinearly samples `matrix` at normalized coordinates (u, v).
    At exact grid coordinates the stored value is returned unchanged.
    """
    grid = np.asarray(matrix, dtype=float)
    if grid.ndim != 2 or grid.size == 0:
        return 0.0
    rows, cols = grid.shape

    x = _snap(clamp(u, 0.0, 1.0) * (cols - 1))
    y = _snap(clamp(v, 0.0, 1.0) * (rows - 1))
    x0 = int(np.floor(x))
    y0 = int(np.floor(y))
    x1 = min(cols - 1, x0 + 1)
    y1 = min(rows - 1, y0 + 1)
    tx = x - x0
    ty = y - y0

    v00 = grid[y0, x0]
    v10 = grid[y0, x1]
    v01 = grid[y1, x0]
    v11 = grid[y1, x1]

    top = v00 + (v10 - v00) * tx
    bottom = v01 + (v11 - v01) * tx
    return float(top + (bottom - top) * ty)


def sample_grid(matrix: np.ndarray, out_width: int, out_height: int) -> np.ndarray:
    """
    Resamples a whole layer to (out_height, out_width) with bilinear
    interpolation. Output pixel (i, j) corresponds to
    u = i / (out_width - 1), v = j / (out_height - 1).
    """
    grid = np.asarray(matrix, dtype=float)
    rows, cols = grid.shape
    v = np.linspace(0.0, rows - 1, out_height)
    u = np.linspace(0.0, cols - 1, out_width)
    vv, uu = np.meshgrid(v, u, indexing="ij")
    coords = np.array([vv.ravel(), uu.ravel()])
    return map_coordinates(grid, coords, order=1, mode="nearest").reshape(out_height, out_width)


def sample_layers(layers, u: float, v: float) -> dict:
    """Samples every continuous field of a GeneratedMapLayers at once."""
    return {
        'height': sample(layers.height, u, v),
        'moisture': sample(layers.moisture, u, v),
        'temperature': sample(layers.temperature, u, v),
    }
