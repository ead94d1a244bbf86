# map_generator/hydrology.py

"""
================================================================================
RIVER GENERATION
================================================================================
Two deterministic river rules over an 8-connected grid:

- `build_river_layer` (preview): pick the highest, wettest land cells as
  sources and walk each one downhill along the steepest descent.
- `build_flow_layer` (simulation): route every land cell to a receiver,
  accumulate flow from high to low ground and mark cells whose flow passes a
  moisture-scaled threshold.

Data Contract:
---------------
- Inputs: height / moisture float grids, is_land bool grid, scalar sea level.
- Outputs: a bool river grid of the same shape.
- Invariants: a river cell is always a land cell.
================================================================================
"""

import numpy as np
from numba import njit

from . import config as DEFAULTS
from . import noise
from .options import clamp

# (dy, dx), row by row from the top-left neighbour.
_NEIGHBOR_OFFSETS = np.array([
    [-1, -1], [-1, 0], [-1, 1],
    [0, -1], [0, 1],
    [1, -1], [1, 0], [1, 1],
], dtype=np.int64)


@njit
def _trace_rivers(height, is_land, sea_level, source_ys, source_xs, max_steps, mouth_margin):
    rows, cols = height.shape
    river = np.zeros((rows, cols), dtype=np.bool_)

    for s in range(source_ys.shape[0]):
        cy = source_ys[s]
        cx = source_xs[s]
        for _ in range(max_steps):
            if not is_land[cy, cx]:
                break
            river[cy, cx] = True

            here = height[cy, cx]
            if here <= sea_level + mouth_margin:
                break

            next_y = cy
            next_x = cx
            next_height = here
            for k in range(8):
                ny = cy + _NEIGHBOR_OFFSETS[k, 0]
                nx = cx + _NEIGHBOR_OFFSETS[k, 1]
                if ny < 0 or ny >= rows or nx < 0 or nx >= cols:
                    continue
                if height[ny, nx] < next_height:
                    next_height = height[ny, nx]
                    next_y = ny
                    next_x = nx

            # Local minimum: the river pools here.
            if next_y == cy and next_x == cx:
                break
            cy = next_y
            cx = next_x

    return river


def river_source_count(cells_x: int, cells_y: int, settings: dict = None) -> int:
    s = settings or {}
    return clamp(
        (cells_x * cells_y) // s.get('river_cells_per_source', DEFAULTS.RIVER_CELLS_PER_SOURCE),
        s.get('min_river_sources', DEFAULTS.MIN_RIVER_SOURCES),
        s.get('max_river_sources', DEFAULTS.MAX_RIVER_SOURCES),
    )


def build_river_layer(seed: str, height: np.ndarray, moisture: np.ndarray, is_land: np.ndarray,
                      sea_level: float, settings: dict = None) -> np.ndarray:
    """Traces steepest-descent rivers from the best-scoring highland sources."""
    s = settings or {}
    cells_y, cells_x = height.shape

    min_elevation = s.get('river_source_min_elevation', DEFAULTS.RIVER_SOURCE_MIN_ELEVATION)
    min_moisture = s.get('river_source_min_moisture', DEFAULTS.RIVER_SOURCE_MIN_MOISTURE)
    candidates = is_land & (height > sea_level + min_elevation) & (moisture > min_moisture)
    ys, xs = np.nonzero(candidates)

    # A small seeded jitter breaks ties between equally good sources.
    rng = np.random.default_rng(noise.seed_to_int(seed) + s.get('river_seed_offset', DEFAULTS.RIVER_SEED_OFFSET))
    jitter = rng.random(height.shape)
    scores = height[ys, xs] * 0.7 + moisture[ys, xs] * 0.3 + jitter[ys, xs] * 0.05

    order = np.argsort(-scores, kind="stable")
    count = min(river_source_count(cells_x, cells_y, s), order.size)
    chosen = order[:count]

    return _trace_rivers(
        np.ascontiguousarray(height, dtype=np.float64),
        np.ascontiguousarray(is_land, dtype=np.bool_),
        float(sea_level),
        np.ascontiguousarray(ys[chosen], dtype=np.int64),
        np.ascontiguousarray(xs[chosen], dtype=np.int64),
        int(s.get('river_max_steps', DEFAULTS.RIVER_MAX_STEPS)),
        float(s.get('river_mouth_margin', DEFAULTS.RIVER_MOUTH_MARGIN)),
    )


# --- Flow accumulation (simulation pipeline) ---

@njit
def _flow_receivers(height, is_land, flat_tolerance):
    rows, cols = height.shape
    receiver = np.full(rows * cols, -1, dtype=np.int64)
    for y in range(rows):
        for x in range(cols):
            if not is_land[y, x]:
                continue
            here = height[y, x]
            best_lower = -1
            best_lower_height = here
            best_any = -1
            best_any_height = np.inf
            for k in range(8):
                ny = y + _NEIGHBOR_OFFSETS[k, 0]
                nx = x + _NEIGHBOR_OFFSETS[k, 1]
                if ny < 0 or ny >= rows or nx < 0 or nx >= cols:
                    continue
                nh = height[ny, nx]
                if nh < best_any_height:
                    best_any_height = nh
                    best_any = ny * cols + nx
                if nh < best_lower_height - 1e-6:
                    best_lower_height = nh
                    best_lower = ny * cols + nx

            if best_lower >= 0:
                receiver[y * cols + x] = best_lower
            elif best_any >= 0 and best_any_height <= here + flat_tolerance:
                # Near-flat ground still drains so plateaus do not trap flow.
                receiver[y * cols + x] = best_any
    return receiver


@njit
def _accumulate(flow, receiver, order, retention):
    for i in range(order.shape[0]):
        idx = order[i]
        target = receiver[idx]
        if target >= 0:
            flow[target] += flow[idx] * retention
    return flow


def build_flow_layer(height: np.ndarray, moisture: np.ndarray, is_land: np.ndarray,
                     sea_level: float, settings: dict = None) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Returns (river, flow, receiver). `receiver` is a flat index array with -1
    where a cell does not drain anywhere.
    """
    s = settings or {}
    rows, cols = height.shape

    receiver = _flow_receivers(
        np.ascontiguousarray(height, dtype=np.float64),
        np.ascontiguousarray(is_land, dtype=np.bool_),
        float(s.get('flow_flat_tolerance', DEFAULTS.FLOW_FLAT_TOLERANCE)),
    )

    base_flow = np.where(is_land, 0.18 + moisture * 0.78, 0.06 + moisture * 0.2)
    order = np.argsort(-height.ravel(), kind="stable")
    flow = _accumulate(
        np.ascontiguousarray(base_flow.ravel(), dtype=np.float64),
        receiver,
        order.astype(np.int64),
        float(s.get('flow_retention', DEFAULTS.FLOW_RETENTION)),
    ).reshape(rows, cols)

    land_flow = flow[is_land]
    max_flow = float(land_flow.max()) if land_flow.size else 0.0
    base_threshold = max(
        s.get('flow_min_threshold', DEFAULTS.FLOW_MIN_THRESHOLD),
        max_flow * s.get('flow_threshold_fraction', DEFAULTS.FLOW_THRESHOLD_FRACTION)
    )
    # Drier ground needs more flow before a channel forms.
    local_threshold = base_threshold * np.clip(1.16 - moisture * 0.34, 0.8, 1.22)

    mouth_margin = s.get('flow_mouth_margin', DEFAULTS.FLOW_MOUTH_MARGIN)
    river = (
        is_land
        & (height > sea_level + mouth_margin)
        & (receiver.reshape(rows, cols) >= 0)
        & (flow >= local_threshold)
    )
    return river, flow, receiver
