# map_generator/simulation.py

"""
================================================================================
SIMULATION TERRAIN PIPELINE
================================================================================
A heavier variant of the preview pipeline for simulation views. It starts from
the same synthesized fields and then:

1. Relaxes steep slopes with thermal erosion.
2. Forces an ocean rim around the map border.
3. Nudges moisture and temperature by altitude.
4. Routes flow downhill and carves river valleys into the terrain.
5. Reclassifies every cell and recomputes the final river grid.

The output satisfies the same layer invariants as the preview pipeline.
================================================================================
"""

import logging
import time

import numpy as np
from numba import njit

from . import config as DEFAULTS
from .generator import MapGenerator
from .hydrology import _NEIGHBOR_OFFSETS, build_flow_layer
from .layers import GeneratedMapLayers
from .options import GenerationOptions, grid_resolution


@njit
def _thermal_erosion(height, sea_level, iterations, talus_land, talus_sea, transfer_factor,
                     max_transfer_land, max_transfer_sea):
    rows, cols = height.shape
    lower_y = np.empty(8, dtype=np.int64)
    lower_x = np.empty(8, dtype=np.int64)
    lower_excess = np.empty(8)

    for _ in range(iterations):
        delta = np.zeros((rows, cols))
        for y in range(rows):
            for x in range(cols):
                here = height[y, x]
                talus = talus_land if here > sea_level else talus_sea
                count = 0
                sum_excess = 0.0
                max_diff = 0.0
                for k in range(8):
                    ny = y + _NEIGHBOR_OFFSETS[k, 0]
                    nx = x + _NEIGHBOR_OFFSETS[k, 1]
                    if ny < 0 or ny >= rows or nx < 0 or nx >= cols:
                        continue
                    diff = here - height[ny, nx]
                    if diff <= talus:
                        continue
                    excess = diff - talus
                    sum_excess += excess
                    if diff > max_diff:
                        max_diff = diff
                    lower_y[count] = ny
                    lower_x[count] = nx
                    lower_excess[count] = excess
                    count += 1

                if count == 0 or sum_excess <= 0.0:
                    continue
                limit = max_transfer_land if here > sea_level else max_transfer_sea
                capacity = min(max((max_diff - talus) * transfer_factor, 0.0), limit)
                if capacity <= 0.0:
                    continue
                delta[y, x] -= capacity
                for i in range(count):
                    delta[lower_y[i], lower_x[i]] += capacity * (lower_excess[i] / sum_excess)

        for y in range(rows):
            for x in range(cols):
                height[y, x] = min(max(height[y, x] + delta[y, x], 0.0), 1.0)
    return height


@njit
def _carve_rivers(height, flow, receiver, river, is_land, sea_level):
    rows, cols = height.shape
    max_flow = 0.0
    for y in range(rows):
        for x in range(cols):
            if flow[y, x] > max_flow:
                max_flow = flow[y, x]
    if max_flow <= 0.0:
        return height

    delta = np.zeros((rows, cols))
    for y in range(rows):
        for x in range(cols):
            if not river[y, x] or not is_land[y, x]:
                continue
            normalized_flow = flow[y, x] / max_flow
            incision = min(max((normalized_flow - 0.018) * 0.078, 0.002), 0.05)
            delta[y, x] -= incision

            target = receiver[y * cols + x]
            if target >= 0:
                delta[target // cols, target % cols] -= incision * 0.38

            # Widen the valley into neighbouring land.
            for k in range(8):
                ny = y + _NEIGHBOR_OFFSETS[k, 0]
                nx = x + _NEIGHBOR_OFFSETS[k, 1]
                if ny < 0 or ny >= rows or nx < 0 or nx >= cols:
                    continue
                if is_land[ny, nx]:
                    delta[ny, nx] -= incision * 0.18

    for y in range(rows):
        for x in range(cols):
            floor = sea_level - 0.01 if is_land[y, x] else 0.0
            height[y, x] = min(max(max(floor, height[y, x] + delta[y, x]), 0.0), 1.0)
    return height


def ensure_ocean_border(height: np.ndarray, sea_level: float, settings: dict = None) -> np.ndarray:
    """Caps every cell within the border rim just below sea level. Modifies in place."""
    s = settings or {}
    cells_y, cells_x = height.shape
    rim = max(2, int(min(cells_x, cells_y) * s.get('ocean_rim_fraction', DEFAULTS.OCEAN_RIM_FRACTION)))
    edge_sea = min(max(sea_level - s.get('ocean_rim_depth', DEFAULTS.OCEAN_RIM_DEPTH), 0.0), 1.0)

    ys, xs = np.mgrid[0:cells_y, 0:cells_x]
    distance_to_edge = np.minimum(np.minimum(xs, cells_x - 1 - xs), np.minimum(ys, cells_y - 1 - ys))
    in_rim = (distance_to_edge < rim) & (height > edge_sea)
    height[in_rim] = edge_sea
    return height


def _altitude_norm(height: np.ndarray, sea_level: float) -> np.ndarray:
    return np.clip((height - sea_level) / max(0.001, 1.0 - sea_level), 0.0, 1.0)


def generate_simulation_layers(options: GenerationOptions, config: dict = None,
                               logger: logging.Logger = None) -> GeneratedMapLayers:
    """Runs the simulation pipeline for a set of options."""
    logger = logger or logging.getLogger(__name__)
    start_time = time.perf_counter()
    s = config or {}
    sea_level = options.sea_level

    generator = MapGenerator(config={**s, 'seed': options.seed}, logger=logger)
    cells_x, cells_y = grid_resolution(options.width, options.height)
    height, moisture, temperature = generator.synthesize(
        cells_x, cells_y, sea_level, options.climate_preset, options.width, options.height
    )
    height = np.array(height, dtype=np.float64)

    _thermal_erosion(
        height, float(sea_level),
        int(s.get('thermal_erosion_iterations', DEFAULTS.THERMAL_EROSION_ITERATIONS)),
        float(s.get('thermal_talus_land', DEFAULTS.THERMAL_TALUS_LAND)),
        float(s.get('thermal_talus_sea', DEFAULTS.THERMAL_TALUS_SEA)),
        float(s.get('thermal_transfer_factor', DEFAULTS.THERMAL_TRANSFER_FACTOR)),
        float(s.get('thermal_max_transfer_land', DEFAULTS.THERMAL_MAX_TRANSFER_LAND)),
        float(s.get('thermal_max_transfer_sea', DEFAULTS.THERMAL_MAX_TRANSFER_SEA)),
    )
    ensure_ocean_border(height, sea_level, s)

    altitude_norm = _altitude_norm(height, sea_level)
    moisture = np.clip(moisture + (1.0 - altitude_norm) * 0.035, 0.0, 1.0)
    temperature = np.clip(temperature - altitude_norm * 0.07, 0.0, 1.0)
    land = height > sea_level

    first_river, flow, receiver = build_flow_layer(height, moisture, land, sea_level, s)
    _carve_rivers(height, flow, receiver, first_river, land, float(sea_level))

    altitude_norm = _altitude_norm(height, sea_level)
    moisture = np.where(first_river, np.clip(moisture + 0.08, 0.0, 1.0), moisture)
    temperature = np.clip(temperature - altitude_norm * 0.02, 0.0, 1.0)
    land = height > sea_level

    final_river, _, _ = build_flow_layer(height, moisture, land, sea_level, s)
    layers = generator.assemble_layers(height, moisture, temperature, sea_level, river=final_river)

    logger.debug(
        f"Generated {cells_x}x{cells_y} simulation layers for seed '{options.seed}' "
        f"in {time.perf_counter() - start_time:.3f}s"
    )
    return layers
