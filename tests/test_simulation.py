"""Tests for the simulation pipeline."""

import numpy as np

from map_generator import config as DEFAULTS
from map_generator import GenerationOptions, generate_map_layers, generate_simulation_layers
from map_generator.simulation import ensure_ocean_border

from .test_generator import assert_layer_invariants


def test_layer_invariants_hold(small_options):
    layers = generate_simulation_layers(small_options)
    assert (layers.cells_x, layers.cells_y) == (48, 32)
    assert_layer_invariants(layers, small_options.sea_level)


def test_border_is_ocean(small_options):
    layers = generate_simulation_layers(small_options)
    for edge in (layers.is_land[0], layers.is_land[-1], layers.is_land[:, 0], layers.is_land[:, -1]):
        assert not edge.any()


def test_is_deterministic(small_options):
    assert generate_simulation_layers(small_options).equals(generate_simulation_layers(small_options))


def test_differs_from_preview(small_options, small_layers):
    assert not generate_simulation_layers(small_options).equals(small_layers)


def test_ensure_ocean_border():
    height = np.ones((20, 30))
    ensure_ocean_border(height, 0.5)
    edge_sea = 0.5 - DEFAULTS.OCEAN_RIM_DEPTH
    assert np.all(height[:2] == edge_sea)
    assert np.all(height[:, -2:] == edge_sea)
    assert np.all(height[2:-2, 2:-2] == 1.0)


def test_ensure_ocean_border_keeps_deeper_water():
    height = np.full((10, 10), 0.1)
    ensure_ocean_border(height, 0.5)
    assert np.all(height == 0.1)


def test_cold_simulation_keeps_invariants():
    options = GenerationOptions.normalize(seed="frost", width=320, height=260, sea_level=0.35, climate_preset="cold")
    assert_layer_invariants(generate_simulation_layers(options), options.sea_level)
    assert_layer_invariants(generate_map_layers(options), options.sea_level)
