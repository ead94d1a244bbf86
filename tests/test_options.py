"""Tests for option normalization, cache keys and grid resolution."""

import pytest

from map_generator import config as DEFAULTS
from map_generator.options import (
    GenerationOptions,
    PIPELINE_SIMULATION,
    cache_key,
    grid_resolution,
)


class TestGenerationOptions:
    """Raw form values are normalized, never rejected."""

    def test_seed_is_trimmed(self):
        options = GenerationOptions.normalize(seed="  northreach \n")
        assert options.seed == "northreach"

    @pytest.mark.parametrize("seed", ["", "   ", None])
    def test_blank_seed_uses_sentinel(self, seed):
        assert GenerationOptions.normalize(seed=seed).seed == DEFAULTS.DEFAULT_SEED

    def test_dimensions_are_clamped(self):
        low = GenerationOptions.normalize(width=10, height=-5)
        high = GenerationOptions.normalize(width=10_000, height=99_999)
        assert (low.width, low.height) == (64, 64)
        assert (high.width, high.height) == (4096, 4096)

    def test_sea_level_is_clamped(self):
        assert GenerationOptions.normalize(sea_level=-0.3).sea_level == 0.0
        assert GenerationOptions.normalize(sea_level=1.7).sea_level == 1.0
        assert GenerationOptions.normalize(sea_level=0.6).sea_level == 0.6

    @pytest.mark.parametrize("preset", ["tropical", "", None, "ARID"])
    def test_unknown_climate_becomes_temperate(self, preset):
        assert GenerationOptions.normalize(climate_preset=preset).climate_preset == "temperate"

    @pytest.mark.parametrize("preset", ["temperate", "arid", "cold"])
    def test_known_climates_are_kept(self, preset):
        assert GenerationOptions.normalize(climate_preset=preset).climate_preset == preset

    def test_non_numeric_values_fall_back_to_defaults(self):
        options = GenerationOptions.normalize(width="wide", height=None, sea_level=float("nan"))
        assert options.width == DEFAULTS.DEFAULT_WIDTH
        assert options.height == DEFAULTS.DEFAULT_HEIGHT
        assert options.sea_level == DEFAULTS.DEFAULT_SEA_LEVEL

    def test_dict_round_trip(self):
        options = GenerationOptions.normalize("a", 500, 300, 0.3, "cold")
        assert GenerationOptions.from_dict(options.to_dict()) == options

    def test_direct_construction_is_normalized(self):
        options = GenerationOptions(seed="  a ", width=10_000, height="tall", sea_level=7.5, climate_preset="tropical")
        assert options.seed == "a"
        assert options.width == 4096
        assert options.height == DEFAULTS.DEFAULT_HEIGHT
        assert options.sea_level == 1.0
        assert options.climate_preset == "temperate"

    def test_direct_construction_matches_normalize(self):
        raw = dict(seed="  a ", width=256.9, height=256, sea_level=-1, climate_preset="ARID")
        assert GenerationOptions(**raw) == GenerationOptions.normalize(**raw)

    def test_blank_direct_seed_uses_sentinel(self):
        assert GenerationOptions(seed="   ").seed == DEFAULTS.DEFAULT_SEED


class TestCacheKey:
    """Two option sets share a key exactly when they are equal."""

    def test_equal_options_share_a_key(self):
        a = GenerationOptions.normalize(seed=" x ", width=512, height=256, sea_level=0.5)
        b = GenerationOptions.normalize(seed="x", width=512.0, height=256, sea_level=0.50)
        assert a == b
        assert cache_key(a) == cache_key(b)

    @pytest.mark.parametrize("change", [
        {"seed": "y"},
        {"width": 513},
        {"height": 257},
        {"sea_level": 0.5000001},
        {"climate_preset": "arid"},
    ])
    def test_every_field_changes_the_key(self, change):
        base = dict(seed="x", width=512, height=256, sea_level=0.5, climate_preset="temperate")
        a = GenerationOptions.normalize(**base)
        b = GenerationOptions.normalize(**{**base, **change})
        assert cache_key(a) != cache_key(b)

    def test_unnormalized_instances_share_a_key(self):
        a = GenerationOptions(seed="  a ", width=256, height=256, sea_level=0.45, climate_preset="tropical")
        b = GenerationOptions(seed="a", width=256, height=256, sea_level=0.45, climate_preset="temperate")
        assert a == b
        assert cache_key(a) == cache_key(b)

    def test_separators_in_seed_cannot_collide(self):
        a = GenerationOptions(seed='a","b', width=64)
        b = GenerationOptions(seed="a", width=64)
        assert cache_key(a) != cache_key(b)

    def test_simulation_keys_are_prefixed(self):
        options = GenerationOptions()
        key = cache_key(options, PIPELINE_SIMULATION)
        assert key.startswith(DEFAULTS.SIMULATION_CACHE_VERSION + "|")
        assert key != cache_key(options)

    def test_unknown_pipeline_raises(self):
        with pytest.raises(ValueError):
            cache_key(GenerationOptions(), "watercolor")


class TestGridResolution:

    def test_default_canvas(self):
        assert grid_resolution(960, 480) == (120, 60)

    def test_small_canvas_uses_minimum_grid(self):
        assert grid_resolution(64, 64) == (48, 32)

    def test_large_canvas_uses_maximum_grid(self):
        assert grid_resolution(4096, 4096) == (220, 140)

    def test_mapping_is_stable(self):
        assert grid_resolution(777, 333) == grid_resolution(777, 333)
