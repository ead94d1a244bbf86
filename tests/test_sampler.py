"""Tests for the bilinear sampler."""

import numpy as np
import pytest

from map_generator.sampler import sample, sample_grid, sample_layers


@pytest.fixture
def matrix():
    rng = np.random.default_rng(7)
    # 50 columns: 1/49 * 49 is one ulp short of 1.0 in floating point.
    return rng.random((13, 50))


class TestSample:

    def test_exact_at_grid_coordinates(self, matrix):
        rows, cols = matrix.shape
        for j in range(rows):
            for i in range(cols):
                assert sample(matrix, i / (cols - 1), j / (rows - 1)) == matrix[j][i]

    def test_out_of_range_coordinates_clamp(self, matrix):
        assert sample(matrix, -5, 5) == sample(matrix, 0, 1)
        assert sample(matrix, 3.0, -2.0) == matrix[0][-1]

    def test_midpoint_blends_four_corners(self):
        grid = np.array([[0.0, 1.0], [2.0, 3.0]])
        assert sample(grid, 0.5, 0.5) == pytest.approx(1.5)
        assert sample(grid, 0.25, 0.0) == pytest.approx(0.25)
        assert sample(grid, 0.0, 0.75) == pytest.approx(1.5)

    def test_accepts_nested_lists(self):
        assert sample([[0.0, 1.0], [1.0, 2.0]], 1.0, 1.0) == 2.0

    def test_single_cell_matrix(self):
        assert sample([[0.4]], 0.7, 0.2) == 0.4

    def test_empty_matrix_returns_zero(self):
        assert sample([], 0.5, 0.5) == 0.0
        assert sample([[]], 0.5, 0.5) == 0.0


class TestSampleGrid:

    def test_output_shape_and_corners(self, matrix):
        resampled = sample_grid(matrix, 200, 90)
        assert resampled.shape == (90, 200)
        assert resampled[0, 0] == pytest.approx(matrix[0, 0])
        assert resampled[-1, -1] == pytest.approx(matrix[-1, -1])
        assert resampled[0, -1] == pytest.approx(matrix[0, -1])

    def test_same_resolution_reproduces_matrix(self, matrix):
        rows, cols = matrix.shape
        np.testing.assert_allclose(sample_grid(matrix, cols, rows), matrix)

    def test_agrees_with_scalar_sampler(self, matrix):
        resampled = sample_grid(matrix, 31, 17)
        for j in (0, 5, 16):
            for i in (0, 12, 30):
                assert resampled[j, i] == pytest.approx(sample(matrix, i / 30, j / 16))


def test_sample_layers(small_layers):
    values = sample_layers(small_layers, 0.5, 0.5)
    assert set(values) == {"height", "moisture", "temperature"}
    assert all(0.0 <= v <= 1.0 for v in values.values())
