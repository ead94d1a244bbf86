# map_generator/noise.py

"""
================================================================================
NOISE GENERATION UTILITIES
================================================================================
This module provides seeded 2D Perlin noise for the field synthesizer. It is
designed to be a pure, stateless utility.

Data Contract:
---------------
- Inputs:
    - seed: Any string. It is hashed into a permutation table, so the same
      string always yields the same table on every platform.
    - p: A pre-shuffled NumPy permutation table (int array, length 512).
    - x, y: NumPy arrays of noise-space coordinates with identical shapes.
- Outputs:
    - fractal_noise_2d returns values normalized to [0, 1].
- Side Effects: None.
- Invariants: Identical inputs give bit-identical outputs.
================================================================================
"""

import hashlib

import numpy as np
from numba import njit

# Eight unit-ish gradient directions: axes and diagonals.
_GRADIENTS = np.array([
    [1.0, 0.0], [-1.0, 0.0], [0.0, 1.0], [0.0, -1.0],
    [0.70710678, 0.70710678], [-0.70710678, 0.70710678],
    [0.70710678, -0.70710678], [-0.70710678, -0.70710678],
])


def seed_to_int(seed: str) -> int:
    """Hashes a seed string to a stable 64-bit integer."""
    digest = hashlib.sha256(seed.encode("utf-8", "surrogatepass")).digest()
    return int.from_bytes(digest[:8], "little")


def permutation_table(seed: str) -> np.ndarray:
    """Builds the doubled 512-entry permutation table for a seed string."""
    p = np.arange(256, dtype=np.int64)
    rng = np.random.default_rng(seed_to_int(seed))
    rng.shuffle(p)
    return np.concatenate([p, p])


@njit
def _fade(t):
    "6t^5 - 15t^4 + 10t^3"
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@njit
def _corner(p, ix, iy, dx, dy):
    h = p[p[ix & 255] + (iy & 255)] & 7
    return _GRADIENTS[h, 0] * dx + _GRADIENTS[h, 1] * dy


@njit
def _perlin(p, x, y):
    x0 = np.floor(x)
    y0 = np.floor(y)
    ix = np.int64(x0)
    iy = np.int64(y0)
    xf = x - x0
    yf = y - y0

    n00 = _corner(p, ix, iy, xf, yf)
    n10 = _corner(p, ix + 1, iy, xf - 1.0, yf)
    n01 = _corner(p, ix, iy + 1, xf, yf - 1.0)
    n11 = _corner(p, ix + 1, iy + 1, xf - 1.0, yf - 1.0)

    u = _fade(xf)
    v = _fade(yf)
    top = n00 + u * (n10 - n00)
    bottom = n01 + u * (n11 - n01)
    return top + v * (bottom - top)


@njit
def _fbm(p, x, y, octaves, persistence, lacunarity):
    rows, cols = x.shape
    out = np.empty((rows, cols))
    for i in range(rows):
        for j in range(cols):
            total = 0.0
            amplitude = 1.0
            frequency = 1.0
            for _ in range(octaves):
                total += _perlin(p, x[i, j] * frequency, y[i, j] * frequency) * amplitude
                amplitude *= persistence
                frequency *= lacunarity
            out[i, j] = total
    return out


def fractal_noise_2d(p: np.ndarray, x: np.ndarray, y: np.ndarray, octaves: int = 4,
                     persistence: float = 0.5, lacunarity: float = 2.0,
                     contrast: float = 1.0) -> np.ndarray:
    """
    Multi-octave Perlin noise remapped to [0, 1].

    The raw sum is divided by the total octave amplitude, stretched by
    `contrast` around zero and shifted to be centred on 0.5.
    """
    raw = _fbm(
        p,
        np.ascontiguousarray(x, dtype=np.float64),
        np.ascontiguousarray(y, dtype=np.float64),
        int(octaves), float(persistence), float(lacunarity)
    )
    amplitude_sum = sum(persistence ** i for i in range(int(octaves)))
    normalized = 0.5 + (raw / amplitude_sum) * contrast
    return np.clip(normalized, 0.0, 1.0)
