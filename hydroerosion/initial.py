"""Procedural initial state for runs without an initial-state image."""

from __future__ import annotations

import numpy as np
from scipy.ndimage import gaussian_filter

from hydroerosion.fields import HARDNESS, MAX_HARDNESS, MIN_HARDNESS, TERRAIN, WATER
from hydroerosion.rng import RngStream


def _smoothstep(t: np.ndarray) -> np.ndarray:
    return t * t * (3.0 - 2.0 * t)


def lattice_noise(width: int, height: int, rng: np.random.Generator, *, cells_x: int, cells_y: int) -> np.ndarray:
    """Smoothly interpolated random lattice values in [-1, 1]."""

    lattice = rng.uniform(-1.0, 1.0, size=(cells_y + 1, cells_x + 1))

    xs = np.linspace(0.0, float(cells_x), num=width, endpoint=False)
    ys = np.linspace(0.0, float(cells_y), num=height, endpoint=False)
    x0 = np.floor(xs).astype(np.intp)
    y0 = np.floor(ys).astype(np.intp)
    x1 = np.minimum(x0 + 1, cells_x)
    y1 = np.minimum(y0 + 1, cells_y)
    tx = _smoothstep(xs - x0)[None, :]
    ty = _smoothstep(ys - y0)[:, None]

    near = lattice[y0[:, None], x0[None, :]] * (1.0 - tx) + lattice[y0[:, None], x1[None, :]] * tx
    far = lattice[y1[:, None], x0[None, :]] * (1.0 - tx) + lattice[y1[:, None], x1[None, :]] * tx
    return near * (1.0 - ty) + far * ty


def fbm_noise(
    width: int,
    height: int,
    rng: np.random.Generator,
    *,
    base_cells: int = 3,
    octaves: int = 5,
    lacunarity: float = 2.0,
    gain: float = 0.5,
) -> np.ndarray:
    """Sum of lattice-noise octaves, normalized by total amplitude."""

    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    if octaves < 1:
        raise ValueError("octaves must be >= 1")

    field = np.zeros((height, width), dtype=np.float64)
    amplitude = 1.0
    total = 0.0
    aspect = width / height
    for octave in range(octaves):
        cells_y = max(1, int(round(base_cells * lacunarity**octave)))
        cells_x = max(1, int(round(cells_y * aspect)))
        field += amplitude * lattice_noise(width, height, rng, cells_x=cells_x, cells_y=cells_y)
        total += amplitude
        amplitude *= gain
    return field / total


def initial_state(
    width: int,
    height: int,
    rng: RngStream,
    *,
    height_scale: float = 1.0,
    water_depth: float = 0.0,
    hardness: float = MAX_HARDNESS,
    smooth_sigma: float = 1.0,
) -> np.ndarray:
    """Build an ``(H, W, 4)`` state image with fBm terrain in ``[0, height_scale]``."""

    if height_scale < 0:
        raise ValueError("height_scale must be >= 0")
    if water_depth < 0:
        raise ValueError("water_depth must be >= 0")

    terrain = fbm_noise(width, height, rng.fork("terrain").generator())
    if smooth_sigma > 0:
        terrain = gaussian_filter(terrain, sigma=smooth_sigma, mode="nearest")
    lo = float(terrain.min())
    span = max(float(terrain.max()) - lo, 1e-12)
    terrain = (terrain - lo) / span

    state = np.zeros((height, width, 4), dtype=np.float64)
    state[..., TERRAIN] = terrain * height_scale
    state[..., WATER] = water_depth
    state[..., HARDNESS] = float(np.clip(hardness, MIN_HARDNESS, MAX_HARDNESS))
    return state
