"""Hydraulic erosion: sediment suspension/deposition, evaporation, hardness."""

from __future__ import annotations

import numpy as np

from hydroerosion.config import SimulationParameters
from hydroerosion.fields import (
    HARDNESS,
    MAX_HARDNESS,
    MIN_HARDNESS,
    SEDIMENT,
    TERRAIN,
    VX,
    VY,
    WATER,
)
from hydroerosion.sampling import band_neighbors


MAX_TILT_SINE = 0.05


def tilt_sine(
    terrain: np.ndarray,
    cell_size: tuple[float, float],
    *,
    rows: slice | None = None,
) -> np.ndarray:
    """Sine of the local tilt angle from central terrain differences.

    Uses ``dh / sqrt((2 * cell)^2 + dh^2)`` per axis, which avoids an arctangent.
    """

    height, width = terrain.shape
    rows = slice(0, height) if rows is None else rows
    nb = band_neighbors(rows, height, width)

    center = terrain[rows]
    dhx = np.abs(center[:, nb.right] - center[:, nb.left])
    dhy = np.abs(terrain[nb.top] - terrain[nb.bottom])
    cx, cy = float(cell_size[0]), float(cell_size[1])
    return 0.5 * dhx / np.sqrt(4.0 * cx * cx + dhx * dhx) + 0.5 * dhy / np.sqrt(4.0 * cy * cy + dhy * dhy)


def erosion_depth_limit(water: np.ndarray, max_erosion_depth: float) -> np.ndarray:
    """Erosion limiting factor in ``[0, 1]`` from water depth."""

    if max_erosion_depth <= 0:
        return (water > 0.0).astype(np.float64)
    return np.clip(1.0 - (max_erosion_depth - water) / max_erosion_depth, 0.0, 1.0)


def transport_capacity(
    state: np.ndarray,
    velocity: np.ndarray,
    params: SimulationParameters,
    *,
    rows: slice | None = None,
) -> np.ndarray:
    """Sediment amount the water in each cell can carry."""

    height = state.shape[0]
    rows = slice(0, height) if rows is None else rows

    sin_tilt = tilt_sine(state[..., TERRAIN], params.cell_size, rows=rows)
    speed = np.hypot(velocity[rows][..., VX], velocity[rows][..., VY])
    lmax = erosion_depth_limit(state[rows][..., WATER], params.max_erosion_depth)
    return params.sediment_capacity * speed * np.minimum(sin_tilt, MAX_TILT_SINE) * lmax


def erode_and_deposit(
    state: np.ndarray,
    velocity: np.ndarray,
    params: SimulationParameters,
    *,
    rows: slice | None = None,
) -> np.ndarray:
    """Suspend or deposit sediment against transport capacity, then evaporate.

    Suspension adds the lifted amount to sediment and water only; terrain height is
    left as is. Deposition moves the excess back onto the terrain. Sediment equal
    to capacity takes the deposition branch with a zero amount.
    """

    height = state.shape[0]
    rows = slice(0, height) if rows is None else rows
    dt = params.time_delta

    capacity = transport_capacity(state, velocity, params, rows=rows)
    band = state[rows].copy()
    terrain = band[..., TERRAIN]
    water = band[..., WATER]
    sediment = band[..., SEDIMENT]

    suspend = sediment < capacity
    lifted = np.where(suspend, dt * params.suspension_rate * (capacity - sediment), 0.0)
    dropped = np.where(suspend, 0.0, dt * params.deposition_rate * (sediment - capacity))

    sediment = sediment + lifted - dropped
    water = (water + lifted - dropped) * (1.0 - params.evaporation * dt)
    terrain = terrain + dropped

    hardness = band[..., HARDNESS] - dt * params.sediment_softening_rate * params.suspension_rate * (
        sediment - capacity
    )

    band[..., TERRAIN] = terrain
    band[..., WATER] = water
    band[..., SEDIMENT] = sediment
    band = np.maximum(band, 0.0)
    band[..., HARDNESS] = np.clip(hardness, MIN_HARDNESS, MAX_HARDNESS)
    return band
