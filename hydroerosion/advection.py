"""Semi-Lagrangian sediment transport along the velocity field."""

from __future__ import annotations

import numpy as np

from hydroerosion.config import SimulationParameters
from hydroerosion.fields import SEDIMENT, VX, VY
from hydroerosion.sampling import band_neighbors, sample_bilinear


def advect_sediment(
    state: np.ndarray,
    velocity: np.ndarray,
    params: SimulationParameters,
    *,
    rows: slice | None = None,
) -> np.ndarray:
    """Replace each cell's sediment with the value found one step upstream.

    ``state`` must be a snapshot that is not written during the sweep; other
    channels pass through unchanged.
    """

    height, width = state.shape[:2]
    rows = slice(0, height) if rows is None else rows
    nb = band_neighbors(rows, height, width)

    vel = velocity[rows]
    sample_x = nb.cols[None, :] - vel[..., VX] * params.time_delta
    sample_y = nb.rows[:, None] - vel[..., VY] * params.time_delta

    band = state[rows].copy()
    band[..., SEDIMENT] = np.maximum(sample_bilinear(state[..., SEDIMENT], sample_x, sample_y), 0.0)
    return band
