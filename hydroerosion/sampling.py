"""Edge-clamped neighbor lookup and bilinear sampling on cell grids."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class BandNeighbors:
    """Clamped row/column indices for one band of rows.

    ``top`` is the row at ``y + 1`` and ``bottom`` the row at ``y - 1``; all indices
    are clamped to the grid, so boundary cells see themselves as neighbor.
    """

    rows: np.ndarray
    cols: np.ndarray
    top: np.ndarray
    bottom: np.ndarray
    left: np.ndarray
    right: np.ndarray


def band_neighbors(rows: slice, height: int, width: int) -> BandNeighbors:
    ys = np.arange(rows.start, rows.stop, dtype=np.intp)
    xs = np.arange(width, dtype=np.intp)
    return BandNeighbors(
        rows=ys,
        cols=xs,
        top=np.minimum(ys + 1, height - 1),
        bottom=np.maximum(ys - 1, 0),
        left=np.maximum(xs - 1, 0),
        right=np.minimum(xs + 1, width - 1),
    )


def sample_bilinear(field: np.ndarray, sample_x: np.ndarray, sample_y: np.ndarray) -> np.ndarray:
    """Sample ``field[y, x]`` at float cell coordinates.

    Corner indices are clamped to the grid, not the coordinates, so integer
    coordinates return the cell value exactly and positions outside the grid
    return the nearest edge values.
    """

    if field.ndim != 2:
        raise ValueError("field must be a 2D array")

    height, width = field.shape
    x = np.asarray(sample_x, dtype=np.float64)
    y = np.asarray(sample_y, dtype=np.float64)

    fx = np.floor(x)
    fy = np.floor(y)
    dx = x - fx
    dy = y - fy

    x0 = np.clip(fx, 0, width - 1).astype(np.intp)
    y0 = np.clip(fy, 0, height - 1).astype(np.intp)
    x1 = np.clip(fx + 1, 0, width - 1).astype(np.intp)
    y1 = np.clip(fy + 1, 0, height - 1).astype(np.intp)

    return (
        field[y0, x0] * (1.0 - dx) * (1.0 - dy)
        + field[y0, x1] * dx * (1.0 - dy)
        + field[y1, x0] * (1.0 - dx) * dy
        + field[y1, x1] * dx * dy
    )
