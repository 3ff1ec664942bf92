"""Water stages: precipitation/brush, outflow flux, and flux integration.

Each kernel reads frozen input arrays and returns a freshly allocated band of
output rows. Passing ``rows=None`` processes the whole grid.
"""

from __future__ import annotations

import numpy as np

from hydroerosion.config import BrushInput, SimulationParameters
from hydroerosion.fields import BOTTOM, LEFT, RIGHT, TERRAIN, TOP, VX, VY, WATER
from hydroerosion.sampling import band_neighbors


def _full(rows: slice | None, height: int) -> slice:
    return slice(0, height) if rows is None else rows


def inject_rain(
    state: np.ndarray,
    params: SimulationParameters,
    brush: BrushInput,
    *,
    rows: slice | None = None,
) -> np.ndarray:
    """Add rainfall to every cell, then apply the brush inside its radius."""

    height, width = state.shape[:2]
    rows = _full(rows, height)
    band = state[rows].copy()
    band[..., WATER] += params.time_delta * params.rain_rate

    mode = brush.mode
    if mode == "off":
        return band

    nb = band_neighbors(rows, height, width)
    u = nb.cols.astype(np.float64) / width
    v = nb.rows.astype(np.float64) / height
    dist = np.hypot(u[None, :] - brush.x, v[:, None] - brush.y)
    inside = dist < abs(brush.radius)

    channel = WATER if mode == "water" else TERRAIN
    painted = np.maximum(band[..., channel] + brush.amount * params.time_delta, 0.0)
    band[..., channel] = np.where(inside, painted, band[..., channel])
    return band


def solve_flux(
    state: np.ndarray,
    flux: np.ndarray,
    params: SimulationParameters,
    *,
    rows: slice | None = None,
) -> np.ndarray:
    """Relax outflow flux toward the four neighbors from hydrostatic height differences."""

    height, width = state.shape[:2]
    rows = _full(rows, height)
    nb = band_neighbors(rows, height, width)

    total = state[..., TERRAIN] + state[..., WATER]
    center = total[rows]
    diff = np.stack(
        (
            center - center[:, nb.left],
            center - center[:, nb.right],
            center - total[nb.top],
            center - total[nb.bottom],
        ),
        axis=-1,
    )

    gain = params.time_delta * params.gravity * params.pipe_area / params.pipe_length
    out = np.maximum(0.0, flux[rows] + gain * diff)

    # Never drain more water than the cell holds.
    outflow = out.sum(axis=-1) * params.time_delta
    available = state[rows][..., WATER] * params.cell_area
    scale = np.ones_like(outflow)
    np.divide(available, outflow, out=scale, where=outflow > 0.0)
    out *= np.minimum(scale, 1.0)[..., None]

    out[:, 0, LEFT] = 0.0
    out[:, width - 1, RIGHT] = 0.0
    if rows.stop == height:
        out[-1, :, TOP] = 0.0
    if rows.start == 0:
        out[0, :, BOTTOM] = 0.0
    return np.maximum(out, 0.0)


def inbound_flux(flux: np.ndarray, *, rows: slice | None = None) -> np.ndarray:
    """Flux entering each cell, per side, as ``(left, right, top, bottom)``.

    Nothing enters across the grid edge.
    """

    height, width = flux.shape[:2]
    rows = _full(rows, height)
    nb = band_neighbors(rows, height, width)

    own_rows = flux[rows]
    inbound = np.stack(
        (
            own_rows[:, nb.left, RIGHT],
            own_rows[:, nb.right, LEFT],
            flux[nb.top][..., BOTTOM],
            flux[nb.bottom][..., TOP],
        ),
        axis=-1,
    )
    inbound[:, 0, LEFT] = 0.0
    inbound[:, width - 1, RIGHT] = 0.0
    if rows.stop == height:
        inbound[-1, :, TOP] = 0.0
    if rows.start == 0:
        inbound[0, :, BOTTOM] = 0.0
    return inbound


def integrate_flux(
    state: np.ndarray,
    flux: np.ndarray,
    params: SimulationParameters,
    *,
    rows: slice | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Apply net flux to water depth and derive the velocity field.

    Returns ``(state_band, velocity_band)``.
    """

    height = state.shape[0]
    rows = _full(rows, height)

    inbound = inbound_flux(flux, rows=rows)
    outbound = flux[rows]
    volume_delta = inbound.sum(axis=-1) - outbound.sum(axis=-1)

    band = state[rows].copy()
    band[..., WATER] = np.maximum(
        band[..., WATER] + params.time_delta * volume_delta / params.cell_area,
        0.0,
    )

    velocity = np.empty(band.shape[:2] + (2,), dtype=np.float64)
    velocity[..., VX] = 0.5 * (
        (inbound[..., LEFT] - outbound[..., LEFT]) + (outbound[..., RIGHT] - inbound[..., RIGHT])
    )
    velocity[..., VY] = 0.5 * (
        (inbound[..., BOTTOM] - outbound[..., BOTTOM]) + (outbound[..., TOP] - inbound[..., TOP])
    )
    return band, velocity
