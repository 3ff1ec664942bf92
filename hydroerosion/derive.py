"""Display rasters derived from the simulation state."""

from __future__ import annotations

import numpy as np
from matplotlib.colors import LinearSegmentedColormap


_TERRAIN_CMAP = LinearSegmentedColormap.from_list(
    "eroded_terrain",
    [
        (0.00, "#3b5f3a"),
        (0.35, "#7a8f55"),
        (0.70, "#a58d68"),
        (1.00, "#e8e4dc"),
    ],
)
_WATER_RGB = np.array([0.12, 0.32, 0.62])


def hillshade(
    terrain: np.ndarray,
    *,
    cell_size: tuple[float, float] = (1.0, 1.0),
    azimuth_deg: float = 315.0,
    altitude_deg: float = 45.0,
    z_factor: float = 1.0,
) -> np.ndarray:
    """Compute an 8-bit grayscale hillshade from a terrain height grid."""

    if terrain.ndim != 2:
        raise ValueError("terrain must be a 2D array")
    if min(cell_size) <= 0:
        raise ValueError("cell_size must be positive")

    dz_dy, dz_dx = np.gradient(terrain.astype(np.float64), float(cell_size[1]), float(cell_size[0]))
    dz_dx = dz_dx * float(z_factor)
    dz_dy = dz_dy * float(z_factor)

    slope = np.pi / 2.0 - np.arctan(np.hypot(dz_dx, dz_dy))
    aspect = np.arctan2(-dz_dx, dz_dy)
    azimuth = np.deg2rad(azimuth_deg)
    altitude = np.deg2rad(altitude_deg)

    shaded = np.sin(altitude) * np.sin(slope) + np.cos(altitude) * np.cos(slope) * np.cos(azimuth - aspect)
    return np.round(np.clip(shaded, 0.0, 1.0) * 255.0).astype(np.uint8)


def _normalize(values: np.ndarray, robust_percentiles: tuple[float, float]) -> np.ndarray:
    lo, hi = np.percentile(values, robust_percentiles)
    scale = max(float(hi - lo), 1e-12)
    return np.clip((values - lo) / scale, 0.0, 1.0)


def height_preview_u16(terrain: np.ndarray, *, robust_percentiles: tuple[float, float] = (0.0, 100.0)) -> np.ndarray:
    return np.round(_normalize(terrain, robust_percentiles) * 65535.0).astype(np.uint16)


def float_preview_u8(values: np.ndarray, *, robust_percentiles: tuple[float, float] = (1.0, 99.0)) -> np.ndarray:
    return np.round(_normalize(values, robust_percentiles) * 255.0).astype(np.uint8)


def water_overlay_rgb(
    terrain: np.ndarray,
    water: np.ndarray,
    *,
    shade: np.ndarray | None = None,
    full_depth: float | None = None,
) -> np.ndarray:
    """Blend a colored, shaded terrain with water depth as translucent blue."""

    base = _TERRAIN_CMAP(_normalize(terrain, (0.0, 100.0)))[..., :3]
    if shade is not None:
        base = base * (0.45 + 0.55 * (shade.astype(np.float64) / 255.0))[..., None]

    if full_depth is None:
        full_depth = max(float(np.percentile(water, 99.0)), 1e-9)
    alpha = np.clip(water / full_depth, 0.0, 1.0)[..., None] * 0.85
    rgb = base * (1.0 - alpha) + _WATER_RGB * alpha
    return np.round(np.clip(rgb, 0.0, 1.0) * 255.0).astype(np.uint8)
