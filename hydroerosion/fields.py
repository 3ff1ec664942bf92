"""Grid-shaped simulation fields: state, flux and velocity."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


# State channels
TERRAIN = 0
WATER = 1
SEDIMENT = 2
HARDNESS = 3

# Flux channels (outflow toward each neighbor)
LEFT = 0
RIGHT = 1
TOP = 2
BOTTOM = 3

# Velocity channels
VX = 0
VY = 1

MIN_HARDNESS = 0.1
MAX_HARDNESS = 1.0


class GridShapeError(ValueError):
    """Raised when a field array does not match the expected grid layout."""


@dataclass(frozen=True, eq=False)
class SimulationFields:
    """The three fields of one simulation frame.

    Arrays are indexed ``[y, x, channel]``; ``+x`` points right and ``+y`` points
    to the top neighbor.
    """

    state: np.ndarray
    flux: np.ndarray
    velocity: np.ndarray

    def __post_init__(self) -> None:
        if self.state.ndim != 3 or self.state.shape[2] != 4:
            raise GridShapeError(f"state must have shape (H, W, 4), got {self.state.shape}")
        grid = self.state.shape[:2]
        if self.flux.shape != (*grid, 4):
            raise GridShapeError(f"flux must have shape {(*grid, 4)}, got {self.flux.shape}")
        if self.velocity.shape != (*grid, 2):
            raise GridShapeError(f"velocity must have shape {(*grid, 2)}, got {self.velocity.shape}")

    @property
    def height(self) -> int:
        return int(self.state.shape[0])

    @property
    def width(self) -> int:
        return int(self.state.shape[1])

    @property
    def terrain(self) -> np.ndarray:
        return self.state[..., TERRAIN]

    @property
    def water(self) -> np.ndarray:
        return self.state[..., WATER]

    @property
    def sediment(self) -> np.ndarray:
        return self.state[..., SEDIMENT]

    @property
    def hardness(self) -> np.ndarray:
        return self.state[..., HARDNESS]

    def copy(self) -> "SimulationFields":
        return SimulationFields(self.state.copy(), self.flux.copy(), self.velocity.copy())


def allocate(width: int, height: int) -> SimulationFields:
    """Allocate zeroed fields for a ``width`` x ``height`` grid with full hardness."""

    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")

    state = np.zeros((height, width, 4), dtype=np.float64)
    state[..., HARDNESS] = MAX_HARDNESS
    return SimulationFields(
        state=state,
        flux=np.zeros((height, width, 4), dtype=np.float64),
        velocity=np.zeros((height, width, 2), dtype=np.float64),
    )


def from_state(state: np.ndarray) -> SimulationFields:
    """Seed fields from an ``(H, W, 4)`` initial-state image.

    Terrain, water and sediment are clamped to ``>= 0`` and hardness into
    ``[0.1, 1]``; flux and velocity start at zero.
    """

    arr = np.asarray(state, dtype=np.float64)
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise GridShapeError(f"initial state must have shape (H, W, 4), got {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise GridShapeError("initial state must not be empty")
    if not np.isfinite(arr).all():
        raise ValueError("initial state contains non-finite values")

    seeded = arr.copy()
    seeded[..., :HARDNESS] = np.maximum(seeded[..., :HARDNESS], 0.0)
    seeded[..., HARDNESS] = np.clip(seeded[..., HARDNESS], MIN_HARDNESS, MAX_HARDNESS)
    height, width = seeded.shape[:2]
    return SimulationFields(
        state=seeded,
        flux=np.zeros((height, width, 4), dtype=np.float64),
        velocity=np.zeros((height, width, 2), dtype=np.float64),
    )
