"""Configuration models for the erosion simulation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


DEFAULT_WIDTH = 256
DEFAULT_HEIGHT = 256


@dataclass(frozen=True)
class SimulationParameters:
    """Per-tick physical constants, read-only for the duration of a tick."""

    time_delta: float = 0.02
    rain_rate: float = 0.012
    evaporation: float = 0.015
    pipe_area: float = 20.0
    gravity: float = 9.81
    pipe_length: float = 1.0 / 256
    cell_size: tuple[float, float] = (1.0 / 256, 1.0 / 256)
    sediment_capacity: float = 1.0
    max_erosion_depth: float = 10.0
    suspension_rate: float = 0.5
    deposition_rate: float = 1.0
    sediment_softening_rate: float = 5.0

    @property
    def cell_area(self) -> float:
        return float(self.cell_size[0]) * float(self.cell_size[1])

    def validate(self) -> None:
        """Reject values outside physically sane ranges."""

        if self.time_delta < 0:
            raise ValueError("time_delta must be >= 0")
        if self.pipe_length <= 0:
            raise ValueError("pipe_length must be positive")
        if len(self.cell_size) != 2 or min(self.cell_size) <= 0:
            raise ValueError("cell_size must be two positive values")
        if self.gravity <= 0:
            raise ValueError("gravity must be positive")
        if self.pipe_area <= 0:
            raise ValueError("pipe_area must be positive")
        for name in (
            "rain_rate",
            "evaporation",
            "sediment_capacity",
            "max_erosion_depth",
            "suspension_rate",
            "deposition_rate",
            "sediment_softening_rate",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")


@dataclass(frozen=True)
class BrushInput:
    """Transient per-tick brush: normalized position, signed radius, amount.

    A positive radius paints water, a negative radius paints terrain.
    """

    x: float = 0.0
    y: float = 0.0
    radius: float = 0.0
    amount: float = 0.0

    @classmethod
    def inactive(cls) -> "BrushInput":
        return cls()

    @property
    def mode(self) -> str:
        if self.amount == 0 or self.radius == 0:
            return "off"
        return "water" if self.radius > 0 else "terrain"


@dataclass(frozen=True)
class GridConfig:
    """Grid dimensions in cells."""

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT

    def validate(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width and height must be positive")


@dataclass(frozen=True)
class SimulationConfig:
    """Primary simulation configuration."""

    grid: GridConfig = field(default_factory=GridConfig)
    params: SimulationParameters = field(default_factory=SimulationParameters)
    workers: int = 1
    check_invariants: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
