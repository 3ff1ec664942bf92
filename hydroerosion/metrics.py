"""Volume totals and state invariant checks."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from hydroerosion.fields import MAX_HARDNESS, MIN_HARDNESS, SimulationFields


class InvariantViolation(ValueError):
    """Raised when a field leaves its valid range."""


@dataclass(frozen=True)
class SimulationMetrics:
    """Summary of one simulation frame."""

    water_volume: float
    sediment_volume: float
    terrain_volume: float
    max_speed: float
    wet_fraction: float
    min_hardness: float
    mean_hardness: float


def water_volume(fields: SimulationFields, cell_area: float) -> float:
    return float(fields.water.sum() * cell_area)


def sediment_volume(fields: SimulationFields, cell_area: float) -> float:
    return float(fields.sediment.sum() * cell_area)


def terrain_volume(fields: SimulationFields, cell_area: float) -> float:
    return float(fields.terrain.sum() * cell_area)


def max_speed(fields: SimulationFields) -> float:
    return float(np.max(np.hypot(fields.velocity[..., 0], fields.velocity[..., 1])))


def summarize(fields: SimulationFields, cell_area: float, *, wet_threshold: float = 1e-6) -> SimulationMetrics:
    hardness = fields.hardness
    return SimulationMetrics(
        water_volume=water_volume(fields, cell_area),
        sediment_volume=sediment_volume(fields, cell_area),
        terrain_volume=terrain_volume(fields, cell_area),
        max_speed=max_speed(fields),
        wet_fraction=float(np.mean(fields.water > wet_threshold)),
        min_hardness=float(hardness.min()),
        mean_hardness=float(hardness.mean()),
    )


def check_state_invariants(fields: SimulationFields) -> None:
    """Raise ``InvariantViolation`` if any channel is out of its valid range."""

    for name, values in (
        ("terrain", fields.terrain),
        ("water", fields.water),
        ("sediment", fields.sediment),
        ("hardness", fields.hardness),
        ("flux", fields.flux),
        ("velocity", fields.velocity),
    ):
        if not np.isfinite(values).all():
            raise InvariantViolation(f"{name} contains non-finite values")

    for name, values in (
        ("terrain", fields.terrain),
        ("water", fields.water),
        ("sediment", fields.sediment),
        ("flux", fields.flux),
    ):
        lowest = float(values.min())
        if lowest < 0.0:
            raise InvariantViolation(f"{name} has negative values (min {lowest:.6g})")

    lo = float(fields.hardness.min())
    hi = float(fields.hardness.max())
    if lo < MIN_HARDNESS or hi > MAX_HARDNESS:
        raise InvariantViolation(f"hardness outside [{MIN_HARDNESS}, {MAX_HARDNESS}]: [{lo:.6g}, {hi:.6g}]")
