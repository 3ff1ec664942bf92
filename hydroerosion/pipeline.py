"""Per-tick simulation pipeline and the host-facing simulation object."""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import time
from typing import Iterator

import numpy as np

from hydroerosion.advection import advect_sediment
from hydroerosion.config import BrushInput, GridConfig, SimulationConfig, SimulationParameters
from hydroerosion.erosion import erode_and_deposit
from hydroerosion.executor import SweepExecutor
from hydroerosion.fields import GridShapeError, SimulationFields, allocate, from_state
from hydroerosion.metrics import (
    check_state_invariants,
    max_speed,
    sediment_volume,
    terrain_volume,
    water_volume,
)
from hydroerosion.water import inject_rain, integrate_flux, solve_flux


logger = logging.getLogger(__name__)

STAGE_NAMES = (
    "rain",
    "flux",
    "flux_apply",
    "erosion",
    "advection",
)


@dataclass(frozen=True)
class TickReport:
    tick: int
    water_volume: float
    sediment_volume: float
    terrain_volume: float
    max_speed: float
    seconds: float


def iter_stages(
    fields: SimulationFields,
    params: SimulationParameters,
    brush: BrushInput | None = None,
    executor: SweepExecutor | None = None,
) -> Iterator[tuple[str, SimulationFields]]:
    """Run the five stages in order, yielding the fields after each one.

    Every stage writes new buffers; ``fields`` itself is never modified.
    """

    brush = brush or BrushInput.inactive()
    sweep = executor or SweepExecutor()
    height = fields.height

    state = sweep.run(inject_rain, height, fields.state, params, brush)
    yield "rain", SimulationFields(state, fields.flux, fields.velocity)

    flux = sweep.run(solve_flux, height, state, fields.flux, params)
    yield "flux", SimulationFields(state, flux, fields.velocity)

    state, velocity = sweep.run(integrate_flux, height, state, flux, params)
    yield "flux_apply", SimulationFields(state, flux, velocity)

    state = sweep.run(erode_and_deposit, height, state, velocity, params)
    yield "erosion", SimulationFields(state, flux, velocity)

    state = sweep.run(advect_sediment, height, state, velocity, params)
    yield "advection", SimulationFields(state, flux, velocity)


def simulate_tick(
    fields: SimulationFields,
    params: SimulationParameters,
    brush: BrushInput | None = None,
    executor: SweepExecutor | None = None,
) -> SimulationFields:
    """Advance the simulation by one tick and return the new fields."""

    result = fields
    for _, result in iter_stages(fields, params, brush, executor):
        pass
    return result


class ErosionSimulation:
    """Owns the simulation fields and advances them one tick at a time.

    The host may read ``fields`` between ticks; a tick only replaces them once all
    five stages have completed.
    """

    def __init__(self, config: SimulationConfig | None = None, *, initial_state: np.ndarray | None = None) -> None:
        cfg = config or SimulationConfig()
        cfg.params.validate()
        self.config = cfg
        self.tick = 0
        self._fields = self._seed(initial_state)
        self._executor = SweepExecutor(cfg.workers)

    @property
    def fields(self) -> SimulationFields:
        return self._fields

    @property
    def params(self) -> SimulationParameters:
        return self.config.params

    def _seed(self, initial_state: np.ndarray | None, *, adopt_shape: bool = True) -> SimulationFields:
        grid = self.config.grid
        if initial_state is None:
            grid.validate()
            fields = allocate(grid.width, grid.height)
        else:
            fields = from_state(initial_state)
            if (fields.width, fields.height) != (grid.width, grid.height):
                if not adopt_shape:
                    raise GridShapeError(
                        f"initial state is {fields.width}x{fields.height}, expected {grid.width}x{grid.height}"
                    )
                self.config = replace(self.config, grid=GridConfig(fields.width, fields.height))
        logger.info("Allocated %dx%d simulation grid", fields.width, fields.height)
        return fields

    def step(self, params: SimulationParameters | None = None, brush: BrushInput | None = None) -> TickReport:
        if params is None:
            params = self.config.params
        else:
            params.validate()

        start = time.perf_counter()
        fields = simulate_tick(self._fields, params, brush, self._executor)
        if self.config.check_invariants:
            check_state_invariants(fields)
        seconds = time.perf_counter() - start

        self._fields = fields
        self.tick += 1
        report = TickReport(
            tick=self.tick,
            water_volume=water_volume(fields, params.cell_area),
            sediment_volume=sediment_volume(fields, params.cell_area),
            terrain_volume=terrain_volume(fields, params.cell_area),
            max_speed=max_speed(fields),
            seconds=seconds,
        )
        logger.debug(
            "tick %d: water=%.6g sediment=%.6g max_speed=%.4g (%.4f s)",
            report.tick,
            report.water_volume,
            report.sediment_volume,
            report.max_speed,
            report.seconds,
        )
        return report

    def run(
        self,
        ticks: int,
        params: SimulationParameters | None = None,
        brush: BrushInput | None = None,
        *,
        brush_ticks: int | None = None,
    ) -> list[TickReport]:
        """Run ``ticks`` ticks, applying ``brush`` for the first ``brush_ticks`` of them."""

        if ticks < 0:
            raise ValueError("ticks must be >= 0")
        reports: list[TickReport] = []
        for i in range(int(ticks)):
            active = brush if brush_ticks is None or i < brush_ticks else None
            reports.append(self.step(params, active))
        return reports

    def resize(self, width: int, height: int, *, initial_state: np.ndarray | None = None) -> None:
        """Reallocate all fields for a new grid size and re-seed them.

        An ``initial_state`` must match the requested size; the simulation is
        left unchanged if it does not.
        """

        previous = self.config
        self.config = replace(previous, grid=GridConfig(int(width), int(height)))
        try:
            self._fields = self._seed(initial_state, adopt_shape=False)
        except ValueError:
            self.config = previous
            raise
        self.tick = 0

    def reset(self, initial_state: np.ndarray | None = None) -> None:
        self._fields = self._seed(initial_state)
        self.tick = 0

    def close(self) -> None:
        self._executor.close()

    def __enter__(self) -> "ErosionSimulation":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
