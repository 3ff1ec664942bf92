from __future__ import annotations

import numpy as np

from hydroerosion.advection import advect_sediment
from hydroerosion.config import SimulationParameters
from hydroerosion.fields import HARDNESS, SEDIMENT, TERRAIN, VX, VY, WATER, allocate


def _state_with_sediment(sediment: np.ndarray) -> np.ndarray:
    fields = allocate(sediment.shape[1], sediment.shape[0])
    fields.state[..., SEDIMENT] = sediment
    fields.state[..., TERRAIN] = 2.0
    fields.state[..., WATER] = 0.3
    fields.state[..., HARDNESS] = 0.7
    return fields.state


def test_zero_velocity_keeps_sediment() -> None:
    rng = np.random.default_rng(0)
    state = _state_with_sediment(rng.random((5, 7)))

    out = advect_sediment(state, np.zeros((5, 7, 2)), SimulationParameters())

    assert np.array_equal(out, state)


def test_whole_cell_shift_with_edge_clamp() -> None:
    sediment = np.tile(np.arange(6, dtype=np.float64), (4, 1))
    state = _state_with_sediment(sediment)
    params = SimulationParameters(time_delta=0.1)
    velocity = np.zeros((4, 6, 2))
    velocity[..., VX] = 10.0

    out = advect_sediment(state, velocity, params)

    assert np.allclose(out[0, :, SEDIMENT], [0.0, 0.0, 1.0, 2.0, 3.0, 4.0])
    assert np.array_equal(out[..., TERRAIN], state[..., TERRAIN])
    assert np.array_equal(out[..., WATER], state[..., WATER])
    assert np.array_equal(out[..., HARDNESS], state[..., HARDNESS])


def test_half_cell_shift_interpolates_upstream() -> None:
    sediment = np.tile(np.array([0.0, 1.0, 2.0, 3.0, 4.0])[:, None], (1, 3))
    state = _state_with_sediment(sediment)
    params = SimulationParameters(time_delta=0.5)
    velocity = np.zeros((5, 3, 2))
    velocity[..., VY] = 1.0

    out = advect_sediment(state, velocity, params)

    assert np.allclose(out[:, 1, SEDIMENT], [0.0, 0.5, 1.5, 2.5, 3.5])


def test_reads_snapshot_not_partial_results() -> None:
    rng = np.random.default_rng(3)
    state = _state_with_sediment(rng.random((8, 8)))
    velocity = rng.uniform(-20.0, 20.0, size=(8, 8, 2))
    params = SimulationParameters(time_delta=0.05)

    full = advect_sediment(state, velocity, params)
    banded = np.concatenate(
        [advect_sediment(state, velocity, params, rows=slice(a, b)) for a, b in ((0, 3), (3, 5), (5, 8))],
        axis=0,
    )

    assert np.array_equal(full, banded)
    assert full[..., SEDIMENT].min() >= 0.0
