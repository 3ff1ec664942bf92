from __future__ import annotations

import numpy as np
import pytest

from hydroerosion.fields import (
    HARDNESS,
    SEDIMENT,
    TERRAIN,
    WATER,
    GridShapeError,
    SimulationFields,
    allocate,
    from_state,
)


def test_allocate_shapes_and_defaults() -> None:
    fields = allocate(5, 3)

    assert fields.width == 5
    assert fields.height == 3
    assert fields.state.shape == (3, 5, 4)
    assert fields.flux.shape == (3, 5, 4)
    assert fields.velocity.shape == (3, 5, 2)
    assert np.all(fields.hardness == 1.0)
    assert not fields.terrain.any()
    assert not fields.flux.any()


def test_from_state_clamps_channels() -> None:
    state = np.zeros((2, 2, 4))
    state[..., TERRAIN] = [[-1.0, 2.0], [3.0, 4.0]]
    state[..., WATER] = -0.5
    state[..., SEDIMENT] = 0.25
    state[..., HARDNESS] = [[0.0, 0.5], [1.5, 1.0]]

    fields = from_state(state)

    assert fields.terrain.tolist() == [[0.0, 2.0], [3.0, 4.0]]
    assert np.all(fields.water == 0.0)
    assert np.all(fields.sediment == 0.25)
    assert fields.hardness.tolist() == [[0.1, 0.5], [1.0, 1.0]]
    assert state[0, 0, TERRAIN] == -1.0


def test_from_state_rejects_bad_shapes() -> None:
    with pytest.raises(GridShapeError):
        from_state(np.zeros((4, 4, 3)))
    with pytest.raises(ValueError):
        from_state(np.full((2, 2, 4), np.nan))


def test_fields_validate_matching_grids() -> None:
    with pytest.raises(GridShapeError):
        SimulationFields(np.zeros((2, 3, 4)), np.zeros((3, 2, 4)), np.zeros((2, 3, 2)))


def test_copy_is_independent() -> None:
    fields = allocate(3, 3)
    clone = fields.copy()
    clone.state[0, 0, WATER] = 1.0

    assert fields.state[0, 0, WATER] == 0.0
