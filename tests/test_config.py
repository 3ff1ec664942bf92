from __future__ import annotations

from dataclasses import replace

import pytest

from hydroerosion.config import BrushInput, GridConfig, SimulationConfig, SimulationParameters


def test_default_parameters_are_valid() -> None:
    params = SimulationParameters()
    params.validate()

    assert params.cell_area == pytest.approx((1.0 / 256) ** 2)


@pytest.mark.parametrize(
    "change",
    [
        {"time_delta": -0.1},
        {"pipe_length": 0.0},
        {"cell_size": (-1.0, 1.0)},
        {"gravity": 0.0},
        {"rain_rate": -1.0},
        {"max_erosion_depth": -2.0},
    ],
)
def test_invalid_parameters_are_rejected(change: dict) -> None:
    with pytest.raises(ValueError):
        replace(SimulationParameters(), **change).validate()


def test_brush_mode_from_signed_radius() -> None:
    assert BrushInput.inactive().mode == "off"
    assert BrushInput(radius=0.2, amount=0.0).mode == "off"
    assert BrushInput(radius=0.2, amount=1.0).mode == "water"
    assert BrushInput(radius=-0.2, amount=1.0).mode == "terrain"


def test_grid_validation_and_to_dict() -> None:
    with pytest.raises(ValueError):
        GridConfig(0, 10).validate()

    payload = SimulationConfig(grid=GridConfig(32, 16), workers=2).to_dict()
    assert payload["grid"] == {"width": 32, "height": 16}
    assert payload["workers"] == 2
    assert payload["params"]["gravity"] == 9.81
