from __future__ import annotations

import json

import numpy as np
from PIL import Image
import pytest

from cli.main import main
from hydroerosion.metrics import InvariantViolation


def _args(out_dir, *extra: str, size: tuple[str, str] | None = ("40", "24")) -> list[str]:
    grid = [] if size is None else ["--w", size[0], "--h", size[1]]
    return [
        "--seed",
        "7",
        "--out",
        str(out_dir),
        *grid,
        "--ticks",
        "6",
        "--overwrite",
        *extra,
    ]


def _ramp_image(path, width: int = 20, height: int = 12) -> None:
    ramp = np.tile(np.linspace(0, 255, width).astype(np.uint8), (height, 1))
    Image.fromarray(ramp).save(path)


def test_runtime_fields_only_in_meta_json(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out_dir = tmp_path / "out"
    code = main(_args(out_dir, "--brush", "0.5", "0.5", "0.2", "1.0", "--check-invariants"))
    assert code == 0

    base = out_dir / "seed-7" / "40x24"
    meta = json.loads((base / "meta.json").read_text(encoding="utf-8"))
    deterministic_meta = json.loads((base / "deterministic_meta.json").read_text(encoding="utf-8"))

    assert meta["simulation_seconds"] >= 0.0
    assert "generated_at_utc" in meta
    assert "simulation_seconds" not in deterministic_meta
    assert "generated_at_utc" not in deterministic_meta

    assert deterministic_meta["ticks"] == 6
    assert deterministic_meta["brush"] == [0.5, 0.5, 0.2, 1.0]
    assert deterministic_meta["config"]["grid"] == {"width": 40, "height": 24}
    final = deterministic_meta["metrics"]["final"]
    assert final["water_volume"] > 0.0
    assert 0.1 <= final["min_hardness"] <= 1.0

    for name in (
        "state.npz",
        "height.npy",
        "height_16.png",
        "hillshade.png",
        "water.png",
        "sediment.png",
        "overlay.png",
    ):
        assert (base / name).exists(), name

    with Image.open(base / "overlay.png") as image:
        assert image.mode == "RGB"
        assert image.size == (40, 24)


def test_no_json_and_stale_outputs_are_cleaned(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out_dir = tmp_path / "out"
    assert main(_args(out_dir)) == 0
    base = out_dir / "seed-7" / "40x24"
    (base / "stale.txt").write_text("old", encoding="utf-8")

    assert main(_args(out_dir, "--no-json")) == 0
    assert not (base / "stale.txt").exists()
    assert not (base / "meta.json").exists()
    assert (base / "state.npz").exists()


def test_initial_state_image_sets_grid(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    image_path = tmp_path / "ridge.png"
    _ramp_image(image_path)

    code = main(_args(tmp_path / "out", "--initial-state", str(image_path), "--height-scale", "0.5", size=None))

    assert code == 0
    height = np.load(tmp_path / "out" / "ridge" / "20x12" / "height.npy")
    assert height.shape == (12, 20)


def test_matching_grid_size_with_initial_state_is_accepted(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    image_path = tmp_path / "ridge.png"
    _ramp_image(image_path)

    assert main(_args(tmp_path / "out", "--initial-state", str(image_path), size=("20", "12"))) == 0


def test_grid_size_mismatching_initial_state_is_a_usage_error(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    image_path = tmp_path / "ridge.png"
    _ramp_image(image_path)

    with pytest.raises(SystemExit) as exc:
        main(_args(tmp_path / "out", "--initial-state", str(image_path)))

    assert exc.value.code == 2
    assert not (tmp_path / "out").exists()


def test_invariant_violation_exits_with_code_one(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out_dir = tmp_path / "out"

    def _reject(fields) -> None:
        raise InvariantViolation("water contains non-finite values")

    monkeypatch.setattr("hydroerosion.pipeline.check_state_invariants", _reject)

    assert main(_args(out_dir, "--check-invariants")) == 1
    assert not (out_dir / "seed-7").exists()


def test_invariants_are_not_checked_without_flag(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    def _reject(fields) -> None:
        raise InvariantViolation("unexpected check")

    monkeypatch.setattr("hydroerosion.pipeline.check_state_invariants", _reject)

    assert main(_args(tmp_path / "out")) == 0


def test_invalid_parameter_is_a_usage_error(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc:
        main(_args(tmp_path / "out", "--pipe-length", "0"))
    assert exc.value.code == 2
