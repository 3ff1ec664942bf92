"""Initial-state loading and output serialization."""

from __future__ import annotations

import json
from pathlib import Path
import shutil
from typing import Any

import numpy as np
from PIL import Image

from hydroerosion.fields import HARDNESS, MAX_HARDNESS, SEDIMENT, TERRAIN, WATER, SimulationFields


def load_initial_state(path: str | Path, *, height_scale: float = 1.0) -> np.ndarray:
    """Load an ``(H, W, 4)`` initial state from ``.npy`` or an image file.

    Grayscale images become terrain only; integer images are read as 16-bit.
    RGB(A) images map to terrain, water,
    sediment and (when present) hardness, each read from ``[0, 1]``; terrain and
    water are multiplied by ``height_scale``.
    """

    src = Path(path)
    if src.suffix.lower() == ".npy":
        state = np.load(src, allow_pickle=False).astype(np.float64)
        if state.ndim != 3 or state.shape[2] != 4:
            raise ValueError(f"{src} must hold an (H, W, 4) array, got {state.shape}")
        return state

    with Image.open(src) as image:
        bands = len(image.getbands())
        if image.mode in {"I", "I;16", "I;16B", "I;16L"}:
            # Pillow opens 16-bit PNGs as "I" too; wider integer data is rejected.
            raw = np.asarray(image, dtype=np.float64)
            if raw.size and (raw.min() < 0.0 or raw.max() > 65535.0):
                raise ValueError(f"{src} holds integer values outside the 16-bit range")
            channels = (raw / 65535.0)[..., None]
        elif bands == 1:
            channels = np.asarray(image.convert("L"), dtype=np.float64)[..., None] / 255.0
        elif bands == 3 and image.mode == "RGB":
            channels = np.asarray(image, dtype=np.float64) / 255.0
        else:
            channels = np.asarray(image.convert("RGBA"), dtype=np.float64) / 255.0

    height, width = channels.shape[:2]
    state = np.zeros((height, width, 4), dtype=np.float64)
    state[..., HARDNESS] = MAX_HARDNESS
    state[..., TERRAIN] = channels[..., 0] * height_scale
    if channels.shape[2] >= 3:
        state[..., WATER] = channels[..., 1] * height_scale
        state[..., SEDIMENT] = channels[..., 2]
    if channels.shape[2] == 4:
        state[..., HARDNESS] = channels[..., 3]
    return state


def resolve_output_dir(out_root: str | Path, run_name: str, width: int, height: int, *, overwrite: bool) -> Path:
    """Create and return the output directory for one simulation run."""

    target = Path(out_root) / run_name / f"{width}x{height}"
    if target.exists() and any(target.iterdir()) and not overwrite:
        raise FileExistsError(
            f"Output directory already exists and is not empty: {target}. Use --overwrite to replace files."
        )
    target.mkdir(parents=True, exist_ok=True)
    return target


def safe_clean_output_dir(target: Path, *, out_root: Path) -> None:
    """Delete all children of ``target``, which must live under ``out_root``."""

    target_r = target.resolve()
    target_r.relative_to(out_root.resolve())

    if not target_r.exists():
        target_r.mkdir(parents=True, exist_ok=True)
        return

    for child in target_r.iterdir():
        if child.is_symlink() or child.is_file():
            child.unlink()
        elif child.is_dir():
            shutil.rmtree(child)


def move_tree_contents(src_dir: Path, dst_dir: Path) -> None:
    for child in src_dir.iterdir():
        shutil.move(str(child), str(dst_dir / child.name))


def write_state_npz(path: str | Path, fields: SimulationFields) -> None:
    np.savez_compressed(Path(path), state=fields.state, flux=fields.flux, velocity=fields.velocity)


def read_state_npz(path: str | Path) -> SimulationFields:
    with np.load(Path(path), allow_pickle=False) as data:
        return SimulationFields(data["state"].copy(), data["flux"].copy(), data["velocity"].copy())


def write_height_npy(path: str | Path, height: np.ndarray) -> None:
    np.save(Path(path), height.astype(np.float32), allow_pickle=False)


def write_png_u16(path: str | Path, raster_u16: np.ndarray) -> None:
    Image.fromarray(raster_u16.astype(np.uint16)).save(Path(path))


def write_png_u8(path: str | Path, raster_u8: np.ndarray) -> None:
    Image.fromarray(raster_u8.astype(np.uint8)).save(Path(path))


def write_png_rgb(path: str | Path, raster_rgb: np.ndarray) -> None:
    Image.fromarray(raster_rgb.astype(np.uint8)).save(Path(path))


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True)
    Path(path).write_text(text + "\n", encoding="utf-8")
