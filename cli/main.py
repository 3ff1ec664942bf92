"""CLI entry point for running the erosion simulation."""

from __future__ import annotations

import argparse
from dataclasses import asdict, fields as dataclass_fields
from datetime import datetime, timezone
import logging
from pathlib import Path
import platform
import shutil
import tempfile
import time

import numpy as np
from hydroerosion.config import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    BrushInput,
    GridConfig,
    SimulationConfig,
    SimulationParameters,
)
from hydroerosion.derive import float_preview_u8, height_preview_u16, hillshade, water_overlay_rgb
from hydroerosion.initial import initial_state
from hydroerosion.io import (
    load_initial_state,
    move_tree_contents,
    resolve_output_dir,
    safe_clean_output_dir,
    write_height_npy,
    write_json,
    write_png_rgb,
    write_png_u16,
    write_png_u8,
    write_state_npz,
)
from hydroerosion.metrics import InvariantViolation, summarize
from hydroerosion.pipeline import ErosionSimulation
from hydroerosion.rng import RngStream


logger = logging.getLogger("hydroerosion.cli")

_PARAM_HELP = {
    "time_delta": "Simulation time step per tick",
    "rain_rate": "Water depth added per unit time",
    "evaporation": "Fraction of water evaporated per unit time",
    "pipe_area": "Cross-section area of the virtual pipes between cells",
    "gravity": "Gravitational acceleration",
    "pipe_length": "Length of the virtual pipes between cells",
    "sediment_capacity": "Sediment transport capacity constant",
    "max_erosion_depth": "Water depth at which erosion limiting saturates",
    "suspension_rate": "Soil suspension rate",
    "deposition_rate": "Sediment deposition rate",
    "sediment_softening_rate": "Surface softening rate from net erosion",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rainfall-driven hydraulic erosion simulation")
    parser.add_argument("--seed", type=int, default=0, help="Seed for the procedural initial terrain")
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--name", default=None, help="Run name (defaults to seed-<seed> or the image stem)")
    parser.add_argument("--w", type=int, default=None, help=f"Grid width in cells (default {DEFAULT_WIDTH})")
    parser.add_argument("--h", type=int, default=None, help=f"Grid height in cells (default {DEFAULT_HEIGHT})")
    parser.add_argument("--ticks", type=int, default=200, help="Number of simulation ticks")
    parser.add_argument("--initial-state", default=None, help="Initial state image (.png) or array (.npy)")
    parser.add_argument("--height-scale", type=float, default=1.0, help="Terrain height scale of the initial state")

    defaults = SimulationParameters()
    group = parser.add_argument_group("simulation parameters")
    for name, text in _PARAM_HELP.items():
        group.add_argument(
            f"--{name.replace('_', '-')}",
            type=float,
            default=getattr(defaults, name),
            help=text,
        )
    group.add_argument(
        "--cell-size",
        type=float,
        nargs=2,
        metavar=("X", "Y"),
        default=list(defaults.cell_size),
        help="Cell size along x and y",
    )

    parser.add_argument(
        "--brush",
        type=float,
        nargs=4,
        metavar=("X", "Y", "RADIUS", "AMOUNT"),
        default=None,
        help="Brush in normalized grid space; negative radius paints terrain instead of water",
    )
    parser.add_argument("--brush-ticks", type=int, default=None, help="Apply the brush for the first N ticks only")
    parser.add_argument("--workers", type=int, default=1, help="Worker threads per stage sweep")
    parser.add_argument("--check-invariants", action="store_true", help="Validate field ranges after every tick")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    return parser


def _params_from_args(args: argparse.Namespace) -> SimulationParameters:
    values = {f.name: getattr(args, f.name) for f in dataclass_fields(SimulationParameters) if f.name != "cell_size"}
    return SimulationParameters(cell_size=(float(args.cell_size[0]), float(args.cell_size[1])), **values)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    params = _params_from_args(args)
    width = DEFAULT_WIDTH if args.w is None else args.w
    height = DEFAULT_HEIGHT if args.h is None else args.h
    try:
        params.validate()
        GridConfig(width, height).validate()
    except ValueError as exc:
        parser.error(str(exc))
    if args.ticks < 0:
        parser.error("--ticks must be >= 0")
    if args.workers < 1:
        parser.error("--workers must be >= 1")

    if args.initial_state is not None:
        try:
            state0 = load_initial_state(args.initial_state, height_scale=args.height_scale)
        except (OSError, ValueError) as exc:
            parser.error(f"cannot load initial state: {exc}")
        loaded_h, loaded_w = state0.shape[:2]
        if (args.w is not None and args.w != loaded_w) or (args.h is not None and args.h != loaded_h):
            parser.error(f"--w/--h do not match the {loaded_w}x{loaded_h} initial state")
        run_name = args.name or Path(args.initial_state).stem
    else:
        state0 = initial_state(width, height, RngStream(args.seed), height_scale=args.height_scale)
        run_name = args.name or f"seed-{args.seed}"

    config = SimulationConfig(
        grid=GridConfig(state0.shape[1], state0.shape[0]),
        params=params,
        workers=args.workers,
        check_invariants=args.check_invariants,
    )
    brush = BrushInput(*args.brush) if args.brush is not None else None

    sim_start = time.perf_counter()
    with ErosionSimulation(config, initial_state=state0) as sim:
        initial = summarize(sim.fields, params.cell_area)
        try:
            sim.run(args.ticks, brush=brush, brush_ticks=args.brush_ticks)
        except InvariantViolation as exc:
            logger.error("Invariant check failed at tick %d: %s", sim.tick + 1, exc)
            return 1
        fields = sim.fields
        ticks_run = sim.tick
    simulation_seconds = time.perf_counter() - sim_start
    final = summarize(fields, params.cell_area)

    terrain = fields.terrain
    shade = hillshade(terrain, cell_size=params.cell_size)
    png_u16_outputs: dict[str, np.ndarray] = {
        "height_16.png": height_preview_u16(terrain),
    }
    png_u8_outputs: dict[str, np.ndarray] = {
        "hillshade.png": shade,
        "water.png": float_preview_u8(fields.water, robust_percentiles=(0.0, 99.5)),
        "sediment.png": float_preview_u8(fields.sediment, robust_percentiles=(0.0, 99.5)),
    }
    overlay = water_overlay_rgb(terrain, fields.water, shade=shade)

    out_dir = resolve_output_dir(args.out, run_name, fields.width, fields.height, overwrite=args.overwrite)
    stage_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(out_dir.parent)))
    try:
        write_state_npz(stage_dir / "state.npz", fields)
        write_height_npy(stage_dir / "height.npy", terrain)
        for name, raster in png_u16_outputs.items():
            write_png_u16(stage_dir / name, raster)
        for name, raster in png_u8_outputs.items():
            write_png_u8(stage_dir / name, raster)
        write_png_rgb(stage_dir / "overlay.png", overlay)
        if args.json:
            deterministic_meta = {
                "run_name": run_name,
                "seed": args.seed,
                "initial_state": args.initial_state,
                "width": fields.width,
                "height": fields.height,
                "ticks": ticks_run,
                "brush": None if brush is None else [brush.x, brush.y, brush.radius, brush.amount],
                "brush_ticks": args.brush_ticks,
                "config": config.to_dict(),
                "metrics": {
                    "initial": asdict(initial),
                    "final": asdict(final),
                },
            }
            meta = {
                **deterministic_meta,
                "generated_at_utc": datetime.now(timezone.utc).isoformat(),
                "simulation_seconds": simulation_seconds,
                "workers": args.workers,
                "python_version": platform.python_version(),
                "numpy_version": np.__version__,
            }
            write_json(stage_dir / "deterministic_meta.json", deterministic_meta)
            write_json(stage_dir / "meta.json", meta)

        safe_clean_output_dir(out_dir, out_root=Path(args.out))
        move_tree_contents(stage_dir, out_dir)
    finally:
        shutil.rmtree(stage_dir, ignore_errors=True)

    print(f"Simulated terrain: {out_dir}")
    print(f"Ticks: {ticks_run} in {simulation_seconds:.3f} s ({fields.width}x{fields.height}, workers={args.workers})")
    print(
        "Water: "
        f"volume={final.water_volume:.6g}, "
        f"wet cells={final.wet_fraction * 100.0:.2f}%, "
        f"max speed={final.max_speed:.4g}"
    )
    print(
        "Sediment: "
        f"suspended={final.sediment_volume:.6g}, "
        f"terrain volume change={final.terrain_volume - initial.terrain_volume:+.6g}"
    )
    print(f"Hardness: min={final.min_hardness:.3f}, mean={final.mean_hardness:.3f}")
    file_count = sum(1 for child in out_dir.iterdir() if child.is_file())
    print(f"Output files: {file_count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
