"""Grid-based hydraulic erosion and sediment transport simulation."""

from .config import BrushInput, GridConfig, SimulationConfig, SimulationParameters
from .fields import SimulationFields
from .pipeline import ErosionSimulation, TickReport, simulate_tick

__all__ = [
    "BrushInput",
    "ErosionSimulation",
    "GridConfig",
    "SimulationConfig",
    "SimulationFields",
    "SimulationParameters",
    "TickReport",
    "simulate_tick",
]
