"""Welding cell simulation engine."""

from weldcell.simulation.actions import ActionExecutor
from weldcell.simulation.clock import SimulationClock
from weldcell.simulation.engine import WeldCellSimulation
from weldcell.simulation.scenarios import ScenarioManager
from weldcell.simulation.sensors import SensorModel
from weldcell.simulation.stability import StabilityScorer
from weldcell.simulation.state import CellState

__all__ = [
    "ActionExecutor",
    "CellState",
    "ScenarioManager",
    "SensorModel",
    "SimulationClock",
    "StabilityScorer",
    "WeldCellSimulation",
]
