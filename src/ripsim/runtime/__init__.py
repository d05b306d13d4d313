"""Router processes, the simulation driver and their configuration."""

from ripsim.runtime.config import (
    FailureConfig,
    SimulationConfig,
    build_simulation_config,
    load_simulation_config,
)
from ripsim.runtime.reporting import ReportSink
from ripsim.runtime.router import FailurePolicy, Router, RouterState
from ripsim.runtime.simulation import Simulation, SimulationResult

__all__ = [
    "FailureConfig",
    "FailurePolicy",
    "ReportSink",
    "Router",
    "RouterState",
    "Simulation",
    "SimulationConfig",
    "SimulationResult",
    "build_simulation_config",
    "load_simulation_config",
]
