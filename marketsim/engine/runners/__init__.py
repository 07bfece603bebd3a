"""
Runners that drive the simulated market.

- SimulationRunner: fixed-rate tick loop with snapshot publishing
"""

from .sim_runner import (
    SimulationRunner,
    RunnerState,
    RunnerStats,
    create_runner,
)

__all__ = [
    "SimulationRunner",
    "RunnerState",
    "RunnerStats",
    "create_runner",
]
