"""
Simulation orchestration.

- MarketSnapshot / build_snapshot: consolidated per-tick frame
- SimulationRunner: drives engine, ledger and scanner
"""

from .snapshot import MarketSnapshot, build_snapshot, trend_label
from .runners import SimulationRunner, RunnerState, RunnerStats, create_runner

__all__ = [
    "MarketSnapshot",
    "build_snapshot",
    "trend_label",
    "SimulationRunner",
    "RunnerState",
    "RunnerStats",
    "create_runner",
]
