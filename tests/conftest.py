"""
Shared pytest fixtures: a hand-driven clock and seeded generators.
"""

import numpy as np
import pytest

from marketsim.config import Config
from marketsim.sim.types import Candle


class ManualClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += int(ms)
        return self.now


def make_candle(index: int, open_: float, high: float, low: float, close: float,
                volume: float = 1.0, interval_ms: int = 1_000) -> Candle:
    """Candle at bucket `index` of a 1s-aligned series."""
    return Candle(time=1_700_000_000_000 + index * interval_ms, open=open_, high=high,
                  low=low, close=close, volume=volume)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture(autouse=True)
def _fresh_config():
    """Never leak the Config singleton between tests."""
    Config.reset()
    yield
    Config.reset()
