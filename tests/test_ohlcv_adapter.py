"""
OHLCV DataFrame adapter tests.
"""

import pandas as pd

from conftest import make_candle
from marketsim.config import MarketConfig
from marketsim.sim import MarketEngine, candles_to_frame
from marketsim.sim.adapters.ohlcv_adapter import OHLCV_COLUMNS


class TestCandlesToFrame:

    def test_columns_and_utc_timestamps(self):
        candles = [make_candle(0, 100.0, 101.0, 99.0, 100.5, volume=2.0),
                   make_candle(1, 100.5, 102.0, 100.0, 101.5, volume=3.0)]

        df = candles_to_frame(candles)

        assert list(df.columns) == OHLCV_COLUMNS
        assert len(df) == 2
        assert df["timestamp"].iloc[0] == pd.Timestamp(1_700_000_000_000, unit="ms", tz="UTC")
        assert df["close"].tolist() == [100.5, 101.5]
        assert df["volume"].tolist() == [2.0, 3.0]

    def test_empty(self):
        df = candles_to_frame([])
        assert df.empty
        assert list(df.columns) == OHLCV_COLUMNS


class TestEngineFrame:

    def test_engine_frame(self, rng, clock):
        engine = MarketEngine(50_000.0, rng, MarketConfig(timeframes=["1m"], bootstrap_candles=40), clock)
        df = engine.get_candles_frame("1m")
        assert len(df) == len(engine.get_candles("1m"))
        assert (df["high"] >= df["low"]).all()
        assert df["timestamp"].is_monotonic_increasing
