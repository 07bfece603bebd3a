"""
Market engine.

Thin orchestrator over the price process and the candle aggregator:
1. pricing: PriceProcess.advance(dt) -> price
2. candles: CandleAggregator.on_price(price, now_ms)

The engine is the only writer of both; callers get prices and candle copies.
"""

from __future__ import annotations

from typing import Callable, List, Optional

import numpy as np
import pandas as pd

from .types import Candle
from .adapters import candles_to_frame
from .pricing import CandleAggregator, CandleConfig, PriceProcess, PriceProcessConfig
from ..config import MarketConfig
from ..utils.datetime_utils import now_ms
from ..utils.logger import get_logger


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Seedable random source for the market (None = OS entropy)."""
    return np.random.default_rng(seed)


class MarketEngine:
    """
    Public simulation tick: advances the price and rolls candles.

    Example:
        engine = MarketEngine(97_000.0, rng=make_rng(7))
        price = engine.tick(0.1)
        candles = engine.get_candles("1m")
    """

    def __init__(
        self,
        seed_price: float,
        rng: Optional[np.random.Generator] = None,
        config: Optional[MarketConfig] = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the market at the seed price.

        Args:
            seed_price: Starting price (> 0, finite)
            rng: Random generator; defaults to one seeded from config.random_seed
            config: Optional market configuration
            clock: Millisecond clock used to bucket candles

        Raises:
            ValueError: If seed_price is not a positive finite number
        """
        self._config = config or MarketConfig()
        self._rng = rng if rng is not None else make_rng(self._config.random_seed)
        self._clock = clock
        self.logger = get_logger()

        self._process = PriceProcess(
            seed_price,
            self._rng,
            PriceProcessConfig.from_market_config(self._config),
        )

        start = clock()
        self._candles = CandleAggregator(
            seed_price,
            start,
            self._rng,
            CandleConfig.from_market_config(self._config),
            base_volatility=self._process.volatility,
            floor=self._process.floor,
        )
        self._last_update = start
        self._tick_count = 0

        self.logger.info(
            f"Market initialized | seed={seed_price:.2f} | "
            f"timeframes={','.join(self._candles.timeframes)} | "
            f"volatility={self._process.volatility:.6f}"
        )

    def tick(self, elapsed_seconds: Optional[float] = None) -> float:
        """
        Advance the market one step.

        Args:
            elapsed_seconds: Step size; None derives it from the clock

        Returns:
            New price
        """
        now = self._clock()
        if elapsed_seconds is None:
            elapsed_seconds = max(0.0, (now - self._last_update) / 1000.0)

        price = self._process.advance(elapsed_seconds)
        self._candles.on_price(price, now)

        self._last_update = now
        self._tick_count += 1
        return price

    @property
    def current_price(self) -> float:
        return self._process.price

    @property
    def initial_price(self) -> float:
        return self._process.initial_price

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def timeframes(self) -> List[str]:
        return self._candles.timeframes

    def get_candles(self, timeframe: str) -> List[Candle]:
        """Candles oldest first; the last element is the live candle."""
        return self._candles.get_candles(timeframe)

    def get_candles_frame(self, timeframe: str) -> pd.DataFrame:
        """Candles as an OHLCV DataFrame (timestamp is the bucket start, UTC)."""
        return candles_to_frame(self._candles.get_candles(timeframe))

    def is_shock_active(self) -> bool:
        return self._process.is_shock_active()

    def get_volatility(self) -> float:
        return self._process.volatility
