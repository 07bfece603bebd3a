"""
Multi-timeframe candle aggregation.

Buckets the price stream into OHLCV candles, independently per timeframe:
- One open (live) candle per timeframe, updated every tick
- Bounded history of sealed candles (oldest evicted first)
- Candle time = bucket start (now_ms // interval * interval)

Continuity: every new candle opens at the previous candle's close, so
sealed candle i+1 always has open == candle i close.

Bootstrap: 200 historical candles per timeframe are synthesised walking
backward from the seed price, so charts and the pattern scanner have
context from the first tick.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

import numpy as np

from ..types import Candle
from ...config import MarketConfig, constants as C
from ...utils.timeframes import CANONICAL_TIMEFRAMES, bucket_start, timeframe_ms, validate_timeframe


@dataclass
class CandleConfig:
    """Configuration for candle aggregation."""
    timeframes: List[str] = field(default_factory=lambda: list(CANONICAL_TIMEFRAMES))
    history_limit: int = C.CANDLE_HISTORY_LIMIT
    bootstrap_candles: int = C.BOOTSTRAP_CANDLES

    def __post_init__(self) -> None:
        self.timeframes = [validate_timeframe(tf) for tf in self.timeframes]

    @classmethod
    def from_market_config(cls, market: MarketConfig) -> "CandleConfig":
        return cls(
            timeframes=list(market.timeframes),
            history_limit=market.history_limit,
            bootstrap_candles=market.bootstrap_candles,
        )


def synthesize_history(
    seed_price: float,
    interval_ms: int,
    live_bucket: int,
    count: int,
    base_volatility: float,
    rng: np.random.Generator,
    floor: float = 0.0,
) -> List[Candle]:
    """
    Generate `count` continuous candles ending just before live_bucket.

    Walks backward from the seed price: the newest candle closes at the seed,
    each candle's open becomes the previous candle's close.

    Model (simplified price process):
    - Local trend resets with p=0.1 and decays by 0.95 per candle
    - Local volatility mean-reverts toward U[2e-4, 5e-4)
    - 5% chance of a large (fat-tail) move
    - Volume spikes on moves above 0.1%

    Args:
        seed_price: Close of the newest synthesised candle
        interval_ms: Timeframe bucket length
        live_bucket: Bucket start of the live candle
        count: Number of candles to produce
        base_volatility: Starting local volatility
        rng: Random generator
        floor: Minimum price for any OHLC value

    Returns:
        Candles ordered oldest first
    """
    candles: List[Candle] = []
    price = seed_price
    local_trend = 0.0
    local_vol = base_volatility

    for i in range(1, count + 1):
        if rng.random() < 0.1:
            local_trend = (rng.random() - 0.5) * 0.002
        local_trend *= 0.95

        local_vol = local_vol * 0.98 + rng.uniform(0.0002, 0.0005) * 0.02

        base_change = (rng.random() - 0.5 + local_trend) * local_vol * rng.uniform(5.0, 10.0)
        large_move = (rng.random() - 0.5) * local_vol * 20 if rng.random() < 0.05 else 0.0

        close = price
        open_ = max(floor, price * (1.0 - base_change - large_move))

        wick_range = abs(open_ - close) * rng.uniform(1.0, 3.0)
        wick_bias = rng.random() - 0.5
        high = max(open_, close) + wick_range * max(0.0, wick_bias) * rng.random()
        low = max(floor, min(open_, close) - wick_range * max(0.0, -wick_bias) * rng.random())

        volume = rng.uniform(2.0, 10.0)
        if abs(base_change + large_move) > 0.001:
            volume *= rng.uniform(1.0, 6.0)

        candles.append(Candle(
            time=live_bucket - i * interval_ms,
            open=open_,
            high=high,
            low=low,
            close=close,
            volume=float(volume),
        ))
        price = open_

    candles.reverse()
    return candles


class CandleAggregator:
    """
    Per-timeframe OHLCV aggregation of a single price stream.

    The aggregator only reads the price it is given; it never moves it.
    """

    def __init__(
        self,
        seed_price: float,
        now_ms: int,
        rng: np.random.Generator,
        config: Optional[CandleConfig] = None,
        base_volatility: float = 0.0003,
        floor: float = 0.0,
    ):
        """
        Initialize history and live candles for every configured timeframe.

        Args:
            seed_price: Current price; the live candle closes here
            now_ms: Current time in epoch milliseconds
            rng: Random generator for bootstrap and volume noise
            config: Optional aggregation settings
            base_volatility: Starting volatility for the bootstrap walk
            floor: Minimum price for synthesised candles
        """
        self._config = config or CandleConfig()
        self._rng = rng
        self._history: Dict[str, Deque[Candle]] = {}
        self._live: Dict[str, Candle] = {}

        for tf in self._config.timeframes:
            interval = timeframe_ms(tf)
            live_bucket = bucket_start(now_ms, interval)
            history = synthesize_history(
                seed_price,
                interval,
                live_bucket,
                self._config.bootstrap_candles,
                base_volatility,
                rng,
                floor,
            )
            self._history[tf] = deque(history, maxlen=self._config.history_limit)

            open_ = history[-1].close if history else seed_price
            self._live[tf] = Candle(
                time=live_bucket,
                open=open_,
                high=max(open_, seed_price),
                low=min(open_, seed_price),
                close=seed_price,
                volume=float(rng.random() * 2.0),
            )

    @property
    def timeframes(self) -> List[str]:
        return list(self._config.timeframes)

    def on_tick(self, timeframe: str, price: float, now_ms: int) -> None:
        """
        Apply one price observation to a timeframe.

        Seals the live candle when now_ms falls in a later bucket, otherwise
        extends it. A clock that steps backward extends the live candle, so
        history stays ordered.
        """
        interval = timeframe_ms(timeframe)
        bucket = bucket_start(now_ms, interval)
        current = self._live[timeframe]

        if bucket > current.time:
            self._history[timeframe].append(current)
            open_ = current.close
            self._live[timeframe] = Candle(
                time=bucket,
                open=open_,
                high=max(open_, price),
                low=min(open_, price),
                close=price,
                volume=abs(price - open_) * float(self._rng.uniform(0.5, 2.0)),
            )
            return

        # Volume proxy grows with the size of the move since the last tick
        move = abs(price - current.close)
        current.high = max(current.high, price)
        current.low = min(current.low, price)
        current.close = price
        current.volume += move * float(self._rng.uniform(0.01, 0.06))

    def on_price(self, price: float, now_ms: int) -> None:
        """Apply one price observation to every timeframe."""
        for tf in self._config.timeframes:
            self.on_tick(tf, price, now_ms)

    def get_candles(self, timeframe: str) -> List[Candle]:
        """
        History plus the live candle, oldest first.

        Returns copies; mutating them does not affect the aggregator.
        """
        tf = validate_timeframe(timeframe)
        if tf not in self._live:
            raise ValueError(
                f"Timeframe '{tf}' is not aggregated. "
                f"Configured: {self._config.timeframes}"
            )
        candles = [c.copy() for c in self._history[tf]]
        candles.append(self._live[tf].copy())
        return candles

    def get_live_candle(self, timeframe: str) -> Candle:
        return self._live[validate_timeframe(timeframe)].copy()
