"""
Price generation and candle aggregation.

- PriceProcess: stochastic single-asset price
- CandleAggregator: multi-timeframe OHLCV buckets with bootstrap history
"""

from .price_process import PriceProcess, PriceProcessConfig
from .candles import CandleAggregator, CandleConfig, synthesize_history

__all__ = [
    "PriceProcess",
    "PriceProcessConfig",
    "CandleAggregator",
    "CandleConfig",
    "synthesize_history",
]
