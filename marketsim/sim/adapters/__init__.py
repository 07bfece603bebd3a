"""
Data adapters for converting candles to DataFrames.
"""

from .ohlcv_adapter import OHLCV_COLUMNS, candles_to_frame

__all__ = [
    "OHLCV_COLUMNS",
    "candles_to_frame",
]
