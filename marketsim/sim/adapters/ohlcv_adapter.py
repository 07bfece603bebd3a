"""
OHLCV data adapter.

Converts Candle lists to pandas DataFrames with the
timestamp/open/high/low/close/volume layout used for kline exports.
Timestamps become UTC datetimes (bucket start).
"""
from __future__ import annotations

from typing import Sequence

import pandas as pd

from ..types import Candle

OHLCV_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """
    Convert candles to an OHLCV DataFrame.

    Args:
        candles: Candles ordered oldest first

    Returns:
        DataFrame with a UTC `timestamp` column (bucket start)
    """
    if not candles:
        return pd.DataFrame(columns=OHLCV_COLUMNS)

    df = pd.DataFrame([c.to_dict() for c in candles])
    df["timestamp"] = pd.to_datetime(df.pop("time").astype("int64"), unit="ms", utc=True)
    return df[OHLCV_COLUMNS].reset_index(drop=True)

