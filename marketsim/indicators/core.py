"""
Array indicators used by the pattern scanner and the runner snapshot.

All functions take plain sequences of floats and return plain floats/lists,
so callers can pass candle attributes directly.

Warmup behaviour:
- ema: seeded with the first value, same length as input
- rsi: neutral 50.0 until period + 1 closes are available
- linear_regression: R^2 = 0.0 when y has no variance
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class Regression:
    """Least-squares fit y = slope * x + intercept."""
    slope: float
    intercept: float
    r_squared: float


@dataclass(frozen=True)
class Trend:
    """Close-price trend: regression slope per bar and R^2 as strength."""
    slope: float
    strength: float


def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Exponential moving average seeded with the first value.

    Args:
        values: Input series
        period: EMA period (k = 2 / (period + 1))

    Returns:
        EMA series with the same length as values
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")
    if len(values) == 0:
        return []

    k = 2.0 / (period + 1)
    out = np.empty(len(values), dtype=float)
    out[0] = values[0]
    for i in range(1, len(values)):
        out[i] = values[i] * k + out[i - 1] * (1.0 - k)
    return out.tolist()


def rsi(closes: Sequence[float], period: int = 14) -> float:
    """
    Relative Strength Index of the last `period` close-to-close changes.

    Uses simple averages of gains and losses (not Wilder smoothing).

    Returns:
        RSI in [0, 100]; 50.0 with fewer than period + 1 closes or a flat
        window, 100.0 when there are gains and no losses.
    """
    if len(closes) < period + 1:
        return 50.0

    changes = np.diff(np.asarray(closes[-(period + 1):], dtype=float))
    avg_gain = changes[changes > 0].sum() / period
    avg_loss = -changes[changes < 0].sum() / period

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0

    rs = avg_gain / avg_loss
    return float(100.0 - 100.0 / (1.0 + rs))


def linear_regression(x: Sequence[float], y: Sequence[float]) -> Regression:
    """
    Ordinary least squares fit of y on x.

    Degenerate inputs (fewer than two points, constant x) give a zero slope.
    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if xs.shape != ys.shape:
        raise ValueError(f"x and y must have the same length, got {len(xs)} and {len(ys)}")

    n = len(xs)
    if n < 2:
        return Regression(0.0, float(ys[0]) if n else 0.0, 0.0)

    # Center x so millisecond timestamps don't lose precision in sum(x * x)
    x_mean = xs.mean()
    y_mean = ys.mean()
    dx = xs - x_mean
    sxx = float((dx * dx).sum())
    if sxx == 0:
        return Regression(0.0, float(y_mean), 0.0)

    slope = float((dx * (ys - y_mean)).sum() / sxx)
    intercept = float(y_mean - slope * x_mean)

    ss_total = float(((ys - y_mean) ** 2).sum())
    if ss_total == 0:
        return Regression(slope, intercept, 0.0)
    residuals = ys - (slope * xs + intercept)
    r_squared = 1.0 - float((residuals ** 2).sum()) / ss_total

    return Regression(slope, intercept, r_squared)


def trend(closes: Sequence[float]) -> Trend:
    """Regress closes on their bar index."""
    fit = linear_regression(np.arange(len(closes), dtype=float), closes)
    return Trend(slope=fit.slope, strength=fit.r_squared)
