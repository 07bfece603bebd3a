"""
Chart pattern detectors.

Fit regressions over the whole scan window. Registered with chart=True so
the scanner runs them every other cycle.

Flags split the window into halves: the first half is the pole, the second
half the flag. Triangle and channel regress highs and lows against candle
time (slopes are price per millisecond).
"""

from __future__ import annotations

from typing import Sequence

from ..registry import register_pattern
from ..types import Pattern, PatternType
from ...indicators import linear_regression, trend
from ...sim.types import Candle

MIN_FLAG_CANDLES = 15
MIN_TRIANGLE_CANDLES = 15
MIN_CHANNEL_CANDLES = 10

POLE_MIN_R_SQUARED = 0.6
FLAG_MAX_SLOPE_RATIO = 0.4
FLAG_MAX_HEIGHT_RATIO = 0.5
SLOPE_EPSILON = 1e-6
CHANNEL_PARALLEL_RATIO = 0.3


def _flag(candles: Sequence[Candle], direction: int) -> list[Pattern]:
    """Shared flag logic; direction +1 for bull, -1 for bear."""
    if len(candles) < MIN_FLAG_CANDLES:
        return []

    half = len(candles) // 2
    pole, flag = candles[:half], candles[half:]

    pole_trend = trend([c.close for c in pole])
    if pole_trend.slope * direction <= 0 or pole_trend.strength < POLE_MIN_R_SQUARED:
        return []

    flag_trend = trend([c.close for c in flag])
    if abs(flag_trend.slope) > abs(pole_trend.slope) * FLAG_MAX_SLOPE_RATIO:
        return []

    pole_height = (pole[-1].close - pole[0].open) * direction
    flag_height = max(c.high for c in flag) - min(c.low for c in flag)
    if pole_height <= 0 or flag_height >= pole_height * FLAG_MAX_HEIGHT_RATIO:
        return []

    bull = direction > 0
    return [Pattern(
        type=PatternType.BULL_FLAG if bull else PatternType.BEAR_FLAG,
        start_time=pole[0].time,
        end_time=flag[-1].time,
        start_price=pole[0].open,
        end_price=flag[-1].close,
        confidence=0.7,
        message=(
            "Bull Flag - continuation likely, consider adding to long"
            if bull
            else "Bear Flag - downside continuation likely"
        ),
    )]


@register_pattern("bull_flag", chart=True)
def detect_bull_flag(candles: Sequence[Candle]) -> list[Pattern]:
    return _flag(candles, 1)


@register_pattern("bear_flag", chart=True)
def detect_bear_flag(candles: Sequence[Candle]) -> list[Pattern]:
    return _flag(candles, -1)


def _edge_slopes(candles: Sequence[Candle]) -> tuple[float, float]:
    times = [c.time for c in candles]
    high_fit = linear_regression(times, [c.high for c in candles])
    low_fit = linear_regression(times, [c.low for c in candles])
    return high_fit.slope, low_fit.slope


@register_pattern("triangle", chart=True)
def detect_triangle(candles: Sequence[Candle]) -> list[Pattern]:
    """Symmetrical triangle: falling highs and rising lows."""
    if len(candles) < MIN_TRIANGLE_CANDLES:
        return []

    high_slope, low_slope = _edge_slopes(candles)
    if not (high_slope < 0 < low_slope):
        return []
    if abs(high_slope - low_slope) <= SLOPE_EPSILON:
        return []

    first, last = candles[0], candles[-1]
    return [Pattern(
        type=PatternType.TRIANGLE,
        start_time=first.time,
        end_time=last.time,
        start_price=(first.high + first.low) / 2,
        end_price=last.close,
        confidence=0.65,
        message="Symmetrical Triangle - breakout imminent, watch for direction",
    )]


@register_pattern("channel", chart=True)
def detect_channel(candles: Sequence[Candle]) -> list[Pattern]:
    """Channel: highs and lows trending with near-parallel slopes."""
    if len(candles) < MIN_CHANNEL_CANDLES:
        return []

    high_slope, low_slope = _edge_slopes(candles)
    if abs(high_slope) <= SLOPE_EPSILON:
        return []
    if abs(high_slope - low_slope) >= abs(high_slope) * CHANNEL_PARALLEL_RATIO:
        return []

    first, last = candles[0], candles[-1]
    return [Pattern(
        type=PatternType.CHANNEL,
        start_time=first.time,
        end_time=last.time,
        start_price=(first.high + first.low) / 2,
        end_price=(last.high + last.low) / 2,
        confidence=0.7,
        message=(
            "Ascending Channel - buy dips, sell at resistance"
            if high_slope > 0
            else "Descending Channel - sell rallies, buy at support"
        ),
    )]
