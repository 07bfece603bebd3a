"""
RSI momentum conditions (oversold / overbought).
"""

from __future__ import annotations

from typing import Sequence

from ..registry import register_pattern
from ..types import Pattern, PatternType
from ...indicators import rsi
from ...sim.types import Candle

RSI_PERIOD = 14
OVERSOLD = 30.0
OVERBOUGHT = 70.0


def _confidence(distance: float) -> float:
    # 0.5 at the threshold, capped at 0.9
    return min(0.9, distance / 30.0 * 0.8 + 0.5)


@register_pattern("rsi")
def detect_rsi_conditions(candles: Sequence[Candle]) -> list[Pattern]:
    """Oversold below RSI 30, overbought above RSI 70, on the newest candle."""
    if len(candles) < RSI_PERIOD + 1:
        return []

    value = rsi([c.close for c in candles], RSI_PERIOD)
    last = candles[-1]

    if value < OVERSOLD:
        kind = PatternType.OVERSOLD
        confidence = _confidence(OVERSOLD - value)
        message = f"RSI Oversold ({value:.1f}) - potential bounce"
    elif value > OVERBOUGHT:
        kind = PatternType.OVERBOUGHT
        confidence = _confidence(value - OVERBOUGHT)
        message = f"RSI Overbought ({value:.1f}) - potential pullback"
    else:
        return []

    return [Pattern(
        type=kind,
        start_time=last.time,
        end_time=last.time,
        start_price=last.low,
        end_price=last.high,
        confidence=confidence,
        message=message,
    )]
