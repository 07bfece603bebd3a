"""
Candlestick pattern detectors.

Look at the newest one or two candles of the scan window:
- hammer: long lower shadow after a short downtrend
- engulfing: opposite-colour body swallowing the previous body
- doji: body under 10% of the range
"""

from __future__ import annotations

from typing import Sequence

from ..registry import register_pattern
from ..types import Pattern, PatternType
from ...indicators import trend
from ...sim.types import Candle


@register_pattern("hammer")
def detect_hammer(candles: Sequence[Candle]) -> list[Pattern]:
    """
    Hammer: small body, lower shadow at least twice the body, little upper
    shadow, and the previous four closes trending down.
    """
    if len(candles) < 3:
        return []

    current = candles[-1]
    body = current.body
    if body <= 0:
        return []
    if current.lower_shadow < body * 2 or current.upper_shadow >= body * 0.5:
        return []
    if body >= current.range * 0.3:
        return []

    prior = trend([c.close for c in candles[-5:-1]])
    if prior.slope >= 0:
        return []

    message = (
        "Bullish Hammer - potential reversal after downtrend"
        if current.is_bullish
        else "Inverted Hammer - watch for confirmation"
    )
    return [Pattern(
        type=PatternType.HAMMER,
        start_time=current.time,
        end_time=current.time,
        start_price=current.low,
        end_price=current.high,
        confidence=0.75,
        message=message,
    )]


@register_pattern("engulfing")
def detect_engulfing(candles: Sequence[Candle]) -> list[Pattern]:
    """Engulfing: body spans the previous opposite-colour body and is >10% larger."""
    if len(candles) < 2:
        return []

    previous, current = candles[-2], candles[-1]
    if current.body <= previous.body * 1.1:
        return []

    bullish = (
        previous.is_bearish
        and current.is_bullish
        and current.open < previous.close
        and current.close > previous.open
    )
    bearish = (
        previous.is_bullish
        and current.is_bearish
        and current.open > previous.close
        and current.close < previous.open
    )

    if bullish:
        return [Pattern(
            type=PatternType.ENGULFING,
            start_time=previous.time,
            end_time=current.time,
            start_price=min(previous.open, previous.close),
            end_price=max(current.open, current.close),
            confidence=0.8,
            message="Bullish Engulfing - momentum shifting up",
        )]
    if bearish:
        return [Pattern(
            type=PatternType.ENGULFING,
            start_time=previous.time,
            end_time=current.time,
            start_price=max(previous.open, previous.close),
            end_price=min(current.open, current.close),
            confidence=0.8,
            message="Bearish Engulfing - momentum shifting down",
        )]
    return []


@register_pattern("doji")
def detect_doji(candles: Sequence[Candle]) -> list[Pattern]:
    if not candles:
        return []

    current = candles[-1]
    if current.range <= 0 or current.body >= current.range * 0.1:
        return []

    return [Pattern(
        type=PatternType.DOJI,
        start_time=current.time,
        end_time=current.time,
        start_price=current.low,
        end_price=current.high,
        confidence=0.6,
        message="Doji - market indecision, potential reversal ahead",
    )]
