"""
Shared pattern type definitions.

This module is the CANONICAL location for pattern enums and the Pattern
record. Detectors, the scanner and the runner snapshot import from here.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict

from ..config import constants as C


class PatternType(str, Enum):
    """
    Supported pattern types.

    Candlestick patterns look at the last one or two candles; chart patterns
    fit regressions over the whole scan window; momentum patterns read RSI.
    """

    # Candlestick
    HAMMER = "hammer"
    ENGULFING = "engulfing"
    DOJI = "doji"

    # Chart
    BULL_FLAG = "bull_flag"
    BEAR_FLAG = "bear_flag"
    TRIANGLE = "triangle"
    CHANNEL = "channel"

    # Momentum
    OVERSOLD = "oversold"
    OVERBOUGHT = "overbought"


@dataclass
class Pattern:
    """
    Detected pattern event.

    start/end times are candle bucket starts; confidence is in [0, 1].
    """
    type: PatternType
    start_time: int
    end_time: int
    start_price: float
    end_price: float
    confidence: float = C.DEFAULT_CONFIDENCE
    message: str = ""

    def copy(self) -> "Pattern":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "start_price": self.start_price,
            "end_price": self.end_price,
            "confidence": self.confidence,
            "message": self.message,
        }
