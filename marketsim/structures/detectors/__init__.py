"""
Stateless pattern detectors.

Each detector is registered via @register_pattern and dispatched by the
PatternScanner in registration order (candlestick, chart, momentum).

Available Detectors:
- hammer, engulfing, doji: newest-candle shapes
- bull_flag, bear_flag, triangle, channel: window-wide chart patterns
- rsi: oversold / overbought conditions
"""

# Import detectors to trigger registration
from .candlestick import detect_hammer, detect_engulfing, detect_doji
from .chart import detect_bull_flag, detect_bear_flag, detect_triangle, detect_channel
from .momentum import detect_rsi_conditions

__all__ = [
    "detect_hammer",
    "detect_engulfing",
    "detect_doji",
    "detect_bull_flag",
    "detect_bear_flag",
    "detect_triangle",
    "detect_channel",
    "detect_rsi_conditions",
]
