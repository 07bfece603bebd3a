"""
Utility modules.
"""

from .logger import get_logger, setup_logger, SimLogger
from .helpers import safe_float, is_finite, clamp
from .datetime_utils import Clock, now_ms, monotonic_ms
from .timeframes import (
    TIMEFRAME_MS,
    CANONICAL_TIMEFRAMES,
    DEFAULT_TIMEFRAME,
    validate_timeframe,
    timeframe_ms,
    bucket_start,
)

__all__ = [
    # Logger
    "get_logger",
    "setup_logger",
    "SimLogger",
    # Numeric helpers
    "safe_float",
    "is_finite",
    "clamp",
    # Clock
    "Clock",
    "now_ms",
    "monotonic_ms",
    # Timeframes
    "TIMEFRAME_MS",
    "CANONICAL_TIMEFRAMES",
    "DEFAULT_TIMEFRAME",
    "validate_timeframe",
    "timeframe_ms",
    "bucket_start",
]
