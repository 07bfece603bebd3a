"""
Common numeric helpers used across the simulator.

These helpers keep non-finite values out of simulation state.
"""

import math
from typing import Any


def safe_float(value: Any, default: float = 0.0) -> float:
    """
    Safely convert value to float, handling edge cases from API responses.

    Bybit tickers return prices as strings and sometimes as "" for
    instruments without trades.

    Args:
        value: Value to convert (str, int, float, None, etc.)
        default: Default value if conversion fails or the result is not finite

    Returns:
        Float value or default

    Examples:
        >>> safe_float("123.45")
        123.45
        >>> safe_float("")
        0.0
        >>> safe_float("nan", default=-1.0)
        -1.0
    """
    if value is None or value == "" or value == " ":
        return default
    try:
        result = float(value)
    except (ValueError, TypeError):
        return default
    return result if math.isfinite(result) else default


def is_finite(*values: float) -> bool:
    """Return True if every value is a finite number."""
    return all(math.isfinite(v) for v in values)


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))
