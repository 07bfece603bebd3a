"""
Technical indicators (numpy).
"""

from .core import Regression, Trend, ema, rsi, linear_regression, trend

__all__ = [
    "Regression",
    "Trend",
    "ema",
    "rsi",
    "linear_regression",
    "trend",
]
