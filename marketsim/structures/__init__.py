"""
Pattern detection over generated candles.

Public API:
- PatternScanner: rate-limited scan with a rolling pattern buffer
- Pattern, PatternType: detected events
- register_pattern: decorator for new detectors
"""

from .types import Pattern, PatternType
from .registry import (
    PATTERN_DETECTORS,
    DetectorInfo,
    register_pattern,
    get_detectors,
    list_pattern_names,
)
from .scanner import PatternScanner

__all__ = [
    "Pattern",
    "PatternType",
    "PATTERN_DETECTORS",
    "DetectorInfo",
    "register_pattern",
    "get_detectors",
    "list_pattern_names",
    "PatternScanner",
]
