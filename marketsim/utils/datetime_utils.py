"""
Clock helpers.

Components take a millisecond clock callable instead of reading the wall
clock directly, so tests can drive time by hand.
"""

import time
from typing import Callable

# Returns the current time in integer milliseconds
Clock = Callable[[], int]


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def monotonic_ms() -> int:
    """Monotonic time in milliseconds, for interval gating."""
    return int(time.monotonic() * 1000)
