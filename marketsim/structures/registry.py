"""
Pattern detector registry.

Provides:
- PATTERN_DETECTORS: Global registry of detector functions by name
- register_pattern: Decorator to register detector functions
- get_detectors: Registered detectors, optionally filtered by kind
- list_pattern_names: All registered detector names

Detectors are registered at import time via the @register_pattern decorator.
A detector is a stateless function taking the scan window (oldest first) and
returning the patterns it found; it never mutates the candles.

Example:
    @register_pattern("doji")
    def detect_doji(candles: Sequence[Candle]) -> list[Pattern]:
        ...

    # Chart patterns only run every other scan cycle
    @register_pattern("channel", chart=True)
    def detect_channel(candles): ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence

if TYPE_CHECKING:
    from ..sim.types import Candle
    from .types import Pattern

DetectorFn = Callable[[Sequence["Candle"]], "list[Pattern]"]


@dataclass(frozen=True)
class DetectorInfo:
    """Registered detector metadata."""
    name: str
    func: DetectorFn
    chart: bool = False


# Global registry: maps detector name to its info, in registration order
PATTERN_DETECTORS: dict[str, DetectorInfo] = {}


def register_pattern(name: str, chart: bool = False):
    """
    Decorator to register a pattern detector function.

    Args:
        name: Detector name (e.g., "hammer", "bull_flag").
        chart: True for window-wide chart patterns that run every other cycle.

    Returns:
        Decorator function.

    Raises:
        TypeError: If the decorated object is not callable.
        ValueError: If name is already registered.
    """

    def decorator(func: DetectorFn) -> DetectorFn:
        if not callable(func):
            raise TypeError(
                f"Cannot register '{name}': detector must be callable, got {type(func).__name__}\n"
                f"\n"
                f"Fix:\n"
                f"  @register_pattern('{name}')\n"
                f"  def detect_{name}(candles): ..."
            )
        if name in PATTERN_DETECTORS:
            raise ValueError(
                f"Pattern detector '{name}' is already registered "
                f"by {PATTERN_DETECTORS[name].func.__name__}"
            )
        PATTERN_DETECTORS[name] = DetectorInfo(name=name, func=func, chart=chart)
        return func

    return decorator


def get_detectors(chart: bool | None = None) -> list[DetectorInfo]:
    """
    Registered detectors in registration order.

    Args:
        chart: None for all, True for chart patterns only, False for the rest.
    """
    if chart is None:
        return list(PATTERN_DETECTORS.values())
    return [info for info in PATTERN_DETECTORS.values() if info.chart == chart]


def list_pattern_names() -> list[str]:
    return list(PATTERN_DETECTORS)
