"""
Pattern scanner.

Runs every registered detector over the newest candles at most once per
scan interval and keeps a small rolling buffer of detected patterns.

Cycle:
1. Inside the interval: return the previous buffer unchanged
2. Buffer longer than buffer_max: keep only its last buffer_keep entries
3. Fewer than min_candles candles: return the buffer
4. Scan the last `window` candles; chart detectors run every other cycle
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from .registry import get_detectors
from .types import Pattern
from . import detectors  # noqa: F401  (registers detectors)
from ..config import ScannerConfig, constants as C
from ..sim.types import Candle
from ..utils.datetime_utils import monotonic_ms
from ..utils.logger import get_logger


class PatternScanner:
    """
    Rate-limited pattern detection over a candle window.

    Example:
        scanner = PatternScanner()
        patterns = scanner.detect(engine.get_candles("1s"))
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        clock: Callable[[], int] = monotonic_ms,
    ):
        """
        Args:
            config: Scanner settings (interval, window, buffer sizes)
            clock: Monotonic millisecond clock used for rate limiting
        """
        self._config = config or ScannerConfig()
        self._clock = clock
        self.logger = get_logger()

        self._buffer: List[Pattern] = []
        self._last_detected: List[Pattern] = []
        self._last_scan_ms: Optional[int] = None
        self._scan_count = 0
        self._chart_phase = True

    @property
    def config(self) -> ScannerConfig:
        return self._config

    @property
    def scan_count(self) -> int:
        """Number of cycles that actually ran the detectors."""
        return self._scan_count

    @property
    def last_detected(self) -> List[Pattern]:
        """Patterns found by the most recent scan cycle."""
        return [p.copy() for p in self._last_detected]

    @property
    def patterns(self) -> List[Pattern]:
        return [p.copy() for p in self._buffer]

    def detect(self, candles: Sequence[Candle]) -> List[Pattern]:
        """
        Detect patterns in the candle series.

        Args:
            candles: Candles ordered oldest first (live candle last)

        Returns:
            Copy of the pattern buffer, oldest first
        """
        now = self._clock()
        interval_ms = self._config.interval_seconds * 1000
        if self._last_scan_ms is not None and now - self._last_scan_ms < interval_ms:
            return self.patterns
        self._last_scan_ms = now

        if len(self._buffer) > self._config.buffer_max:
            self._buffer = self._buffer[-self._config.buffer_keep:]

        if len(candles) < self._config.min_candles:
            return self.patterns

        window = list(candles[-self._config.window:])
        found: List[Pattern] = []
        for info in get_detectors():
            if info.chart and not self._chart_phase:
                continue
            for pattern in info.func(window):
                if pattern.confidence is None:
                    pattern.confidence = C.DEFAULT_CONFIDENCE
                found.append(pattern)

        self._chart_phase = not self._chart_phase
        self._scan_count += 1
        self._last_detected = found
        self._buffer.extend(found)

        if found:
            self.logger.debug(
                f"Scan #{self._scan_count}: {', '.join(p.type.value for p in found)}"
            )
        return self.patterns

    def reset(self) -> None:
        """Clear the buffer and rate limit (e.g. after a timeframe switch)."""
        self._buffer = []
        self._last_detected = []
        self._last_scan_ms = None
        self._chart_phase = True
