"""
Simulation runner.

Drives the simulated market at a fixed tick rate:
1. Tick MarketEngine (price + candles)
2. Fill triggered limit orders, mark positions, apply exits
3. Feed display-timeframe candles to the PatternScanner
4. Publish a MarketSnapshot to subscribers

Every tick and every user trading call runs under one lock, so a tick is
atomic with respect to trading. Shutdown sets a threading.Event; the loop
finishes the in-flight tick and exits.

Usage:
    from marketsim.engine.runners import create_runner

    runner = create_runner()
    runner.subscribe(lambda snap: print(snap.price))
    runner.start()
    runner.open_position("long", 0.1, 20)
    ...
    runner.stop()
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, List, Optional, Set

import numpy as np

from ..snapshot import MarketSnapshot, build_snapshot
from ...config import Config, RunnerConfig, get_config
from ...exchanges import resolve_seed_price
from ...sim import CloseReason, Ledger, LedgerConfig, MarketEngine, Order, Position, TradeRecord, make_rng
from ...structures import Pattern, PatternScanner, PatternType
from ...utils.datetime_utils import Clock, monotonic_ms, now_ms
from ...utils.logger import get_logger
from ...utils.timeframes import validate_timeframe


logger = get_logger()

SnapshotCallback = Callable[[MarketSnapshot], None]
PatternCallback = Callable[[Pattern], None]


class RunnerState(str, Enum):
    """State of the simulation runner."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


# Valid state transitions
VALID_TRANSITIONS: dict[RunnerState, set[RunnerState]] = {
    RunnerState.STOPPED: {RunnerState.STARTING},
    RunnerState.STARTING: {RunnerState.RUNNING, RunnerState.ERROR},
    RunnerState.RUNNING: {RunnerState.STOPPING, RunnerState.ERROR},
    RunnerState.STOPPING: {RunnerState.STOPPED, RunnerState.ERROR},
    RunnerState.ERROR: {RunnerState.STOPPED},  # Can only reset from error
}


@dataclass
class RunnerStats:
    """Statistics from the simulation runner."""

    started_at: datetime | None = None
    stopped_at: datetime | None = None
    ticks: int = 0
    tick_errors: int = 0
    liquidations: int = 0
    orders_filled: int = 0
    patterns_announced: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.stopped_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "stopped_at": self.stopped_at.isoformat() if self.stopped_at else None,
            "duration_seconds": self.duration_seconds,
            "ticks": self.ticks,
            "tick_errors": self.tick_errors,
            "liquidations": self.liquidations,
            "orders_filled": self.orders_filled,
            "patterns_announced": self.patterns_announced,
            "errors": self.errors[-10:],  # Last 10 errors
        }


class SimulationRunner:
    """
    Fixed-rate driver for MarketEngine, Ledger and PatternScanner.

    Responsibilities:
    - Own and sequence the three components (no component calls another)
    - Serialize ticks and user trading calls
    - Announce newly detected high-confidence patterns
    - Publish snapshots to subscribers
    """

    def __init__(
        self,
        engine: MarketEngine,
        ledger: Ledger,
        scanner: PatternScanner,
        config: RunnerConfig | None = None,
        scanner_enabled: bool = True,
        on_pattern: PatternCallback | None = None,
        clock: Clock = now_ms,
    ):
        """
        Initialize the runner.

        Args:
            engine: Market engine (price + candles)
            ledger: Position/order ledger
            scanner: Pattern scanner
            config: Tick rate and display timeframe
            scanner_enabled: Run the scanner each tick
            on_pattern: Optional callback for announced patterns
            clock: Millisecond clock stamped on snapshots
        """
        self._engine = engine
        self._ledger = ledger
        self._scanner = scanner
        self._config = config or RunnerConfig()
        self._on_pattern = on_pattern
        self._clock = clock

        self._timeframe = self._require_timeframe(self._config.display_timeframe)
        self._scanner_enabled = scanner_enabled
        self._announce_confidence = scanner.config.announce_confidence
        self._previous_scan_types: Set[PatternType] = set()
        self._announced: Deque[Pattern] = deque(maxlen=20)

        # Tick/trading serialization
        self._lock = threading.Lock()

        # Thread-safe state machine
        self._state = RunnerState.STOPPED
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self._stats = RunnerStats()
        self._subscribers: List[SnapshotCallback] = []
        self._latest: MarketSnapshot | None = None

    # ─────────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> RunnerState:
        """Current runner state (thread-safe read)."""
        with self._state_lock:
            return self._state

    def _transition_state(self, new_state: RunnerState) -> bool:
        """
        Thread-safe state transition with validation.

        Returns True if transition was valid, False otherwise.
        Invalid transitions are logged but not raised.
        """
        with self._state_lock:
            valid_next = VALID_TRANSITIONS.get(self._state, set())
            if new_state not in valid_next:
                logger.warning(
                    f"Invalid state transition: {self._state.value} -> {new_state.value} "
                    f"(valid: {[s.value for s in valid_next]})"
                )
                return False
            old_state = self._state
            self._state = new_state
            logger.debug(f"State transition: {old_state.value} -> {new_state.value}")
            return True

    @property
    def stats(self) -> RunnerStats:
        return self._stats

    @property
    def is_running(self) -> bool:
        return self.state == RunnerState.RUNNING

    @property
    def engine(self) -> MarketEngine:
        return self._engine

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def timeframe(self) -> str:
        return self._timeframe

    @property
    def scanner_enabled(self) -> bool:
        return self._scanner_enabled

    @property
    def latest_snapshot(self) -> MarketSnapshot | None:
        return self._latest

    @property
    def announcements(self) -> List[Pattern]:
        """Most recent announced patterns, oldest first."""
        return [p.copy() for p in self._announced]

    def subscribe(self, callback: SnapshotCallback) -> None:
        """Register a callback invoked with every published snapshot."""
        self._subscribers.append(callback)

    # ─────────────────────────────────────────────────────────────────────
    # Tick
    # ─────────────────────────────────────────────────────────────────────

    def step(self, elapsed_seconds: float | None = None) -> MarketSnapshot:
        """
        Run one tick and publish its snapshot.

        Args:
            elapsed_seconds: Simulated step; None derives it from the engine clock

        Returns:
            The published snapshot
        """
        with self._lock:
            snapshot, announced = self._tick(elapsed_seconds)
        self._notify_patterns(announced)
        self._publish(snapshot)
        return snapshot

    def _tick(self, elapsed_seconds: float | None) -> tuple[MarketSnapshot, List[Pattern]]:
        price = self._engine.tick(elapsed_seconds)

        filled = self._ledger.check_limit_orders(price)
        self._stats.orders_filled += len(filled)

        update = self._ledger.update_positions(price)
        for position in update.liquidated:
            self._stats.liquidations += 1
            logger.risk(
                "LIQUIDATED",
                "Price crossed liquidation level",
                id=position.position_id,
                side=position.side.value,
                liq=f"{position.liquidation_price:.2f}",
            )

        candles = self._engine.get_candles(self._timeframe)
        announced: List[Pattern] = []
        if self._scanner_enabled:
            scans_before = self._scanner.scan_count
            patterns = self._scanner.detect(candles)
            if self._scanner.scan_count != scans_before:
                announced = self._announce(self._scanner.last_detected)
        else:
            patterns = self._scanner.patterns

        self._stats.ticks += 1
        snapshot = build_snapshot(
            tick=self._engine.tick_count,
            timestamp=self._clock(),
            price=price,
            initial_price=self._engine.initial_price,
            timeframe=self._timeframe,
            candles=candles,
            shock_active=self._engine.is_shock_active(),
            volatility=self._engine.get_volatility(),
            account=self._ledger.get_account(),
            positions=self._ledger.get_positions(),
            orders=self._ledger.get_orders(),
            history=self._ledger.get_history(),
            patterns=patterns,
        )
        self._latest = snapshot
        return snapshot, announced

    def _announce(self, detected: List[Pattern]) -> List[Pattern]:
        """Record high-confidence patterns whose type was absent from the previous scan."""
        announced: List[Pattern] = []
        for pattern in detected:
            if pattern.confidence <= self._announce_confidence:
                continue
            if pattern.type in self._previous_scan_types:
                continue
            self._announced.append(pattern.copy())
            self._stats.patterns_announced += 1
            logger.pattern(pattern.message, pattern.confidence)
            announced.append(pattern.copy())
        self._previous_scan_types = {p.type for p in detected}
        return announced

    def _notify_patterns(self, announced: List[Pattern]) -> None:
        # Runs outside the tick lock; callbacks may call back into the runner
        if self._on_pattern is None:
            return
        for pattern in announced:
            try:
                self._on_pattern(pattern)
            except Exception as e:
                logger.error(f"Pattern callback failed: {e}")

    def _publish(self, snapshot: MarketSnapshot) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Snapshot subscriber failed: {e}")

    # ─────────────────────────────────────────────────────────────────────
    # Loop
    # ─────────────────────────────────────────────────────────────────────

    def _loop(self, max_ticks: int | None) -> None:
        interval = self._config.tick_interval
        attempted = 0

        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.step()
            except Exception as e:
                self._stats.tick_errors += 1
                self._stats.errors.append(str(e))
                logger.error(f"Tick failed: {e}")

            attempted += 1
            if max_ticks is not None and attempted >= max_ticks:
                break

            remaining = interval - (time.monotonic() - started)
            if remaining > 0:
                self._stop_event.wait(remaining)

    def _thread_main(self, max_ticks: int | None) -> None:
        try:
            self._loop(max_ticks)
        except Exception as e:
            self._stats.errors.append(str(e))
            logger.error(f"Runner loop crashed: {e}")
            self._transition_state(RunnerState.ERROR)
            return
        self._finish()

    def _finish(self) -> None:
        if self.state == RunnerState.RUNNING:
            self._transition_state(RunnerState.STOPPING)
        if self._transition_state(RunnerState.STOPPED):
            self._stats.stopped_at = datetime.now(timezone.utc)
            logger.info(
                f"Simulation stopped | ticks={self._stats.ticks} | "
                f"errors={self._stats.tick_errors} | liquidations={self._stats.liquidations}"
            )

    def _begin(self) -> bool:
        if not self._transition_state(RunnerState.STARTING):
            return False
        self._stop_event.clear()
        self._stats.started_at = datetime.now(timezone.utc)
        self._stats.stopped_at = None
        return True

    def start(self, max_ticks: int | None = None) -> None:
        """
        Start the tick loop on a daemon thread.

        Raises:
            RuntimeError: If the runner is not stopped
        """
        if not self._begin():
            raise RuntimeError(f"Cannot start runner in state '{self.state.value}'")

        self._thread = threading.Thread(
            target=self._thread_main,
            args=(max_ticks,),
            name="marketsim-runner",
            daemon=True,
        )
        self._transition_state(RunnerState.RUNNING)
        self._thread.start()
        logger.info(
            f"Simulation started | {self._config.tick_rate_hz:g} Hz | timeframe={self._timeframe}"
        )

    def run(self, max_ticks: int | None = None) -> RunnerStats:
        """
        Run the tick loop on the calling thread until stopped or max_ticks.

        Returns:
            Final statistics
        """
        if not self._begin():
            raise RuntimeError(f"Cannot run runner in state '{self.state.value}'")
        self._transition_state(RunnerState.RUNNING)

        try:
            self._loop(max_ticks)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        self._finish()
        return self._stats

    def stop(self, timeout: float = 2.0) -> None:
        """Request shutdown and wait for the in-flight tick to finish."""
        if self.state == RunnerState.STOPPED:
            return

        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"Runner thread did not stop within {timeout:g}s")
                return
        self._thread = None
        if self.state == RunnerState.ERROR:
            self._transition_state(RunnerState.STOPPED)

    # ─────────────────────────────────────────────────────────────────────
    # User actions (priced at the current price, serialized with ticks)
    # ─────────────────────────────────────────────────────────────────────

    def open_position(
        self,
        side: str,
        size: float,
        leverage: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> Position | None:
        with self._lock:
            return self._ledger.open_market_position(
                side, size, leverage, self._engine.current_price, stop_loss, take_profit
            )

    def close_position(self, position_id: str) -> TradeRecord | None:
        with self._lock:
            return self._ledger.close_position(
                position_id, self._engine.current_price, CloseReason.MARKET
            )

    def place_limit_order(
        self,
        side: str,
        trigger_price: float,
        size: float,
        leverage: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> Order | None:
        with self._lock:
            return self._ledger.place_limit_order(
                side, trigger_price, size, leverage, stop_loss, take_profit
            )

    def cancel_order(self, order_id: str) -> bool:
        with self._lock:
            return self._ledger.cancel_order(order_id)

    # ─────────────────────────────────────────────────────────────────────
    # Display settings
    # ─────────────────────────────────────────────────────────────────────

    def _require_timeframe(self, timeframe: str) -> str:
        tf = validate_timeframe(timeframe)
        if tf not in self._engine.timeframes:
            raise ValueError(
                f"Timeframe '{tf}' is not aggregated by the engine.\n"
                f"\n"
                f"Fix: use one of {self._engine.timeframes} or add it to SIM_TIMEFRAMES"
            )
        return tf

    def set_timeframe(self, timeframe: str) -> None:
        """Switch the display/scan timeframe and clear the pattern buffer."""
        tf = self._require_timeframe(timeframe)
        with self._lock:
            if tf == self._timeframe:
                return
            self._timeframe = tf
            self._scanner.reset()
            self._previous_scan_types = set()
        logger.info(f"Display timeframe: {tf}")

    def set_scanner_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._scanner_enabled = bool(enabled)


def create_runner(
    config: Config | None = None,
    seed_price: float | None = None,
    rng: np.random.Generator | None = None,
    clock: Clock | None = None,
) -> SimulationRunner:
    """
    Build a runner with its engine, ledger and scanner.

    Args:
        config: Configuration (defaults to get_config())
        seed_price: Starting price; None fetches it (or falls back)
        rng: Random generator (defaults to config.market.random_seed)
        clock: Millisecond clock shared by all components (defaults to wall/monotonic)

    Returns:
        SimulationRunner in the STOPPED state
    """
    config = config or get_config()
    rng = rng if rng is not None else make_rng(config.market.random_seed)

    if seed_price is None:
        seed_price = resolve_seed_price(config.seed, rng)

    engine = MarketEngine(seed_price, rng, config.market, clock or now_ms)
    ledger = Ledger(LedgerConfig.from_account_config(config.account), clock or now_ms)
    scanner = PatternScanner(config.scanner, clock or monotonic_ms)

    return SimulationRunner(
        engine,
        ledger,
        scanner,
        config.runner,
        scanner_enabled=config.scanner.enabled,
        clock=clock or now_ms,
    )
