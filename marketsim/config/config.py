"""
Configuration management for the market simulator.
Loads settings from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from . import constants as C
from ..utils.timeframes import CANONICAL_TIMEFRAMES, DEFAULT_TIMEFRAME, validate_timeframe


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() == "true"


@dataclass
class MarketConfig:
    """Price process and candle aggregation settings."""
    timeframes: List[str] = field(default_factory=lambda: list(CANONICAL_TIMEFRAMES))
    history_limit: int = C.CANDLE_HISTORY_LIMIT
    bootstrap_candles: int = C.BOOTSTRAP_CANDLES
    price_floor_ratio: float = C.PRICE_FLOOR_RATIO

    # None = seed the generator from OS entropy
    random_seed: Optional[int] = None

    def __post_init__(self):
        """Normalize timeframes and enforce positive limits."""
        self.timeframes = [validate_timeframe(tf) for tf in self.timeframes]
        if not self.timeframes:
            raise ValueError("At least one timeframe is required (SIM_TIMEFRAMES=1s,1m)")
        self.history_limit = max(1, self.history_limit)
        self.bootstrap_candles = max(0, self.bootstrap_candles)


@dataclass
class AccountConfig:
    """Ledger account settings. Balances are in base-asset units."""
    initial_balance: float = C.INITIAL_BALANCE
    max_leverage: float = C.MAX_LEVERAGE
    liquidation_buffer: float = C.LIQUIDATION_BUFFER
    history_size: int = C.TRADE_HISTORY_SIZE

    # Hard caps (cannot be overridden by config)
    HARD_MAX_LEVERAGE: float = C.MAX_LEVERAGE

    def __post_init__(self):
        """Enforce hard caps."""
        self.max_leverage = min(self.max_leverage, self.HARD_MAX_LEVERAGE)
        self.history_size = max(1, self.history_size)


@dataclass
class ScannerConfig:
    """Pattern scanner settings."""
    enabled: bool = True
    interval_seconds: float = C.SCAN_INTERVAL_SECONDS
    window: int = C.SCAN_WINDOW
    min_candles: int = C.SCAN_MIN_CANDLES
    buffer_max: int = C.PATTERN_BUFFER_MAX
    buffer_keep: int = C.PATTERN_BUFFER_KEEP
    announce_confidence: float = C.ANNOUNCE_CONFIDENCE


@dataclass
class RunnerConfig:
    """Driver loop settings."""
    tick_rate_hz: float = C.TICK_RATE_HZ
    display_timeframe: str = DEFAULT_TIMEFRAME

    def __post_init__(self):
        self.display_timeframe = validate_timeframe(self.display_timeframe)
        if self.tick_rate_hz <= 0:
            raise ValueError(
                f"tick_rate_hz must be > 0, got {self.tick_rate_hz}\n"
                f"\n"
                f"Fix: SIM_TICK_RATE_HZ=10"
            )

    @property
    def tick_interval(self) -> float:
        """Seconds between ticks."""
        return 1.0 / self.tick_rate_hz


@dataclass
class SeedConfig:
    """One-time seed price fetch settings."""
    fetch: bool = True
    symbol: str = C.SEED_SYMBOL
    timeout_seconds: int = C.SEED_TIMEOUT_SECONDS
    categories: Tuple[str, ...] = C.SEED_CATEGORIES
    fallback_range: Tuple[float, float] = C.SEED_FALLBACK_RANGE


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    # Empty = console only
    log_dir: str = ""


class Config:
    """
    Central configuration manager.

    Loads configuration from environment variables and provides
    typed access to all settings.
    """

    _instance: Optional['Config'] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, env_file: str = ".env"):
        if self._initialized:
            return

        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path, override=True)

        self.market = self._load_market_config()
        self.account = self._load_account_config()
        self.scanner = self._load_scanner_config()
        self.runner = self._load_runner_config()
        self.seed = self._load_seed_config()
        self.log = self._load_log_config()

        self._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next get_config() re-reads the environment."""
        cls._instance = None

    def _load_market_config(self) -> MarketConfig:
        timeframes_str = os.getenv("SIM_TIMEFRAMES", "")
        timeframes = [tf.strip() for tf in timeframes_str.split(",") if tf.strip()]
        seed_str = os.getenv("SIM_RANDOM_SEED", "").strip()
        return MarketConfig(
            timeframes=timeframes or list(CANONICAL_TIMEFRAMES),
            history_limit=int(os.getenv("SIM_HISTORY_LIMIT", str(C.CANDLE_HISTORY_LIMIT))),
            bootstrap_candles=int(os.getenv("SIM_BOOTSTRAP_CANDLES", str(C.BOOTSTRAP_CANDLES))),
            price_floor_ratio=float(os.getenv("SIM_PRICE_FLOOR_RATIO", str(C.PRICE_FLOOR_RATIO))),
            random_seed=int(seed_str) if seed_str else None,
        )

    def _load_account_config(self) -> AccountConfig:
        return AccountConfig(
            initial_balance=float(os.getenv("SIM_INITIAL_BALANCE", str(C.INITIAL_BALANCE))),
            max_leverage=float(os.getenv("SIM_MAX_LEVERAGE", str(C.MAX_LEVERAGE))),
            liquidation_buffer=float(os.getenv("SIM_LIQUIDATION_BUFFER", str(C.LIQUIDATION_BUFFER))),
            history_size=int(os.getenv("SIM_HISTORY_SIZE", str(C.TRADE_HISTORY_SIZE))),
        )

    def _load_scanner_config(self) -> ScannerConfig:
        return ScannerConfig(
            enabled=_env_bool("SIM_SCAN_ENABLED", True),
            interval_seconds=float(os.getenv("SIM_SCAN_INTERVAL_SECONDS", str(C.SCAN_INTERVAL_SECONDS))),
            window=int(os.getenv("SIM_SCAN_WINDOW", str(C.SCAN_WINDOW))),
            min_candles=int(os.getenv("SIM_SCAN_MIN_CANDLES", str(C.SCAN_MIN_CANDLES))),
        )

    def _load_runner_config(self) -> RunnerConfig:
        return RunnerConfig(
            tick_rate_hz=float(os.getenv("SIM_TICK_RATE_HZ", str(C.TICK_RATE_HZ))),
            display_timeframe=os.getenv("SIM_DISPLAY_TIMEFRAME", DEFAULT_TIMEFRAME),
        )

    def _load_seed_config(self) -> SeedConfig:
        return SeedConfig(
            fetch=_env_bool("SIM_SEED_FETCH", True),
            symbol=os.getenv("SIM_SEED_SYMBOL", C.SEED_SYMBOL).strip().upper(),
            timeout_seconds=int(os.getenv("SIM_SEED_TIMEOUT", str(C.SEED_TIMEOUT_SECONDS))),
        )

    def _load_log_config(self) -> LogConfig:
        return LogConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", ""),
        )

    def summary_short(self) -> str:
        """Generate a short one-line configuration summary."""
        seed = "fetch" if self.seed.fetch else "fallback"
        scan = "on" if self.scanner.enabled else "off"
        return (
            f"{self.seed.symbol} | seed: {seed} | balance: {self.account.initial_balance:g} | "
            f"{self.runner.tick_rate_hz:g} Hz | scanner: {scan}"
        )


def get_config(env_file: str = ".env") -> Config:
    """Get or create the global config instance."""
    return Config(env_file)
