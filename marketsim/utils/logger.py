"""
Logging for the market simulator.

Three channels share one formatter style:
- marketsim          console (colored) and optional sim_YYYYMMDD.log
- marketsim.ledger   order/position events, file only
- marketsim.errors   errors and anomalies, file only

Every structured line is `[TAG] | key=value | ...` so log files can be
grepped by tag (POSITION_OPENED, RISK:BLOCKED, ANOMALY:pnl, PATTERN, SHOCK).
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional


_RESET = "\033[0m"

# Level -> ANSI color for the console handler
LEVEL_COLORS = {
    logging.DEBUG: "\033[96m",
    logging.INFO: "\033[92m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[1m\033[91m",
}

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Risk actions that deserve a warning rather than an info line
_WARN_RISK_ACTIONS = {"BLOCKED", "WARNING", "LIQUIDATED"}


class ColoredFormatter(logging.Formatter):
    """Console formatter that tints level and message by severity."""

    def format(self, record):
        # Tint a copy so the file handlers on the same record stay plain
        tinted = logging.makeLogRecord(record.__dict__)
        color = LEVEL_COLORS.get(record.levelno, "")
        tinted.levelname = f"{color}{record.levelname}{_RESET}"
        tinted.msg = f"{color}{record.getMessage()}{_RESET}"
        tinted.args = None
        return super().format(tinted)


def _fields(tag: str, *head: str, **context: Any) -> str:
    parts = [f"[{tag}]", *head]
    parts.extend(f"{key}={value}" for key, value in context.items())
    return " | ".join(parts)


class SimLogger:
    """
    Process-wide simulator logger.

    Use get_logger() rather than constructing it; setup_logger() rebuilds it
    with a different level or log directory.
    """

    _instance: Optional['SimLogger'] = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, log_dir: Optional[str] = None, log_level: str = "INFO"):
        if SimLogger._initialized:
            return

        self.log_dir = Path(log_dir) if log_dir else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = self._build("marketsim", log_level, console=True, file_prefix="sim")
        self.ledger_logger = self._build("marketsim.ledger", log_level, file_prefix="ledger")
        self.error_logger = self._build("marketsim.errors", "WARNING", file_prefix="errors")

        SimLogger._initialized = True

    def _build(self, name: str, level: str, console: bool = False,
               file_prefix: Optional[str] = None) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        logger.handlers.clear()
        logger.propagate = False

        if console:
            handler = logging.StreamHandler()
            handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
            logger.addHandler(handler)

        if self.log_dir is not None and file_prefix:
            path = self.log_dir / f"{file_prefix}_{datetime.now():%Y%m%d}.log"
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            logger.addHandler(handler)

        return logger

    # ─────────────────────────────────────────────────────────────────────
    # Plain messages
    # ─────────────────────────────────────────────────────────────────────

    def debug(self, msg: str, *args, **kwargs):
        self.main_logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self.main_logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self.main_logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log to the console and the errors file."""
        self.main_logger.error(msg, *args, **kwargs)
        self.error_logger.error(msg, *args, **kwargs)

    # ─────────────────────────────────────────────────────────────────────
    # Structured events
    # ─────────────────────────────────────────────────────────────────────

    def trade(self, action: str, side: str, size: float,
              price: float = None, pnl: float = None, **kwargs):
        """
        Log a ledger event.

        Args:
            action: ORDER_PLACED, ORDER_FILLED, ORDER_CANCELLED, POSITION_OPENED,
                POSITION_CLOSED, LIQUIDATED
            side: long or short
            size: Size in base units
            price: Execution or trigger price
            pnl: Realized PnL in base units (closes only)
            **kwargs: Extra fields (ids, leverage, close reason)
        """
        head = [f"side={side}", f"size={size:.6f}"]
        if price is not None:
            head.append(f"price={price:.2f}")
        if pnl is not None:
            head.append(f"pnl={pnl:+.6f}")

        msg = _fields(action, *head, **kwargs)
        self.ledger_logger.info(msg)
        self.main_logger.info(msg)

    def risk(self, action: str, reason: str, /, **kwargs):
        """
        Log a risk decision (BLOCKED rejections, LIQUIDATED closes).

        BLOCKED, WARNING and LIQUIDATED go out as warnings.
        """
        msg = _fields(f"RISK:{action}", reason, **kwargs)
        if action in _WARN_RISK_ACTIONS:
            self.main_logger.warning(msg)
            self.ledger_logger.warning(msg)
        else:
            self.main_logger.info(msg)

    def anomaly(self, kind: str, detail: str, **kwargs):
        """Log a clamped non-finite or invalid value; also written to the errors file."""
        msg = _fields(f"ANOMALY:{kind}", detail, **kwargs)
        self.main_logger.warning(msg)
        self.error_logger.warning(msg)

    def pattern(self, message: str, confidence: float):
        """Log an announced pattern."""
        self.main_logger.info(_fields("PATTERN", message, confidence=f"{confidence:.0%}"))

    def shock(self, phase: str, **kwargs):
        """Log a volatility shock starting or ending (DEBUG)."""
        self.main_logger.debug(_fields(f"SHOCK:{phase}", **kwargs))


_logger: Optional[SimLogger] = None


def get_logger(log_dir: Optional[str] = None, log_level: str = "INFO") -> SimLogger:
    """Get or create the global logger instance."""
    global _logger
    if _logger is None:
        _logger = SimLogger(log_dir, log_level)
        _quiet_third_party()
    return _logger


def setup_logger(log_dir: Optional[str] = None, log_level: str = "INFO") -> SimLogger:
    """Rebuild the global logger with a new level and log directory."""
    global _logger
    SimLogger._initialized = False
    SimLogger._instance = None
    _logger = SimLogger(log_dir, log_level)
    _quiet_third_party()
    return _logger


def _quiet_third_party():
    # pybit logs each retry of the seed request at INFO
    for name in ("pybit", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)
