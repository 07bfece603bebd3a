"""
Centralized constants for the market simulator.

Values mirror the defaults of the config sections; components import them
when they are built without an explicit config.
"""

from typing import Tuple


# ==================== Market ====================

BOOTSTRAP_CANDLES = 200
CANDLE_HISTORY_LIMIT = 500

# Price floor as a fraction of the initial price (1000 for a 100k seed)
PRICE_FLOOR_RATIO = 0.01


# ==================== Account ====================

INITIAL_BALANCE = 10.0
MIN_LEVERAGE = 1.0
MAX_LEVERAGE = 100.0

# Fraction of margin lost at the liquidation price (the rest is the buffer)
LIQUIDATION_BUFFER = 0.995

TRADE_HISTORY_SIZE = 100


# ==================== Scanner ====================

SCAN_INTERVAL_SECONDS = 5.0
SCAN_WINDOW = 30
SCAN_MIN_CANDLES = 20
PATTERN_BUFFER_MAX = 10
PATTERN_BUFFER_KEEP = 5
DEFAULT_CONFIDENCE = 0.7

# Patterns at or below this confidence are not announced by the runner
ANNOUNCE_CONFIDENCE = 0.75


# ==================== Runner ====================

TICK_RATE_HZ = 10.0


# ==================== Seed price ====================

SEED_SYMBOL = "BTCUSDT"
SEED_TIMEOUT_SECONDS = 3
SEED_CATEGORIES: Tuple[str, ...] = ("linear", "spot")
SEED_FALLBACK_RANGE: Tuple[float, float] = (95_000.0, 100_000.0)
SEED_MAX_VALID_PRICE = 1_000_000.0
