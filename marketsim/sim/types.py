"""
Core types for the simulated market.

Provides all shared types, enums and snapshots:
- Candle: OHLCV bucket
- ShockEvent: transient volatility/drift spike in the price process
- Order, Position, TradeRecord: Trade lifecycle types
- Account, PositionUpdate: Ledger snapshots and results

Type design principles:
- Mutable dataclasses are owned by exactly one component; callers only ever
  receive copies (see copy() helpers)
- Timestamps are integer epoch milliseconds
- Monetary values are in base-asset units (the account is margined in BTC)
- Serializable (to_dict methods)
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, List, Dict, Any

# Type alias for order and position IDs
OrderId = str
PositionId = str


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────

class OrderSide(str, Enum):
    """Position side."""
    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        """+1 for long, -1 for short."""
        return 1 if self is OrderSide.LONG else -1


class OrderType(str, Enum):
    """Order type. Only limit orders rest on the book."""
    MARKET = "market"
    LIMIT = "limit"


class CloseReason(str, Enum):
    """Reason a position was closed."""
    MARKET = "market"
    LIMIT = "limit"
    STOP_LOSS = "sl"
    TAKE_PROFIT = "tp"
    LIQUIDATION = "liquidation"


# ─────────────────────────────────────────────────────────────────────────────
# Market data
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Candle:
    """
    OHLCV candle for one timeframe bucket.

    time is the bucket start. Invariant: low <= min(open, close) and
    max(open, close) <= high.
    """
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def upper_shadow(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_shadow(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    def is_valid(self) -> bool:
        """Check the OHLC ordering invariant."""
        return self.low <= min(self.open, self.close) <= max(self.open, self.close) <= self.high

    def copy(self) -> "Candle":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass
class ShockEvent:
    """
    Temporary volatility/drift spike.

    elapsed and duration are in milliseconds; the event ends once
    elapsed >= duration.
    """
    intensity: float
    duration: float
    direction: int  # +1 pump, -1 dump
    elapsed: float = 0.0

    @property
    def progress(self) -> float:
        return self.elapsed / self.duration if self.duration > 0 else 1.0

    @property
    def finished(self) -> bool:
        return self.elapsed >= self.duration


# ─────────────────────────────────────────────────────────────────────────────
# Order
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Order:
    """Resting limit order waiting for its trigger price."""
    order_id: OrderId
    side: OrderSide
    trigger_price: float
    size: float
    leverage: float
    margin: float
    created_at: int
    order_type: OrderType = OrderType.LIMIT
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    def is_triggered(self, price: float) -> bool:
        """Longs fill at or below the trigger, shorts at or above."""
        if self.side == OrderSide.LONG:
            return price <= self.trigger_price
        return price >= self.trigger_price

    def copy(self) -> "Order":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "side": self.side.value,
            "order_type": self.order_type.value,
            "trigger_price": self.trigger_price,
            "size": self.size,
            "leverage": self.leverage,
            "margin": self.margin,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "created_at": self.created_at,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Position
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Position:
    """
    Currently open leveraged position.

    liquidation_price is fixed at open time.
    """
    position_id: PositionId
    side: OrderSide
    entry_price: float
    size: float
    leverage: float
    margin: float
    liquidation_price: float
    open_time: int
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    unrealized_pnl: float = 0.0
    unrealized_pnl_percent: float = 0.0

    def copy(self) -> "Position":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position_id": self.position_id,
            "side": self.side.value,
            "entry_price": self.entry_price,
            "size": self.size,
            "leverage": self.leverage,
            "margin": self.margin,
            "liquidation_price": self.liquidation_price,
            "open_time": self.open_time,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "unrealized_pnl": self.unrealized_pnl,
            "unrealized_pnl_percent": self.unrealized_pnl_percent,
        }


@dataclass(frozen=True)
class TradeRecord:
    """Closed position record kept in trade history."""
    position_id: PositionId
    side: OrderSide
    entry_price: float
    exit_price: float
    size: float
    leverage: float
    pnl: float
    pnl_percent: float
    open_time: int
    close_time: int
    close_reason: CloseReason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position_id": self.position_id,
            "side": self.side.value,
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "size": self.size,
            "leverage": self.leverage,
            "pnl": self.pnl,
            "pnl_percent": self.pnl_percent,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "close_reason": self.close_reason.value,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Account / results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Account:
    """
    Ledger account snapshot.

    Invariants:
    - equity = balance + sum(unrealized_pnl)
    - available_margin = equity - used_margin - order_margin
    """
    balance: float
    equity: float
    available_margin: float
    used_margin: float
    order_margin: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balance": self.balance,
            "equity": self.equity,
            "available_margin": self.available_margin,
            "used_margin": self.used_margin,
            "order_margin": self.order_margin,
        }


@dataclass
class PositionUpdate:
    """Result of marking positions to a new price."""
    closed: List[TradeRecord] = field(default_factory=list)
    liquidated: List[Position] = field(default_factory=list)
