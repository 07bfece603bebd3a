"""
Consolidated per-tick market snapshot.

Everything a display needs to render one frame: price, display-timeframe
candles with EMA/RSI overlays, account state and detected patterns. All
members are copies; holding a snapshot never pins engine state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..indicators import ema, rsi
from ..sim.types import Account, Candle, Order, Position, TradeRecord
from ..structures.types import Pattern

EMA_PERIODS = (9, 21, 50)
TREND_LOOKBACK = 20
TREND_THRESHOLD_PCT = 0.5


def trend_label(candles: List[Candle]) -> str:
    """bullish / bearish / neutral from the close change over the last 20 candles."""
    if len(candles) < TREND_LOOKBACK:
        return "neutral"
    first = candles[-TREND_LOOKBACK].close
    last = candles[-1].close
    if first <= 0:
        return "neutral"
    change_pct = (last - first) / first * 100
    if change_pct > TREND_THRESHOLD_PCT:
        return "bullish"
    if change_pct < -TREND_THRESHOLD_PCT:
        return "bearish"
    return "neutral"


@dataclass
class MarketSnapshot:
    """One published frame of the simulation."""
    tick: int
    timestamp: int
    price: float
    initial_price: float
    timeframe: str
    candles: List[Candle]
    ema: Dict[int, float]
    rsi: float
    shock_active: bool
    volatility: float
    trend: str
    account: Account
    positions: List[Position] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)
    history: List[TradeRecord] = field(default_factory=list)
    patterns: List[Pattern] = field(default_factory=list)

    @property
    def change(self) -> float:
        return self.price - self.initial_price

    @property
    def change_percent(self) -> float:
        if self.initial_price <= 0:
            return 0.0
        return self.change / self.initial_price * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "timestamp": self.timestamp,
            "price": self.price,
            "initial_price": self.initial_price,
            "change": self.change,
            "change_percent": self.change_percent,
            "timeframe": self.timeframe,
            "candles": [c.to_dict() for c in self.candles],
            "ema": {str(k): v for k, v in self.ema.items()},
            "rsi": self.rsi,
            "shock_active": self.shock_active,
            "volatility": self.volatility,
            "trend": self.trend,
            "account": self.account.to_dict(),
            "positions": [p.to_dict() for p in self.positions],
            "orders": [o.to_dict() for o in self.orders],
            "history": [t.to_dict() for t in self.history],
            "patterns": [p.to_dict() for p in self.patterns],
        }


def build_snapshot(
    *,
    tick: int,
    timestamp: int,
    price: float,
    initial_price: float,
    timeframe: str,
    candles: List[Candle],
    shock_active: bool,
    volatility: float,
    account: Account,
    positions: List[Position],
    orders: List[Order],
    history: List[TradeRecord],
    patterns: List[Pattern],
) -> MarketSnapshot:
    """
    Assemble a MarketSnapshot and compute its indicator overlays.

    Callers pass copies (engine/ledger/scanner getters already return them).
    """
    closes = [c.close for c in candles]
    overlays = {period: (ema(closes, period)[-1] if closes else price) for period in EMA_PERIODS}

    return MarketSnapshot(
        tick=tick,
        timestamp=timestamp,
        price=price,
        initial_price=initial_price,
        timeframe=timeframe,
        candles=candles,
        ema=overlays,
        rsi=rsi(closes),
        shock_active=shock_active,
        volatility=volatility,
        trend=trend_label(candles),
        account=account,
        positions=positions,
        orders=orders,
        history=history,
        patterns=patterns,
    )
