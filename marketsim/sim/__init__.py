"""
Simulated market core.

Public API:
- MarketEngine: price process + candle aggregation tick
- Ledger: leveraged position/order bookkeeping
- Candle, Order, Position, TradeRecord, Account: Core types

Architecture:
- market.py: Thin orchestrator over pricing/
- types.py: All shared types
- ledger.py: Account accounting with invariants
- pricing/: Stochastic price process and candle aggregation
- liquidation/: Fixed-buffer liquidation prices
- adapters/: Candle <-> DataFrame conversion
"""

from .types import (
    # Enums
    OrderSide,
    OrderType,
    CloseReason,
    # Core types
    Candle,
    ShockEvent,
    Order,
    OrderId,
    Position,
    PositionId,
    TradeRecord,
    # Results
    Account,
    PositionUpdate,
)
from .market import MarketEngine, make_rng
from .ledger import Ledger, LedgerConfig
from .pricing import PriceProcess, PriceProcessConfig, CandleAggregator, CandleConfig
from .liquidation import LiquidationModel, LiquidationModelConfig
from .adapters import candles_to_frame

__all__ = [
    # Main classes
    "MarketEngine",
    "make_rng",
    "Ledger",
    "LedgerConfig",
    "PriceProcess",
    "PriceProcessConfig",
    "CandleAggregator",
    "CandleConfig",
    "LiquidationModel",
    "LiquidationModelConfig",
    # Enums
    "OrderSide",
    "OrderType",
    "CloseReason",
    # Core types
    "Candle",
    "ShockEvent",
    "Order",
    "OrderId",
    "Position",
    "PositionId",
    "TradeRecord",
    # Results
    "Account",
    "PositionUpdate",
    # Adapters
    "candles_to_frame",
]
