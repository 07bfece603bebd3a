"""
Position/order ledger with invariants.

Margin model (all values in base-asset units):
- margin = size × price / leverage / price  (= size / leverage)
- used_margin = Σ margin of open positions
- order_margin = Σ margin reserved by resting limit orders
- equity = balance + Σ unrealized_pnl
- available_margin = equity − used_margin − order_margin

Invariants:
1. equity = balance + Σ unrealized_pnl
2. available_margin = equity − used_margin − order_margin
3. balance changes only when a position closes (realized PnL)

PnL is quoted in base units: (price diff × size × leverage) / current price.

Every operation either succeeds and recomputes the account, or returns
None/False without touching state. Nothing here raises on bad input.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .types import (
    Account,
    CloseReason,
    Order,
    OrderSide,
    Position,
    PositionUpdate,
    TradeRecord,
)
from .liquidation import LiquidationModel, LiquidationModelConfig
from ..config import AccountConfig, constants as C
from ..utils.datetime_utils import now_ms
from ..utils.helpers import is_finite
from ..utils.logger import get_logger


@dataclass
class LedgerConfig:
    """Configuration for ledger accounting."""
    initial_balance: float = C.INITIAL_BALANCE
    min_leverage: float = C.MIN_LEVERAGE
    max_leverage: float = C.MAX_LEVERAGE
    liquidation_buffer: float = C.LIQUIDATION_BUFFER
    history_size: int = C.TRADE_HISTORY_SIZE
    debug_check_invariants: bool = False  # Check invariants after every mutation

    @classmethod
    def from_account_config(cls, account: AccountConfig) -> "LedgerConfig":
        """Create LedgerConfig from the AccountConfig section."""
        return cls(
            initial_balance=account.initial_balance,
            max_leverage=account.max_leverage,
            liquidation_buffer=account.liquidation_buffer,
            history_size=account.history_size,
        )


class Ledger:
    """
    Order and position bookkeeping for one account.

    Owns positions, resting orders, trade history and the account balances.
    Getters return copies; state changes only through the public operations.
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize ledger with starting balance.

        Args:
            config: Optional ledger configuration
            clock: Millisecond clock used for open/close/created timestamps
        """
        self._config = config or LedgerConfig()
        self._clock = clock
        self._liquidation = LiquidationModel(
            LiquidationModelConfig(liquidation_buffer=self._config.liquidation_buffer)
        )
        self.logger = get_logger()

        self._positions: List[Position] = []
        self._orders: List[Order] = []
        self._history: List[TradeRecord] = []
        self._position_counter = 0
        self._order_counter = 0
        self._anomaly_count = 0

        # Core state
        self._balance = self._config.initial_balance

        # Derived (computed via invariants)
        self._equity = self._balance
        self._used_margin = 0.0
        self._order_margin = 0.0
        self._available_margin = self._balance

    # ─────────────────────────────────────────────────────────────────────
    # Snapshots
    # ─────────────────────────────────────────────────────────────────────

    def get_account(self) -> Account:
        """Get current account state."""
        return Account(
            balance=self._balance,
            equity=self._equity,
            available_margin=self._available_margin,
            used_margin=self._used_margin,
            order_margin=self._order_margin,
        )

    def get_positions(self) -> List[Position]:
        return [p.copy() for p in self._positions]

    def get_orders(self) -> List[Order]:
        return [o.copy() for o in self._orders]

    def get_history(self) -> List[TradeRecord]:
        """Closed trades, newest first."""
        return list(self._history)

    @property
    def anomaly_count(self) -> int:
        """Number of non-finite PnL/margin computations clamped so far."""
        return self._anomaly_count

    def total_unrealized_pnl(self) -> float:
        return sum(p.unrealized_pnl for p in self._positions)

    # ─────────────────────────────────────────────────────────────────────
    # Invariants
    # ─────────────────────────────────────────────────────────────────────

    def check_invariants(self) -> list[str]:
        """
        Check all ledger invariants.

        Returns:
            List of error messages (empty if all invariants hold)
        """
        errors = []

        expected_used = sum(p.margin for p in self._positions)
        if abs(self._used_margin - expected_used) > 1e-9:
            errors.append(
                f"Invariant violated: used_margin ({self._used_margin:.10f}) != "
                f"sum(position margin) ({expected_used:.10f})"
            )

        expected_equity = self._balance + self.total_unrealized_pnl()
        if abs(self._equity - expected_equity) > 1e-9:
            errors.append(
                f"Invariant violated: equity ({self._equity:.10f}) != "
                f"balance ({self._balance:.10f}) + unrealized ({self.total_unrealized_pnl():.10f})"
            )

        expected_available = self._equity - self._used_margin - self._order_margin
        if abs(self._available_margin - expected_available) > 1e-9:
            errors.append(
                f"Invariant violated: available ({self._available_margin:.10f}) != "
                f"equity - used - reserved ({expected_available:.10f})"
            )

        return errors

    def _recompute_derived(self) -> None:
        """Recompute derived values from positions, orders and balance."""
        self._used_margin = sum(p.margin for p in self._positions)
        self._order_margin = sum(o.margin for o in self._orders)
        self._equity = self._balance + self.total_unrealized_pnl()
        self._available_margin = self._equity - self._used_margin - self._order_margin

        # Debug mode: check invariants after every mutation
        if self._config.debug_check_invariants:
            errors = self.check_invariants()
            if errors:
                raise AssertionError(f"Ledger invariant violation: {errors}")

    # ─────────────────────────────────────────────────────────────────────
    # Validation / math
    # ─────────────────────────────────────────────────────────────────────

    def _required_margin(self, size: float, leverage: float, price: float) -> Optional[float]:
        """
        Validate order parameters and compute the margin they need.

        Returns:
            Margin in base units, or None if the parameters are invalid
        """
        if not is_finite(size, leverage, price):
            self.logger.risk("BLOCKED", "Non-finite order parameters",
                             size=size, leverage=leverage, price=price)
            return None
        if size <= 0 or price <= 0:
            self.logger.risk("BLOCKED", "Size and price must be positive", size=size, price=price)
            return None
        if leverage < self._config.min_leverage or leverage > self._config.max_leverage:
            self.logger.risk(
                "BLOCKED", "Leverage out of range", leverage=leverage,
                allowed=f"{self._config.min_leverage:g}-{self._config.max_leverage:g}",
            )
            return None

        notional = size * price
        margin = notional / leverage / price
        if not math.isfinite(margin):
            self._record_anomaly("margin", size=size, leverage=leverage, price=price)
            return None
        return margin

    def _parse_side(self, side) -> Optional[OrderSide]:
        try:
            return OrderSide(side)
        except ValueError:
            self.logger.risk("BLOCKED", "Unknown side", side=side)
            return None

    def _can_afford(self, margin: float) -> bool:
        if margin > self._available_margin:
            self.logger.risk(
                "BLOCKED", "Insufficient margin",
                required=f"{margin:.6f}", available=f"{self._available_margin:.6f}",
            )
            return False
        return True

    def calculate_pnl(self, position: Position, price: float) -> float:
        """
        PnL in base units at the given price.

        Non-positive prices and non-finite results are clamped to zero
        and counted as anomalies.
        """
        if price <= 0 or position.entry_price <= 0:
            self._record_anomaly("pnl_price", price=price, entry=position.entry_price)
            return 0.0

        price_diff = (price - position.entry_price) * position.side.sign
        pnl = (price_diff * position.size * position.leverage) / price

        if not math.isfinite(pnl):
            self._record_anomaly("pnl", position=position.position_id, price=price)
            return 0.0
        return pnl

    def _record_anomaly(self, kind: str, **context) -> None:
        self._anomaly_count += 1
        self.logger.anomaly(kind, "Non-finite or invalid value clamped", **context)

    # ─────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────

    def open_market_position(
        self,
        side: OrderSide,
        size: float,
        leverage: float,
        current_price: float,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
    ) -> Optional[Position]:
        """
        Open a position at the current price.

        Args:
            side: Position side
            size: Size in base units (> 0)
            leverage: Leverage in [1, 100]
            current_price: Entry price
            stop_loss: Optional stop-loss price
            take_profit: Optional take-profit price

        Returns:
            Snapshot of the new position, or None if rejected
        """
        side = self._parse_side(side)
        if side is None:
            return None
        margin = self._required_margin(size, leverage, current_price)
        if margin is None or not self._can_afford(margin):
            return None

        liquidation_price = self._liquidation.calculate_liquidation_price(
            side, current_price, leverage, stop_loss
        )

        self._position_counter += 1
        position = Position(
            position_id=f"pos_{self._position_counter}",
            side=side,
            entry_price=current_price,
            size=size,
            leverage=leverage,
            margin=margin,
            liquidation_price=liquidation_price,
            open_time=self._clock(),
            stop_loss=stop_loss,
            take_profit=take_profit,
        )

        self._positions.append(position)
        self._recompute_derived()

        self.logger.trade(
            "POSITION_OPENED", side.value, size, current_price,
            id=position.position_id, leverage=f"{leverage:g}x",
            liq=f"{liquidation_price:.2f}",
        )
        return position.copy()

    def place_limit_order(
        self,
        side: OrderSide,
        trigger_price: float,
        size: float,
        leverage: float,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
    ) -> Optional[Order]:
        """
        Rest a limit order and reserve its margin.

        Returns:
            Snapshot of the order, or None if rejected
        """
        side = self._parse_side(side)
        if side is None:
            return None
        margin = self._required_margin(size, leverage, trigger_price)
        if margin is None or not self._can_afford(margin):
            return None

        self._order_counter += 1
        order = Order(
            order_id=f"ord_{self._order_counter}",
            side=side,
            trigger_price=trigger_price,
            size=size,
            leverage=leverage,
            margin=margin,
            created_at=self._clock(),
            stop_loss=stop_loss,
            take_profit=take_profit,
        )

        self._orders.append(order)
        self._recompute_derived()

        self.logger.trade("ORDER_PLACED", side.value, size, trigger_price, id=order.order_id)
        return order.copy()

    def cancel_order(self, order_id: str) -> bool:
        """Remove a resting order and release its margin."""
        for index, order in enumerate(self._orders):
            if order.order_id == order_id:
                del self._orders[index]
                self._recompute_derived()
                self.logger.trade("ORDER_CANCELLED", order.side.value, order.size,
                                  order.trigger_price, id=order_id)
                return True
        return False

    def check_limit_orders(self, current_price: float) -> List[Position]:
        """
        Fill every order whose trigger has been crossed.

        Triggered orders leave the book even if the resulting position is
        rejected (e.g. equity fell since the order was placed).

        Returns:
            Snapshots of positions opened by fills
        """
        triggered = [o for o in self._orders if o.is_triggered(current_price)]
        if not triggered:
            return []

        # Release reservations first so the fills are checked against free margin
        self._orders = [o for o in self._orders if not o.is_triggered(current_price)]
        self._recompute_derived()

        filled: List[Position] = []
        for order in triggered:
            position = self.open_market_position(
                order.side,
                order.size,
                order.leverage,
                current_price,
                order.stop_loss,
                order.take_profit,
            )
            if position is not None:
                filled.append(position)
                self.logger.trade("ORDER_FILLED", order.side.value, order.size, current_price,
                                  id=order.order_id, position=position.position_id)
            else:
                self.logger.risk("BLOCKED", "Triggered order dropped", id=order.order_id)
        return filled

    def close_position(
        self,
        position_id: str,
        current_price: float,
        reason: CloseReason = CloseReason.MARKET,
    ) -> Optional[TradeRecord]:
        """
        Close a position and realize its PnL into the balance.

        Args:
            position_id: Position to close
            current_price: Exit price
            reason: Close reason recorded in history

        Returns:
            TradeRecord, or None if no such position exists or the reason is unknown
        """
        try:
            reason = CloseReason(reason)
        except ValueError:
            self.logger.risk("BLOCKED", "Unknown close reason", id=position_id, reason=reason)
            return None

        index = self._find_position(position_id)
        if index is None:
            return None

        position = self._positions[index]
        pnl = self.calculate_pnl(position, current_price)
        pnl_percent = (pnl / position.margin) * 100 if position.margin > 0 else 0.0

        trade = TradeRecord(
            position_id=position.position_id,
            side=position.side,
            entry_price=position.entry_price,
            exit_price=current_price,
            size=position.size,
            leverage=position.leverage,
            pnl=pnl,
            pnl_percent=pnl_percent,
            open_time=position.open_time,
            close_time=self._clock(),
            close_reason=reason,
        )

        self._balance += pnl
        del self._positions[index]
        self._history.insert(0, trade)
        del self._history[self._config.history_size:]

        self._recompute_derived()

        action = "LIQUIDATED" if trade.close_reason == CloseReason.LIQUIDATION else "POSITION_CLOSED"
        self.logger.trade(action, position.side.value, position.size, current_price, pnl,
                          id=position_id, reason=trade.close_reason.value)
        return trade

    def update_positions(self, current_price: float) -> PositionUpdate:
        """
        Mark every open position to the current price and apply exits.

        Order per position: refresh PnL, then liquidation, stop-loss and
        take-profit, at most one close per position.

        Returns:
            PositionUpdate with closed trades and liquidated positions
        """
        result = PositionUpdate()

        for position in list(self._positions):
            pnl = self.calculate_pnl(position, current_price)
            position.unrealized_pnl = pnl
            position.unrealized_pnl_percent = (pnl / position.margin) * 100 if position.margin > 0 else 0.0

            exit_price, reason = self._exit_for(position, current_price)
            if reason is None:
                continue

            if reason == CloseReason.LIQUIDATION:
                result.liquidated.append(position.copy())
            trade = self.close_position(position.position_id, exit_price, reason)
            if trade is not None:
                result.closed.append(trade)

        self._recompute_derived()
        return result

    def _exit_for(self, position: Position, price: float) -> tuple:
        """Return (exit_price, reason) for the first exit condition hit, else (None, None)."""
        if self._liquidation.is_liquidated(position, price):
            return position.liquidation_price, CloseReason.LIQUIDATION

        is_long = position.side == OrderSide.LONG

        if position.stop_loss:
            sl_hit = price <= position.stop_loss if is_long else price >= position.stop_loss
            if sl_hit:
                return position.stop_loss, CloseReason.STOP_LOSS

        if position.take_profit:
            tp_hit = price >= position.take_profit if is_long else price <= position.take_profit
            if tp_hit:
                return position.take_profit, CloseReason.TAKE_PROFIT

        return None, None

    def _find_position(self, position_id: str) -> Optional[int]:
        for index, position in enumerate(self._positions):
            if position.position_id == position_id:
                return index
        return None

    def to_dict(self) -> Dict[str, object]:
        """Serializable view of the whole book."""
        return {
            "account": self.get_account().to_dict(),
            "positions": [p.to_dict() for p in self._positions],
            "orders": [o.to_dict() for o in self._orders],
            "history": [t.to_dict() for t in self._history],
        }
