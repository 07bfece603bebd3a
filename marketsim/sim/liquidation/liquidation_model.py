"""
Liquidation model for fixed-buffer liquidation prices.

Liquidation price is computed once at open and never moves:
- Long:  entry × (1 − buffer / leverage)
- Short: entry × (1 + buffer / leverage)

buffer defaults to 0.995, so a position is closed just before its margin is
fully consumed. A stop-loss tighter than that price (closer to entry) takes
its place, so the stop becomes the forced-closure level.

No partial liquidation and no liquidation fee in this implementation.
"""

from dataclasses import dataclass
from typing import Optional

from ..types import OrderSide, Position
from ...config import constants as C


@dataclass
class LiquidationModelConfig:
    """Configuration for liquidation model."""
    liquidation_buffer: float = C.LIQUIDATION_BUFFER


class LiquidationModel:
    """
    Computes liquidation prices and checks liquidation crossings.

    Liquidation is triggered when the mark price reaches the position's
    liquidation price:
    - Long: price <= liquidation_price
    - Short: price >= liquidation_price
    """

    def __init__(self, config: Optional[LiquidationModelConfig] = None):
        self._config = config or LiquidationModelConfig()

    def calculate_liquidation_price(
        self,
        side: OrderSide,
        entry_price: float,
        leverage: float,
        stop_loss: Optional[float] = None,
    ) -> float:
        """
        Calculate the liquidation price for a new position.

        Args:
            side: Position side
            entry_price: Entry price
            leverage: Position leverage (>= 1)
            stop_loss: Optional stop-loss price

        Returns:
            Liquidation price (the stop-loss when it is tighter)
        """
        move = self._config.liquidation_buffer / leverage

        if side == OrderSide.LONG:
            liq_price = entry_price * (1.0 - move)
            if stop_loss and stop_loss > liq_price:
                liq_price = stop_loss
        else:
            liq_price = entry_price * (1.0 + move)
            if stop_loss and stop_loss < liq_price:
                liq_price = stop_loss

        return liq_price

    def is_liquidated(self, position: Position, price: float) -> bool:
        """
        Check if price has crossed the position's liquidation price.

        Args:
            position: Open position
            price: Current mark price

        Returns:
            True if the position must be force-closed
        """
        if position.side == OrderSide.LONG:
            return price <= position.liquidation_price
        return price >= position.liquidation_price
