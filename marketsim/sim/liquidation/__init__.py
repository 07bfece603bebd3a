"""
Liquidation price model.
"""

from .liquidation_model import LiquidationModel, LiquidationModelConfig

__all__ = ["LiquidationModel", "LiquidationModelConfig"]
