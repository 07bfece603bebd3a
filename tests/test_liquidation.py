"""
Liquidation model tests: fixed-buffer liquidation prices.
"""

import pytest

from marketsim.sim import LiquidationModel, LiquidationModelConfig, OrderSide, Position


def _position(side: OrderSide, liquidation_price: float) -> Position:
    return Position(
        position_id="pos_1",
        side=side,
        entry_price=100.0,
        size=1.0,
        leverage=10,
        margin=0.1,
        liquidation_price=liquidation_price,
        open_time=0,
    )


class TestLiquidationPrice:

    @pytest.mark.parametrize("leverage,expected", [
        (1, 0.5),
        (10, 90.05),
        (100, 99.005),
    ])
    def test_long(self, leverage, expected):
        model = LiquidationModel()
        assert model.calculate_liquidation_price(OrderSide.LONG, 100.0, leverage) == pytest.approx(expected)

    def test_short_scenario(self):
        model = LiquidationModel()
        assert model.calculate_liquidation_price(OrderSide.SHORT, 50_000.0, 10) == pytest.approx(54_975.0)

    def test_custom_buffer(self):
        model = LiquidationModel(LiquidationModelConfig(liquidation_buffer=0.5))
        assert model.calculate_liquidation_price(OrderSide.LONG, 100.0, 5) == pytest.approx(90.0)

    def test_stop_replaces_only_when_tighter(self):
        model = LiquidationModel()
        assert model.calculate_liquidation_price(OrderSide.LONG, 100.0, 10, stop_loss=95.0) == 95.0
        assert model.calculate_liquidation_price(OrderSide.LONG, 100.0, 10, stop_loss=80.0) == pytest.approx(90.05)
        assert model.calculate_liquidation_price(OrderSide.SHORT, 100.0, 10, stop_loss=105.0) == 105.0
        assert model.calculate_liquidation_price(OrderSide.SHORT, 100.0, 10, stop_loss=120.0) == pytest.approx(109.95)


class TestIsLiquidated:

    def test_long_crossing(self):
        model = LiquidationModel()
        position = _position(OrderSide.LONG, 90.0)
        assert not model.is_liquidated(position, 90.01)
        assert model.is_liquidated(position, 90.0)
        assert model.is_liquidated(position, 85.0)

    def test_short_crossing(self):
        model = LiquidationModel()
        position = _position(OrderSide.SHORT, 110.0)
        assert not model.is_liquidated(position, 109.99)
        assert model.is_liquidated(position, 110.0)
        assert model.is_liquidated(position, 120.0)
