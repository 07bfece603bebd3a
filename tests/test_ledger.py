"""
Ledger tests.

Validates:
1. Margin = size / leverage, reserved from available margin
2. Rejections return None and leave the account untouched
3. Unrealized PnL in base units: (diff × size × leverage) / price
4. Liquidation, stop-loss replacement and take-profit exits
5. Limit order reservation, fills and cancellation
6. Trade history order and cap

Per TEST COVERAGE RULE: Tests both LONG and SHORT positions.
"""

import numpy as np
import pytest

from marketsim.sim import CloseReason, Ledger, LedgerConfig, OrderSide


# ─────────────────────────────────────────────────────────────────────────────
# Test fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def ledger(clock) -> Ledger:
    """Ledger with 10 BTC and invariant checks after every mutation."""
    return Ledger(LedgerConfig(debug_check_invariants=True), clock=clock)


def _assert_account_consistent(ledger: Ledger):
    account = ledger.get_account()
    unrealized = sum(p.unrealized_pnl for p in ledger.get_positions())
    assert account.equity == pytest.approx(account.balance + unrealized)
    assert account.available_margin == pytest.approx(
        account.equity - account.used_margin - account.order_margin
    )
    assert ledger.check_invariants() == []


# ─────────────────────────────────────────────────────────────────────────────
# Opening positions
# ─────────────────────────────────────────────────────────────────────────────

class TestOpenMarketPosition:

    def test_long_margin_and_account(self, ledger, clock):
        position = ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0)

        assert position.position_id == "pos_1"
        assert position.margin == pytest.approx(0.005)
        assert position.liquidation_price == pytest.approx(95_025.0)
        assert position.open_time == clock.now

        account = ledger.get_account()
        assert account.balance == 10.0
        assert account.used_margin == pytest.approx(0.005)
        assert account.available_margin == pytest.approx(9.995)
        _assert_account_consistent(ledger)

    def test_string_side_accepted(self, ledger):
        position = ledger.open_market_position("short", 0.1, 10, 50_000.0)
        assert position.side == OrderSide.SHORT
        assert position.liquidation_price == pytest.approx(54_975.0)

    @pytest.mark.parametrize("side,size,leverage,price", [
        (OrderSide.LONG, 0.0, 10, 100_000.0),
        (OrderSide.LONG, -1.0, 10, 100_000.0),
        (OrderSide.LONG, 0.1, 0.5, 100_000.0),
        (OrderSide.LONG, 0.1, 101, 100_000.0),
        (OrderSide.SHORT, 0.1, 10, 0.0),
        (OrderSide.SHORT, float("nan"), 10, 100_000.0),
        (OrderSide.SHORT, 0.1, float("inf"), 100_000.0),
        (OrderSide.LONG, 300.0, 1, 100_000.0),  # margin 300 > 10 available
        ("sideways", 0.1, 10, 100_000.0),
    ])
    def test_rejections_leave_state_untouched(self, ledger, side, size, leverage, price):
        before = ledger.get_account()
        assert ledger.open_market_position(side, size, leverage, price) is None
        assert ledger.get_positions() == []
        assert ledger.get_account() == before

    def test_margin_exactly_available_is_accepted(self, ledger):
        assert ledger.open_market_position(OrderSide.LONG, 10.0, 1, 100_000.0) is not None
        assert ledger.get_account().available_margin == pytest.approx(0.0)
        assert ledger.open_market_position(OrderSide.LONG, 0.1, 1, 100_000.0) is None

    def test_returns_copy(self, ledger):
        position = ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0)
        position.margin = 99.0
        assert ledger.get_positions()[0].margin == pytest.approx(0.005)


# ─────────────────────────────────────────────────────────────────────────────
# Marking to market
# ─────────────────────────────────────────────────────────────────────────────

class TestUnrealizedPnl:

    def test_long_pnl_scenario(self, ledger):
        """Long 0.1 @ 20x from 100000, price 102000: (2000 × 0.1 × 20) / 102000."""
        ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0)
        update = ledger.update_positions(102_000.0)

        assert update.closed == []
        position = ledger.get_positions()[0]
        expected = (2_000.0 * 0.1 * 20) / 102_000.0
        assert position.unrealized_pnl == pytest.approx(expected)
        assert position.unrealized_pnl_percent == pytest.approx(expected / 0.005 * 100)

        account = ledger.get_account()
        assert account.balance == 10.0
        assert account.equity == pytest.approx(10.0 + expected)
        _assert_account_consistent(ledger)

    def test_short_gains_when_price_falls(self, ledger):
        ledger.open_market_position(OrderSide.SHORT, 0.2, 5, 60_000.0)
        ledger.update_positions(57_000.0)
        position = ledger.get_positions()[0]
        assert position.unrealized_pnl == pytest.approx((3_000.0 * 0.2 * 5) / 57_000.0)

    def test_balance_unchanged_until_close(self, ledger):
        ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0)
        for price in (100_500.0, 99_800.0, 101_000.0):
            ledger.update_positions(price)
            assert ledger.get_account().balance == 10.0

    def test_nonpositive_price_counts_anomaly(self, ledger):
        ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0)
        position = ledger.get_positions()[0]
        assert ledger.calculate_pnl(position, 0.0) == 0.0
        assert ledger.calculate_pnl(position, -5.0) == 0.0
        assert ledger.anomaly_count == 2


# ─────────────────────────────────────────────────────────────────────────────
# Exits
# ─────────────────────────────────────────────────────────────────────────────

class TestLiquidation:

    def test_short_liquidated_at_liquidation_price(self, ledger):
        position = ledger.open_market_position(OrderSide.SHORT, 0.1, 10, 50_000.0)
        assert position.liquidation_price == pytest.approx(54_975.0)

        update = ledger.update_positions(55_000.0)

        assert len(update.closed) == 1
        assert len(update.liquidated) == 1
        trade = update.closed[0]
        assert trade.close_reason == CloseReason.LIQUIDATION
        assert trade.exit_price == position.liquidation_price
        expected_pnl = ((50_000.0 - position.liquidation_price) * 0.1 * 10) / position.liquidation_price
        assert trade.pnl == pytest.approx(expected_pnl)
        assert ledger.get_positions() == []
        assert ledger.get_account().balance == pytest.approx(10.0 + expected_pnl)
        _assert_account_consistent(ledger)

    def test_exact_liquidation_price_triggers(self, ledger):
        position = ledger.open_market_position(OrderSide.LONG, 0.1, 50, 100_000.0)
        update = ledger.update_positions(position.liquidation_price)
        assert [t.close_reason for t in update.closed] == [CloseReason.LIQUIDATION]

    def test_not_liquidated_before_level(self, ledger):
        ledger.open_market_position(OrderSide.SHORT, 0.1, 10, 50_000.0)
        update = ledger.update_positions(54_000.0)
        assert update.closed == []
        assert len(ledger.get_positions()) == 1

    def test_looser_stop_does_not_replace_liquidation(self, ledger):
        long_pos = ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0, stop_loss=90_000.0)
        short_pos = ledger.open_market_position(OrderSide.SHORT, 0.1, 20, 100_000.0, stop_loss=110_000.0)
        assert long_pos.liquidation_price == pytest.approx(95_025.0)
        assert short_pos.liquidation_price == pytest.approx(104_975.0)

    def test_tighter_stop_becomes_liquidation_level(self, ledger):
        position = ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0, stop_loss=99_000.0)
        assert position.liquidation_price == 99_000.0

        update = ledger.update_positions(98_900.0)
        trade = update.closed[0]
        assert trade.exit_price == 99_000.0
        assert trade.close_reason == CloseReason.LIQUIDATION


class TestTakeProfit:

    def test_long_take_profit(self, ledger):
        ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0, take_profit=101_000.0)
        assert ledger.update_positions(100_900.0).closed == []

        trade = ledger.update_positions(101_500.0).closed[0]
        assert trade.close_reason == CloseReason.TAKE_PROFIT
        assert trade.exit_price == 101_000.0
        assert trade.pnl == pytest.approx((1_000.0 * 0.1 * 20) / 101_000.0)

    def test_short_take_profit(self, ledger):
        ledger.open_market_position(OrderSide.SHORT, 0.1, 10, 50_000.0, take_profit=49_000.0)
        trade = ledger.update_positions(48_900.0).closed[0]
        assert trade.close_reason == CloseReason.TAKE_PROFIT
        assert trade.exit_price == 49_000.0
        assert trade.pnl > 0


# ─────────────────────────────────────────────────────────────────────────────
# Limit orders
# ─────────────────────────────────────────────────────────────────────────────

class TestLimitOrders:

    def test_place_reserves_margin(self, ledger):
        order = ledger.place_limit_order(OrderSide.LONG, 99_000.0, 0.1, 20)

        assert order.order_id == "ord_1"
        assert order.margin == pytest.approx(0.005)
        account = ledger.get_account()
        assert account.order_margin == pytest.approx(0.005)
        assert account.available_margin == pytest.approx(9.995)
        assert account.balance == 10.0
        _assert_account_consistent(ledger)

    def test_place_then_cancel_round_trip_is_exact(self, ledger):
        ledger.open_market_position(OrderSide.SHORT, 0.3, 7, 100_000.0)
        ledger.update_positions(100_250.0)
        before = ledger.get_account()

        order = ledger.place_limit_order(OrderSide.SHORT, 101_000.0, 0.37, 3)
        assert ledger.cancel_order(order.order_id) is True

        assert ledger.get_account() == before
        assert ledger.get_orders() == []

    def test_cancel_unknown(self, ledger):
        assert ledger.cancel_order("ord_404") is False

    def test_long_fills_at_or_below_trigger(self, ledger):
        ledger.place_limit_order(OrderSide.LONG, 99_000.0, 0.1, 20, stop_loss=98_000.0, take_profit=101_000.0)

        assert ledger.check_limit_orders(99_500.0) == []
        assert len(ledger.get_orders()) == 1

        filled = ledger.check_limit_orders(98_900.0)
        assert len(filled) == 1
        position = filled[0]
        assert position.entry_price == 98_900.0
        assert position.stop_loss == 98_000.0
        assert position.take_profit == 101_000.0
        assert ledger.get_orders() == []

        account = ledger.get_account()
        assert account.order_margin == 0.0
        assert account.used_margin == pytest.approx(0.005)
        _assert_account_consistent(ledger)

    def test_short_fills_at_or_above_trigger(self, ledger):
        ledger.place_limit_order(OrderSide.SHORT, 101_000.0, 0.1, 20)
        assert ledger.check_limit_orders(100_999.0) == []
        filled = ledger.check_limit_orders(101_000.0)
        assert [p.side for p in filled] == [OrderSide.SHORT]

    def test_rejections(self, ledger):
        assert ledger.place_limit_order(OrderSide.LONG, 100_000.0, 300.0, 1) is None
        assert ledger.place_limit_order(OrderSide.LONG, 0.0, 0.1, 10) is None
        assert ledger.place_limit_order(OrderSide.LONG, 100_000.0, 0.1, 150) is None
        assert ledger.get_orders() == []
        assert ledger.get_account().order_margin == 0.0

    def test_triggered_order_dropped_when_unaffordable(self, ledger):
        ledger.place_limit_order(OrderSide.LONG, 99_000.0, 5.0, 1)
        ledger.open_market_position(OrderSide.LONG, 4.9, 1, 100_000.0)

        # Loss on the open long shrinks equity below what the order needs
        ledger.update_positions(97_000.0)
        assert ledger.check_limit_orders(97_000.0) == []
        assert ledger.get_orders() == []
        assert len(ledger.get_positions()) == 1
        _assert_account_consistent(ledger)


# ─────────────────────────────────────────────────────────────────────────────
# Closing and history
# ─────────────────────────────────────────────────────────────────────────────

class TestHistory:

    def test_unknown_close_reason_rejected(self, ledger):
        position = ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0)

        assert ledger.close_position(position.position_id, 100_000.0, "bogus") is None
        assert [p.position_id for p in ledger.get_positions()] == [position.position_id]
        assert ledger.get_history() == []

    def test_close_reason_accepts_string_value(self, ledger):
        position = ledger.open_market_position(OrderSide.SHORT, 0.1, 10, 100_000.0)
        trade = ledger.close_position(position.position_id, 100_000.0, "tp")
        assert trade.close_reason == CloseReason.TAKE_PROFIT

    def test_close_realizes_pnl(self, ledger, clock):
        position = ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0)
        clock.advance(5_000)
        trade = ledger.close_position(position.position_id, 102_000.0)

        expected = (2_000.0 * 0.1 * 20) / 102_000.0
        assert trade.close_reason == CloseReason.MARKET
        assert trade.pnl == pytest.approx(expected)
        assert trade.pnl_percent == pytest.approx(expected / 0.005 * 100)
        assert trade.close_time - trade.open_time == 5_000

        account = ledger.get_account()
        assert account.balance == pytest.approx(10.0 + expected)
        assert account.used_margin == 0.0
        assert account.available_margin == pytest.approx(account.equity)

    def test_close_unknown(self, ledger):
        assert ledger.close_position("pos_404", 100_000.0) is None

    def test_newest_first_and_capped(self, clock):
        ledger = Ledger(LedgerConfig(history_size=3), clock=clock)
        for _ in range(5):
            position = ledger.open_market_position(OrderSide.LONG, 0.01, 2, 100_000.0)
            ledger.close_position(position.position_id, 100_100.0)

        history = ledger.get_history()
        assert [t.position_id for t in history] == ["pos_5", "pos_4", "pos_3"]

    def test_to_dict(self, ledger):
        ledger.open_market_position(OrderSide.LONG, 0.1, 20, 100_000.0)
        ledger.place_limit_order(OrderSide.SHORT, 105_000.0, 0.1, 20)
        book = ledger.to_dict()
        assert book["positions"][0]["side"] == "long"
        assert book["orders"][0]["order_type"] == "limit"
        assert book["history"] == []


# ─────────────────────────────────────────────────────────────────────────────
# Invariants under a random workload
# ─────────────────────────────────────────────────────────────────────────────

class TestInvariants:

    def test_random_workload_keeps_invariants(self, ledger):
        rng = np.random.default_rng(123)
        price = 100_000.0
        for _ in range(400):
            price *= 1.0 + rng.normal(0.0, 0.004)
            action = rng.integers(0, 5)
            side = OrderSide.LONG if rng.random() < 0.5 else OrderSide.SHORT
            if action == 0:
                ledger.open_market_position(side, float(rng.uniform(0.01, 0.5)),
                                            float(rng.integers(1, 101)), price)
            elif action == 1:
                offset = float(rng.uniform(-0.01, 0.01))
                ledger.place_limit_order(side, price * (1 + offset),
                                         float(rng.uniform(0.01, 0.5)), float(rng.integers(1, 51)))
            elif action == 2 and ledger.get_orders():
                ledger.cancel_order(ledger.get_orders()[0].order_id)
            elif action == 3 and ledger.get_positions():
                ledger.close_position(ledger.get_positions()[0].position_id, price)

            ledger.check_limit_orders(price)
            ledger.update_positions(price)
            _assert_account_consistent(ledger)
            assert len(ledger.get_history()) <= 100
