"""
Price process tests.

Validates:
1. Seed validation and initial parameter bands
2. Every step is finite and at or above the floor
3. Zero/negative/non-finite steps leave a fresh process unchanged
4. Shocks start, carry a direction and end by themselves
5. Same seed, same path
"""

import math

import numpy as np
import pytest

from marketsim.sim.pricing import PriceProcess, PriceProcessConfig


# ─────────────────────────────────────────────────────────────────────────────
# Construction
# ─────────────────────────────────────────────────────────────────────────────

class TestPriceProcessInit:

    @pytest.mark.parametrize("seed", [0.0, -5.0, float("nan"), float("inf")])
    def test_rejects_invalid_seed(self, seed, rng):
        with pytest.raises(ValueError, match="positive finite"):
            PriceProcess(seed, rng)

    def test_floor_is_ratio_of_seed(self, rng):
        process = PriceProcess(97_000.0, rng)
        assert process.floor == pytest.approx(970.0)

    def test_initial_volatility_band(self):
        for seed in range(20):
            process = PriceProcess(100.0, np.random.default_rng(seed))
            assert 1.5e-4 <= process.volatility < 4.5e-4

    def test_starts_without_shock(self, rng):
        process = PriceProcess(100.0, rng)
        assert not process.is_shock_active()
        assert process.shock is None


# ─────────────────────────────────────────────────────────────────────────────
# Stepping
# ─────────────────────────────────────────────────────────────────────────────

class TestAdvance:

    def test_long_run_stays_finite_and_above_floor(self, rng):
        process = PriceProcess(97_000.0, rng)
        for _ in range(10_000):
            price = process.advance(0.1)
            assert math.isfinite(price)
            assert price >= process.floor
            assert 1e-4 <= process.volatility <= 4e-3

    def test_high_floor_is_respected(self, rng):
        process = PriceProcess(100.0, rng, PriceProcessConfig(price_floor_ratio=0.999))
        prices = [process.advance(0.5) for _ in range(2_000)]
        assert min(prices) >= 99.9 - 1e-9

    @pytest.mark.parametrize("dt", [0.0, -3.0, float("nan"), float("inf")])
    def test_degenerate_step_keeps_price(self, dt, rng):
        process = PriceProcess(50_000.0, rng)
        assert process.advance(dt) == 50_000.0

    def test_same_seed_same_path(self):
        a = PriceProcess(97_000.0, np.random.default_rng(7))
        b = PriceProcess(97_000.0, np.random.default_rng(7))
        path_a = [a.advance(0.1) for _ in range(500)]
        path_b = [b.advance(0.1) for _ in range(500)]
        assert path_a == path_b

    def test_different_seed_different_path(self):
        a = PriceProcess(97_000.0, np.random.default_rng(1))
        b = PriceProcess(97_000.0, np.random.default_rng(2))
        assert [a.advance(0.1) for _ in range(50)] != [b.advance(0.1) for _ in range(50)]


# ─────────────────────────────────────────────────────────────────────────────
# Shocks
# ─────────────────────────────────────────────────────────────────────────────

class TestShocks:

    def test_shock_parameters(self, rng):
        # Rate high enough that the first step always starts a shock
        process = PriceProcess(100.0, rng, PriceProcessConfig(shock_rate=1e6))
        process.advance(0.1)

        shock = process.shock
        assert process.is_shock_active()
        assert shock.direction in (1, -1)
        assert 1.5 <= shock.intensity < 5.5
        assert 2_000 <= shock.duration < 10_000
        assert shock.elapsed == pytest.approx(100.0)

    def test_shock_copy_is_detached(self, rng):
        process = PriceProcess(100.0, rng, PriceProcessConfig(shock_rate=1e6))
        process.advance(0.1)
        copy = process.shock
        copy.elapsed = 1e9
        assert process.shock.elapsed == pytest.approx(100.0)

    def test_shock_ends_when_elapsed_reaches_duration(self, rng):
        # A 20 s step exceeds the longest possible shock
        process = PriceProcess(100.0, rng, PriceProcessConfig(shock_rate=1e6))
        process.advance(20.0)
        assert not process.is_shock_active()

    def test_no_shocks_when_rate_is_zero(self, rng):
        process = PriceProcess(100.0, rng, PriceProcessConfig(shock_rate=0.0))
        for _ in range(1_000):
            process.advance(1.0)
            assert not process.is_shock_active()
