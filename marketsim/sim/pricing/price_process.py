"""
Stochastic price process.

Advances a single scalar price with an enhanced geometric Brownian motion:
- GARCH-like volatility memory (volatility clustering)
- Persistent micro-trend with decaying strength
- Momentum from the previous step's fractional change
- Order-flow imbalance random walk with decay
- Shock events: temporary volatility/drift spikes that ramp in and out
- Jumps: directional during shocks, small undirected micro-jumps otherwise

All randomness comes from the injected numpy Generator, so a seeded
generator reproduces the same path for the same sequence of dt values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..types import ShockEvent
from ...config import MarketConfig, constants as C
from ...utils.helpers import clamp
from ...utils.logger import get_logger


@dataclass
class PriceProcessConfig:
    """Tunable constants of the price process. Rates are per second."""
    price_floor_ratio: float = C.PRICE_FLOOR_RATIO

    # Micro-trend
    trend_reset_rate: float = 0.02
    trend_amplitude: float = 0.0001
    trend_decay: float = 0.1
    strength_decay: float = 0.05

    # Momentum / order flow
    momentum_smoothing: float = 0.95
    momentum_weight: float = 0.3
    order_flow_step: float = 0.2
    order_flow_decay: float = 0.98
    order_flow_weight: float = 0.00001

    # Shocks (duration in ms)
    shock_rate: float = 0.003
    shock_intensity: tuple = (1.5, 5.5)
    shock_duration_ms: tuple = (2000.0, 10000.0)
    shock_drift: float = 0.0001

    # GARCH-like memory
    garch_persistence: float = 0.92
    garch_weight: float = 0.6

    mean_reversion: float = 0.000005

    # Jumps
    shock_jump_rate: float = 0.15
    shock_jump_size: tuple = (0.0005, 0.0025)
    micro_jump_rate: float = 0.05
    micro_jump_size: float = 0.0003

    # Base volatility band and its slow re-targeting
    initial_volatility: tuple = (0.00015, 0.00045)
    initial_drift_span: float = 0.00004
    volatility_target: tuple = (0.0002, 0.0004)
    volatility_bounds: tuple = (0.0001, 0.004)
    volatility_adjust: float = 0.005

    @classmethod
    def from_market_config(cls, market: MarketConfig) -> "PriceProcessConfig":
        return cls(price_floor_ratio=market.price_floor_ratio)


class PriceProcess:
    """
    Single-asset stochastic price process.

    advance(dt) is the only mutator; it never raises and always returns a
    finite price at or above the floor.
    """

    def __init__(
        self,
        initial_price: float,
        rng: np.random.Generator,
        config: Optional[PriceProcessConfig] = None,
    ):
        """
        Initialize the process at the seed price.

        Args:
            initial_price: Seed price (> 0, finite)
            rng: Random generator (seed it for reproducible paths)
            config: Optional process constants

        Raises:
            ValueError: If initial_price is not a positive finite number
        """
        if not (math.isfinite(initial_price) and initial_price > 0):
            raise ValueError(
                f"initial_price must be a positive finite number, got {initial_price}\n"
                f"\n"
                f"Fix: resolve a seed price before building the market "
                f"(see marketsim.exchanges.resolve_seed_price)"
            )

        self._config = config or PriceProcessConfig()
        self._rng = rng
        self.logger = get_logger()

        cfg = self._config
        self._price = float(initial_price)
        self._initial_price = float(initial_price)
        self._floor = self._initial_price * cfg.price_floor_ratio

        self._volatility = float(rng.uniform(*cfg.initial_volatility))
        self._drift = float((rng.random() - 0.5) * cfg.initial_drift_span)
        self._vol_memory = 0.0

        self._micro_trend = 0.0
        self._trend_strength = 0.0
        self._momentum = 0.0
        self._last_change = 0.0
        self._order_flow = 0.0
        self._shock: Optional[ShockEvent] = None

    # ─────────────────────────────────────────────────────────────────────
    # Read-only state
    # ─────────────────────────────────────────────────────────────────────

    @property
    def price(self) -> float:
        return self._price

    @property
    def initial_price(self) -> float:
        return self._initial_price

    @property
    def floor(self) -> float:
        return self._floor

    @property
    def volatility(self) -> float:
        """Base volatility parameter (before shock/memory multipliers)."""
        return self._volatility

    @property
    def volatility_memory(self) -> float:
        return self._vol_memory

    @property
    def shock(self) -> Optional[ShockEvent]:
        """Copy of the active shock, if any."""
        if self._shock is None:
            return None
        return ShockEvent(**vars(self._shock))

    def is_shock_active(self) -> bool:
        return self._shock is not None

    # ─────────────────────────────────────────────────────────────────────
    # Step
    # ─────────────────────────────────────────────────────────────────────

    def advance(self, elapsed_seconds: float) -> float:
        """
        Advance the process by elapsed_seconds.

        Args:
            elapsed_seconds: Time step in seconds (negative/non-finite = 0)

        Returns:
            New price
        """
        dt = elapsed_seconds if math.isfinite(elapsed_seconds) and elapsed_seconds > 0 else 0.0
        cfg = self._config
        rng = self._rng

        self._evolve_micro_trend(dt)

        self._momentum = (
            self._momentum * cfg.momentum_smoothing
            + self._last_change * (1.0 - cfg.momentum_smoothing)
        )

        self._order_flow += (rng.random() - 0.5) * cfg.order_flow_step
        self._order_flow *= cfg.order_flow_decay

        self._maybe_start_shock(dt)
        vol_mult, shock_drift = self._advance_shock(dt)

        # GARCH-like clustering driven by a fresh uniform shock in [-1, 1)
        vol_shock = (rng.random() - 0.5) * 2.0
        self._vol_memory = (
            cfg.garch_persistence * self._vol_memory
            + (1.0 - cfg.garch_persistence) * vol_shock
        )
        effective_vol = self._volatility * vol_mult * (1.0 + abs(self._vol_memory) * cfg.garch_weight)

        mean_reversion = (1.0 - self._price / self._initial_price) * cfg.mean_reversion

        total_drift = (
            self._drift
            + mean_reversion
            + self._micro_trend * self._trend_strength
            + shock_drift
            + self._order_flow * cfg.order_flow_weight
        )

        # GBM step: dS = S * (mu * dt + sigma * dW), dW ~ N(0, dt)
        d_w = rng.normal(0.0, math.sqrt(dt))
        price_change = self._price * (total_drift * dt + effective_vol * d_w)
        price_change += self._momentum * self._price * cfg.momentum_weight

        jump = self._draw_jump(dt)

        new_price = max(self._floor, self._price + price_change + jump)
        if not math.isfinite(new_price):
            # Unreachable with bounded inputs; hold the last good price
            self.logger.anomaly("price", "Non-finite step discarded", dt=dt)
            new_price = self._price

        self._last_change = (new_price - self._price) / self._price
        self._price = new_price

        target = rng.uniform(*cfg.volatility_target)
        self._volatility = clamp(
            self._volatility * (1.0 - cfg.volatility_adjust) + target * cfg.volatility_adjust,
            *cfg.volatility_bounds,
        )

        return self._price

    def _evolve_micro_trend(self, dt: float) -> None:
        cfg = self._config
        if self._rng.random() < cfg.trend_reset_rate * dt:
            self._micro_trend = (self._rng.random() - 0.5) * cfg.trend_amplitude
            self._trend_strength = float(self._rng.random())
        self._micro_trend *= max(0.0, 1.0 - cfg.trend_decay * dt)
        self._trend_strength *= max(0.0, 1.0 - cfg.strength_decay * dt)

    def _maybe_start_shock(self, dt: float) -> None:
        cfg = self._config
        if self._shock is not None or self._rng.random() >= cfg.shock_rate * dt:
            return
        self._shock = ShockEvent(
            intensity=float(self._rng.uniform(*cfg.shock_intensity)),
            duration=float(self._rng.uniform(*cfg.shock_duration_ms)),
            direction=1 if self._rng.random() > 0.5 else -1,
        )
        self.logger.shock(
            "start",
            direction=f"{self._shock.direction:+d}",
            intensity=f"{self._shock.intensity:.2f}",
            duration=f"{self._shock.duration:.0f}ms",
        )

    def _advance_shock(self, dt: float) -> tuple:
        """Return (volatility multiplier, drift contribution) for this step."""
        if self._shock is None:
            return 1.0, 0.0

        shock = self._shock
        shock.elapsed += dt * 1000.0
        # sin(pi * progress) is 0 at both ends and peaks mid-shock
        envelope = math.sin(min(shock.progress, 1.0) * math.pi)
        vol_mult = 1.0 + shock.intensity * envelope
        shock_drift = shock.direction * self._config.shock_drift * envelope

        if shock.finished:
            self.logger.shock("end")
            self._shock = None

        return vol_mult, shock_drift

    def _draw_jump(self, dt: float) -> float:
        cfg = self._config
        rng = self._rng
        if self._shock is not None:
            if rng.random() < cfg.shock_jump_rate * dt:
                return self._price * rng.uniform(*cfg.shock_jump_size) * self._shock.direction
            return 0.0
        if rng.random() < cfg.micro_jump_rate * dt:
            return self._price * (rng.random() - 0.5) * cfg.micro_jump_size
        return 0.0
