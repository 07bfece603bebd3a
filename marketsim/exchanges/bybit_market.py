"""
Bybit public market data for the simulator seed price.

Contains: fetch_seed_price, resolve_seed_price

The simulator touches the network exactly once, before the core is built:
the last traded price of one symbol seeds the price process. Any failure
falls back to a random price so the simulation always starts.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np
from pybit.exceptions import FailedRequestError, InvalidRequestError
from pybit.unified_trading import HTTP
from requests.exceptions import RequestException

from ..config import SeedConfig, constants as C
from ..utils.helpers import safe_float
from ..utils.logger import get_logger


def _extract_result(response: Any) -> dict:
    """Extract result from a pybit response tuple or dict."""
    if isinstance(response, tuple):
        response = response[0]
    if isinstance(response, dict):
        return response.get("result", {}) or {}
    return {}


def _parse_last_price(result: dict) -> Optional[float]:
    tickers = result.get("list", [])
    if not tickers:
        return None
    price = safe_float(tickers[0].get("lastPrice"))
    if not 0 < price < C.SEED_MAX_VALID_PRICE:
        return None
    return price


def fetch_seed_price(
    symbol: str = C.SEED_SYMBOL,
    timeout: int = C.SEED_TIMEOUT_SECONDS,
    categories: Sequence[str] = C.SEED_CATEGORIES,
) -> Optional[float]:
    """
    Fetch the last traded price from Bybit's public ticker endpoint.

    Tries each category in order and returns the first plausible price.

    Args:
        symbol: Trading symbol (e.g., "BTCUSDT")
        timeout: Per-request timeout in seconds
        categories: Market categories to try ("linear", "spot", ...)

    Returns:
        Price in (0, 1_000_000), or None if every category failed
    """
    logger = get_logger()
    # Public endpoints only: no keys, single attempt per category
    session = HTTP(testnet=False, timeout=timeout, max_retries=1)

    for category in categories:
        try:
            response = session.get_tickers(category=category, symbol=symbol)
        except (FailedRequestError, InvalidRequestError, RequestException) as e:
            logger.warning(f"Seed price fetch failed ({category}/{symbol}): {e}")
            continue

        price = _parse_last_price(_extract_result(response))
        if price is not None:
            logger.debug(f"Seed price {price:.2f} from {category}/{symbol}")
            return price
        logger.warning(f"Seed price response unusable ({category}/{symbol})")

    return None


def resolve_seed_price(
    seed_config: Optional[SeedConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """
    Return the live seed price, or a random fallback.

    Args:
        seed_config: Seed settings (fetch flag, symbol, timeout, fallback range)
        rng: Random generator for the fallback draw

    Returns:
        Seed price > 0
    """
    config = seed_config or SeedConfig()
    logger = get_logger()

    if config.fetch:
        price = fetch_seed_price(config.symbol, config.timeout_seconds, config.categories)
        if price is not None:
            logger.info(f"Seed price: {price:.2f} (live {config.symbol})")
            return price

    rng = rng if rng is not None else np.random.default_rng()
    low, high = config.fallback_range
    price = float(rng.uniform(low, high))
    reason = "fetch failed" if config.fetch else "fetch disabled"
    logger.info(f"Seed price: {price:.2f} (fallback, {reason})")
    return price
