"""
Exchange access (public market data only).
"""

from .bybit_market import fetch_seed_price, resolve_seed_price

__all__ = [
    "fetch_seed_price",
    "resolve_seed_price",
]
