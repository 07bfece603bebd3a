"""
marketsim - synthetic market engine for leveraged-trading simulation.

Packages:
- sim: price process, candles, ledger
- structures: pattern detectors and scanner
- engine: snapshot and runner
- exchanges: one-time seed price fetch
"""

__version__ = "0.1.0"
