"""
Configuration management.
"""

from .config import (
    Config,
    get_config,
    MarketConfig,
    AccountConfig,
    ScannerConfig,
    RunnerConfig,
    SeedConfig,
    LogConfig,
)

__all__ = [
    "Config",
    "get_config",
    "MarketConfig",
    "AccountConfig",
    "ScannerConfig",
    "RunnerConfig",
    "SeedConfig",
    "LogConfig",
]
