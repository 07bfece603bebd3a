"""
Canonical timeframe constants and validation.

Single source of truth for the candle timeframes the simulator aggregates.
"""


# Candle timeframes and their bucket length in milliseconds
TIMEFRAME_MS = {
    "1s": 1_000,
    "10s": 10_000,
    "30s": 30_000,
    "1m": 60_000,
    "5m": 300_000,
    "15m": 900_000,
}

CANONICAL_TIMEFRAMES = tuple(TIMEFRAME_MS)

DEFAULT_TIMEFRAME = "1s"


def validate_timeframe(tf: str) -> str:
    """
    Validate timeframe is canonical format.

    Args:
        tf: Timeframe string (e.g., "1s", "5m")

    Returns:
        Validated canonical tf string

    Raises:
        ValueError: If tf is not canonical (with fix-it message)
    """
    tf_clean = tf.strip()

    if tf_clean in TIMEFRAME_MS:
        return tf_clean

    # Case-insensitive matching ("1M" is minutes here, there is no month timeframe)
    tf_lower = tf_clean.lower()
    if tf_lower in TIMEFRAME_MS:
        return tf_lower

    raise ValueError(
        f"Invalid timeframe: '{tf}'. "
        f"Must be one of: {list(CANONICAL_TIMEFRAMES)}"
    )


def timeframe_ms(tf: str) -> int:
    """Bucket length in milliseconds for a canonical timeframe."""
    return TIMEFRAME_MS[validate_timeframe(tf)]


def bucket_start(now_ms: int, interval_ms: int) -> int:
    """Start of the bucket containing now_ms."""
    return (int(now_ms) // interval_ms) * interval_ms
