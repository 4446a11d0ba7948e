"""
Time utility functions.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def elapsed_ms(started: float, finished: float) -> int:
    """Milliseconds between two ``time.monotonic()`` readings."""
    return int((finished - started) * 1000)
