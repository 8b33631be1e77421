"""
Timestamp utilities for consistent time handling across the system.
"""

import time
from datetime import datetime, timezone
from typing import Optional


def now_millis() -> int:
    """Current Unix time in milliseconds.

    Returns:
        Milliseconds since the epoch as int
    """
    return int(time.time() * 1000)


def utc_date_str(timestamp_ms: Optional[int] = None) -> str:
    """Convert a millisecond timestamp to a UTC ISO date (YYYY-MM-DD).

    Args:
        timestamp_ms: Unix timestamp in milliseconds (optional, uses current time if None)

    Returns:
        ISO date string in UTC
    """
    if timestamp_ms is None:
        timestamp_ms = now_millis()
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).date().isoformat()
