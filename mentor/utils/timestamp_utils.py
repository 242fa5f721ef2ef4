"""
Timestamp utilities for consistent time handling across the system.
"""

import time
from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_datetime(timestamp: Optional[Union[int, float, datetime]] = None) -> datetime:
    """Convert timestamp to a timezone-aware UTC datetime.

    Args:
        timestamp: Unix timestamp in seconds or a datetime (optional, uses current time if None).
            Naive datetimes are assumed to be UTC.

    Returns:
        datetime object
    """
    if timestamp is None:
        timestamp = time.time()
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            return timestamp.replace(tzinfo=timezone.utc)
        return timestamp
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
