"""
Time Utilities

- UTC-aware datetimes for records and lifecycle timestamps.
- Epoch-second floats for window and expiry arithmetic.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

UTC = timezone.utc


def utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def from_timestamp(ts: float) -> datetime:
    """Convert an epoch-second float (as produced by injected clocks) to UTC datetime."""
    return datetime.fromtimestamp(ts, UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
