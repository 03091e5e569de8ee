from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

def utc_dt(ts: float | int) -> datetime:
    """Epoch seconds -> timezone-aware UTC datetime."""
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)

def to_datetime(ts) -> Optional[datetime]:
    """
    Normalize a host timestamp to an aware datetime. Naive values are taken as UTC;
    aware values keep their own tz (the night window is read in it).
    """
    if isinstance(ts, datetime):
        return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)
    if isinstance(ts, str):
        try:
            return to_datetime(datetime.fromisoformat(ts.replace("Z", "+00:00")))
        except ValueError:
            return None
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        return None
    # assume epoch seconds, ms, us or ns
    if ts > 1e17:  # ns → s
        ts = ts / 1e9
    elif ts > 1e14:  # us → s
        ts = ts / 1e6
    elif ts > 1e11:  # ms → s
        ts = ts / 1e3
    try:
        return utc_dt(ts)
    except (ValueError, OverflowError, OSError):
        # NaN, inf or out of datetime range
        return None
