from __future__ import annotations
from datetime import datetime

from bedtime.utils.types import Connection

def fmt_clock(ts: datetime) -> str:
    """12-hour clock in the timestamp's own tz, e.g. 3:04PM."""
    return ts.strftime("%-I:%M%p")

def format_alert(conn: Connection) -> str:
    return f"{conn.destination_ip} is watching Netflix at {fmt_clock(conn.timestamp)}!"
