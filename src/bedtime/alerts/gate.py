from __future__ import annotations

from bedtime.alerts.rules import NightWindow
from bedtime.alerts.state import DetectorState
from bedtime.utils.types import Connection


class EventGate:
    """
    Accepts connections that:
      1. already carry the host's DNS analysis (analyzers["dns"])
      2. happen inside the night window
      3. arrive before any notification went out (and config loaded fine)
    Reads state, never writes it.
    """
    def __init__(self, state: DetectorState, window: NightWindow):
        self.state = state
        self.window = window

    def accept(self, conn: Connection) -> bool:
        if self.state.disabled:
            return False
        analyzers = getattr(conn, "analyzers", None)
        if not isinstance(analyzers, dict) or "dns" not in analyzers:
            return False
        ts = getattr(conn, "timestamp", None)
        hour = getattr(ts, "hour", None)
        if not isinstance(hour, int):
            return False
        return self.window.contains(hour)
