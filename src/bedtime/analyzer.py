from __future__ import annotations

from typing import Optional

from bedtime.alerts.detector import PatternDetector
from bedtime.alerts.gate import EventGate
from bedtime.notify.slack import SlackNotifier
from bedtime.utils.types import BedtimeResult, Connection


class BedtimeAnalyzer:
    """
    Host-facing filter/analyze pair. The host calls filter() on every
    connection and analyze() only on the ones that passed.
    Owns the Slack notifier (if any) and closes it in close().
    """
    key = "netflix_detector"

    def __init__(self, gate: EventGate, detector: PatternDetector,
                 notifier: Optional[SlackNotifier] = None):
        self.gate = gate
        self.detector = detector
        self.notifier = notifier

    @property
    def state(self):
        return self.detector.state

    def filter(self, conn: Connection) -> bool:
        return self.gate.accept(conn)

    async def analyze(self, conn: Connection) -> tuple[BedtimeResult, None]:
        return await self.detector.process(conn)

    async def close(self):
        if self.notifier is not None:
            await self.notifier.stop()

    async def __aenter__(self) -> "BedtimeAnalyzer":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
