from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from bedtime.analyzer import BedtimeAnalyzer
from bedtime.ingest.parser import parse_connection
from bedtime.utils.types import BedtimeResult, Connection

log = structlog.get_logger("host")

@dataclass(slots=True)
class RunnerStats:
    seen: int = 0
    accepted: int = 0
    rejected: int = 0
    invalid: int = 0

class AnalyzerRunner:
    """
    Minimal host loop: drains connection records from a queue and runs them
    through analyzer.filter / analyzer.analyze, one at a time.
    Items may be Connection objects or raw dict records.
    """
    def __init__(self, analyzer: BedtimeAnalyzer, q_conns: asyncio.Queue):
        self.analyzer = analyzer
        self.q = q_conns
        self.stats = RunnerStats()
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        self._stop.clear()
        self._task = asyncio.create_task(self._loop(), name="bedtime-runner")

    async def stop(self):
        self._stop.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self):
        try:
            while not self._stop.is_set():
                item = await self.q.get()
                try:
                    await self.handle(item)
                except Exception as e:
                    # keep draining; one bad record must not stop the loop
                    log.error("analyzer_crashed", err=str(e), exc_info=True)
                finally:
                    self.q.task_done()
        except asyncio.CancelledError:
            return

    async def handle(self, item) -> Optional[BedtimeResult]:
        self.stats.seen += 1
        conn = item if isinstance(item, Connection) else None
        if conn is None and isinstance(item, dict):
            conn = parse_connection(item)
        if conn is None:
            self.stats.invalid += 1
            log.debug("connection_unparseable", kind=type(item).__name__)
            return None

        if not self.analyzer.filter(conn):
            self.stats.rejected += 1
            return None
        self.stats.accepted += 1
        result, _ = await self.analyzer.analyze(conn)
        return result
