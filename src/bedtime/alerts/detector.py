from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from bedtime.alerts.formatting import format_alert
from bedtime.alerts.rules import NetflixRule
from bedtime.alerts.state import DetectorState
from bedtime.errors import MalformedAnalysisResult, NotificationDeliveryError
from bedtime.utils.types import BedtimeResult, Connection, DnsAnswer, DnsResult

log = structlog.get_logger("detector")

SendFn = Callable[[str], Awaitable[None]]


def dns_answers(conn: Connection) -> list[DnsAnswer]:
    """
    Answers from the host's DNS analysis. Raises MalformedAnalysisResult if the
    "dns" entry isn't a DnsResult.
    """
    res = conn.analyzers.get("dns")
    if not isinstance(res, DnsResult):
        raise MalformedAnalysisResult(f"expected DnsResult, got {type(res).__name__}")
    return list(res.answers or [])


class PatternDetector:
    """
    Scans DNS answers of gate-accepted connections for the target domain.

    policy="immediate": first hit sends; success sets state.already_notified
                        and the gate stays closed for the process lifetime.
    policy="threshold": every hit bumps state.occurrence_count across events;
                        reaching rule.threshold sends, success resets the count.

    A failed send is logged and leaves state untouched, so the next hit retries.
    Scan + send + state update run under one lock.
    """
    def __init__(
        self,
        rule: NetflixRule,
        state: DetectorState,
        send: SendFn,
        format_fn: Optional[Callable[[Connection], str]] = None,
    ):
        self.rule = rule
        self.state = state
        self._send = send
        self._format_fn = format_fn or format_alert
        self._lock = asyncio.Lock()

    async def process(self, conn: Connection) -> tuple[BedtimeResult, None]:
        try:
            answers = dns_answers(conn)
        except MalformedAnalysisResult as e:
            log.warning("dns_result_invalid", err=str(e), dst=getattr(conn, "destination_ip", None))
            answers = []

        async with self._lock:
            # another task may have notified while we waited on the lock
            if self.state.disabled:
                return BedtimeResult(), None
            for answer in answers:
                if not self.rule.matches(answer.name):
                    continue
                if self.rule.policy == "threshold":
                    self.state.occurrence_count += 1
                    if self.state.occurrence_count < self.rule.threshold:
                        continue
                if await self._notify(conn, answer):
                    break
        return BedtimeResult(), None

    async def _notify(self, conn: Connection, answer: DnsAnswer) -> bool:
        text = self._format_fn(conn)
        try:
            await self._send(text)
        except NotificationDeliveryError as e:
            log.warning("notification_failed", err=str(e), name=answer.name,
                        count=self.state.occurrence_count)
            return False
        except Exception as e:
            # send callables other than SlackNotifier may raise anything
            log.error("notification_crashed", err=str(e), name=answer.name, exc_info=True)
            return False

        if self.rule.policy == "threshold":
            self.state.occurrence_count = 0
        else:
            self.state.already_notified = True
        log.info("notification_sent", rule=self.rule.name, policy=self.rule.policy,
                 dst=conn.destination_ip, name=answer.name)
        return True
