from __future__ import annotations

import asyncio
from typing import Callable, Optional

import structlog
from dotenv import load_dotenv

from bedtime.alerts.detector import PatternDetector
from bedtime.alerts.gate import EventGate
from bedtime.alerts.rules import NetflixRule
from bedtime.alerts.state import DetectorState
from bedtime.analyzer import BedtimeAnalyzer
from bedtime.config import Settings, settings_from_env, settings_from_yaml
from bedtime.errors import NotificationDeliveryError, StartupConfigError
from bedtime.host import AnalyzerRunner
from bedtime.notify.slack import SlackNotifier, config_from_settings

log = structlog.get_logger("app")

ConfigResolver = Callable[[], "bytes | str"]

def load_settings(resolve_config: Optional[ConfigResolver] = None) -> Settings:
    """
    Settings from the host's config-resolution call (YAML document) or, with no
    resolver, from BEDTIME_* env vars (.env honored).
    """
    if resolve_config is None:
        load_dotenv()
        return settings_from_env()
    try:
        doc = resolve_config()
    except StartupConfigError:
        raise
    except Exception as e:
        raise StartupConfigError(f"config resolution failed: {e}") from e
    return settings_from_yaml(doc)

def build_analyzer(
    resolve_config: Optional[ConfigResolver] = None,
    notifier: Optional[SlackNotifier] = None,
) -> BedtimeAnalyzer:
    """
    Resolve config once and wire gate + detector + Slack. A config failure is
    logged once and leaves an analyzer whose gate rejects everything.
    """
    state = DetectorState()
    try:
        settings = load_settings(resolve_config)
    except StartupConfigError as e:
        log.error("config_load_failed", err=str(e))
        state.initialization_failed = True
        rule = NetflixRule()
        # never called: the gate is closed for good
        send = _disabled_send
    else:
        rule = NetflixRule.from_settings(settings)
        notifier = notifier or SlackNotifier(config_from_settings(settings))
        send = notifier.send
        log.info("bedtime_enabled", policy=rule.policy, threshold=rule.threshold,
                 window=(rule.window.start_hour, rule.window.end_hour), target=rule.target)

    gate = EventGate(state, rule.window)
    detector = PatternDetector(rule, state, send)
    return BedtimeAnalyzer(gate, detector, notifier)

async def _disabled_send(text: str) -> None:
    raise NotificationDeliveryError("analyzer disabled: config failed to load")

async def run(
    q_conns: asyncio.Queue,
    resolve_config: Optional[ConfigResolver] = None,
    notifier: Optional[SlackNotifier] = None,
    stop: Optional[asyncio.Event] = None,
) -> BedtimeAnalyzer:
    """
    Build the analyzer and drain `q_conns` through it until `stop` is set
    (forever if None). Runner and Slack session are shut down on the way out.
    """
    analyzer = build_analyzer(resolve_config, notifier=notifier)
    runner = AnalyzerRunner(analyzer, q_conns)
    stop = stop or asyncio.Event()
    try:
        await runner.start()
        await stop.wait()
    finally:
        # graceful shutdown to avoid unclosed sessions
        await runner.stop()
        await analyzer.close()
        log.info("bedtime_stopped", seen=runner.stats.seen, accepted=runner.stats.accepted)
    return analyzer
