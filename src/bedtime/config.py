"""Analyzer settings: YAML config document or env vars.

The host resolves the analyzer's YAML document once at startup. Keys follow
the original bot config (``threshold``, ``bedtime_bot_token``, ``my_user_id``);
``token`` and ``channel`` are accepted as shorter aliases.
Env vars use the BEDTIME_{NAME} convention (e.g. BEDTIME_BOT_TOKEN=xoxb-...).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import yaml

from bedtime.errors import StartupConfigError
from bedtime.utils.types import Policy

POLICIES = ("immediate", "threshold")


@dataclass(frozen=True, slots=True)
class Settings:
    threshold: int
    token: str
    channel: str                     # Slack channel or user id
    target: str = "netflix"          # substring matched against DNS answer names
    night_start_hour: int = 22       # first night hour (inclusive)
    night_end_hour: int = 6          # first morning hour (exclusive); 0 = no early-morning window
    policy: Policy = "immediate"
    timeout_s: Optional[float] = None  # None -> aiohttp default

    def validate(self) -> "Settings":
        if self.threshold < 1:
            raise StartupConfigError(f"threshold must be >= 1, got {self.threshold}")
        if not self.token:
            raise StartupConfigError("bot token is empty")
        if any(ord(c) < 0x20 or ord(c) == 0x7f for c in self.token):
            raise StartupConfigError("bot token contains control characters")
        if not self.channel:
            raise StartupConfigError("channel / user id is empty")
        if not self.target:
            raise StartupConfigError("target is empty")
        for name in ("night_start_hour", "night_end_hour"):
            hour = getattr(self, name)
            if not 0 <= hour <= 23:
                raise StartupConfigError(f"{name} must be in 0..23, got {hour}")
        if self.policy not in POLICIES:
            raise StartupConfigError(f"unknown policy {self.policy!r}, expected one of {POLICIES}")
        return self


def _pick(raw: dict, *keys, default=None):
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return default


def settings_from_mapping(raw: dict) -> Settings:
    try:
        timeout = _pick(raw, "timeout_s")
        settings = Settings(
            threshold=int(_pick(raw, "threshold", default=10)),
            token=str(_pick(raw, "bedtime_bot_token", "token", default="")).strip(),
            channel=str(_pick(raw, "my_user_id", "channel", default="")).strip(),
            target=str(_pick(raw, "target", default="netflix")),
            night_start_hour=int(_pick(raw, "night_start_hour", default=22)),
            night_end_hour=int(_pick(raw, "night_end_hour", default=6)),
            policy=str(_pick(raw, "policy", default="immediate")).lower(),
            timeout_s=float(timeout) if timeout is not None else None,
        )
    except (TypeError, ValueError) as e:
        raise StartupConfigError(f"invalid config value: {e}") from e
    return settings.validate()


def settings_from_yaml(doc: bytes | str) -> Settings:
    """Parse the analyzer's YAML config document."""
    try:
        raw = yaml.safe_load(doc)
    except yaml.YAMLError as e:
        raise StartupConfigError(f"config is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise StartupConfigError("config document must be a mapping")
    return settings_from_mapping(raw)


def settings_from_env() -> Settings:
    """Build settings from BEDTIME_* env vars. Raises if token or channel is missing."""
    token = os.getenv("BEDTIME_BOT_TOKEN")
    channel = os.getenv("BEDTIME_CHANNEL")
    if not token or not channel:
        raise StartupConfigError("BEDTIME_BOT_TOKEN and BEDTIME_CHANNEL must be set")
    return settings_from_mapping({
        "threshold": os.getenv("BEDTIME_THRESHOLD"),
        "token": token,
        "channel": channel,
        "target": os.getenv("BEDTIME_TARGET"),
        "night_start_hour": os.getenv("BEDTIME_NIGHT_START"),
        "night_end_hour": os.getenv("BEDTIME_NIGHT_END"),
        "policy": os.getenv("BEDTIME_POLICY"),
        "timeout_s": os.getenv("BEDTIME_TIMEOUT_S"),
    })
