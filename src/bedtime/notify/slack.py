from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Optional

import aiohttp
import structlog

from bedtime.config import Settings
from bedtime.errors import NotificationDeliveryError

log = structlog.get_logger("slack")

POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"

# --------- wire types ----------

@dataclass(frozen=True, slots=True)
class SlackMessage:
    channel: str
    text: str

    def to_payload(self) -> dict:
        return {"channel": self.channel, "text": self.text}

    def to_json(self) -> str:
        return json.dumps(self.to_payload())

@dataclass(frozen=True, slots=True)
class SlackResponse:
    ok: bool
    error: str = ""

    def raise_for_error(self) -> None:
        if not self.ok:
            raise NotificationDeliveryError(f"Slack error: {self.error}")

def build_message(channel: str, text: str) -> SlackMessage:
    return SlackMessage(channel=channel, text=text)

def parse_response(body: bytes | str) -> SlackResponse:
    """
    Decode a chat.postMessage response body: {"ok": bool, "error": str}.
    """
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise NotificationDeliveryError(f"unreadable Slack response: {e}") from e
    if not isinstance(data, dict):
        raise NotificationDeliveryError("unreadable Slack response: not an object")
    return SlackResponse(ok=data.get("ok") is True, error=str(data.get("error") or ""))

# --------- config & client ----------

@dataclass(slots=True)
class SlackConfig:
    token: str
    channel: str                      # channel id or user id (DM)
    url: str = POST_MESSAGE_URL
    timeout_s: Optional[float] = None  # None -> aiohttp default

def config_from_settings(s: Settings) -> SlackConfig:
    return SlackConfig(token=s.token, channel=s.channel, timeout_s=s.timeout_s)

class SlackNotifier:
    """
    Posts one message per send() to a fixed Slack destination.
    No retry, no backoff: any failure surfaces as NotificationDeliveryError.
    """
    def __init__(self, cfg: SlackConfig):
        self.cfg = cfg
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        if self._session is None:
            if self.cfg.timeout_s is not None:
                timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
                self._session = aiohttp.ClientSession(timeout=timeout)
            else:
                self._session = aiohttp.ClientSession()

    async def stop(self):
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "SlackNotifier":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.cfg.token}",
            "Content-Type": "application/json",
        }

    async def send(self, text: str) -> None:
        await self.start()
        assert self._session is not None
        msg = build_message(self.cfg.channel, text)
        try:
            async with self._session.post(self.cfg.url, data=msg.to_json(), headers=self._headers()) as resp:
                body = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.warning("slack_network_error", err=str(e))
            raise NotificationDeliveryError(f"Slack request failed: {e}") from e
        except (ValueError, TypeError) as e:
            # bad header/url/body values rejected while building the request
            log.warning("slack_request_invalid", err=str(e))
            raise NotificationDeliveryError(f"Slack request invalid: {e}") from e

        parse_response(body).raise_for_error()
        log.debug("slack_message_sent", channel=self.cfg.channel)
