from __future__ import annotations


class BedtimeError(Exception):
    """Base class for analyzer errors."""


class StartupConfigError(BedtimeError):
    """Config could not be fetched, parsed or validated. Disables the analyzer."""


class MalformedAnalysisResult(BedtimeError):
    """The "dns" analyzer result is not the expected shape."""


class NotificationDeliveryError(BedtimeError):
    """Slack message was not delivered."""
