"""Exception types raised by slackbatch.

Only configuration problems surface as exceptions. Delivery failures are
returned as :class:`slackbatch.sinks.SinkError` values and capacity drops are
counters, so producers never see an error from the forwarder.
"""

from __future__ import annotations


class SlackBatchError(Exception):
    """Base class for slackbatch errors."""


class ConfigurationError(SlackBatchError):
    """Raised when forwarder settings are invalid (e.g. malformed webhook URL)."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


__all__ = ["ConfigurationError", "SlackBatchError"]
