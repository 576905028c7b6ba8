"""
Bridge stdlib ``logging`` records into a SlackBatchForwarder.

``SlackBatchHandler.emit`` snapshots the record into a ``LogEvent`` and hands
it to the forwarder; it never performs I/O. Records from slackbatch itself
and from the HTTP client stack are skipped so delivery diagnostics cannot
loop back into the forwarder.
"""

from __future__ import annotations

import logging

from .core.engine import SlackBatchForwarder
from .core.events import LogEvent

_SKIPPED_PREFIXES = ("slackbatch", "httpx", "httpcore")


def _is_skipped(name: str) -> bool:
    return any(name == p or name.startswith(p + ".") for p in _SKIPPED_PREFIXES)


class SlackBatchHandler(logging.Handler):
    """Logging handler that forwards records to a ``SlackBatchForwarder``."""

    def __init__(
        self, forwarder: SlackBatchForwarder, level: int = logging.WARNING
    ) -> None:
        super().__init__(level=level)
        self._forwarder = forwarder

    @property
    def forwarder(self) -> SlackBatchForwarder:
        return self._forwarder

    def emit(self, record: logging.LogRecord) -> None:
        if _is_skipped(record.name):
            return
        try:
            self._forwarder.on_event(LogEvent.from_record(record))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            self._forwarder.stop(drain=True)
        finally:
            super().close()


def enable_stdlib_bridge(
    forwarder: SlackBatchForwarder,
    *,
    level: int = logging.WARNING,
    logger: logging.Logger | None = None,
    start: bool = True,
) -> SlackBatchHandler:
    """Attach a ``SlackBatchHandler`` to ``logger`` (root by default).

    Starts the forwarder unless ``start`` is False. Returns the handler so
    callers can remove it later.
    """
    target = logger or logging.getLogger()
    handler = SlackBatchHandler(forwarder, level=level)
    target.addHandler(handler)
    if start:
        forwarder.start()
    return handler


__all__ = ["SlackBatchHandler", "enable_stdlib_bridge"]
