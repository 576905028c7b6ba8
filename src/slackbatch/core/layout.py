"""
Layouts turn a ``LogEvent`` into the text that goes into a Slack message.

The composer only depends on the ``Layout`` protocol; ``FormatterLayout``
reuses stdlib ``logging.Formatter`` format strings so hosts can keep the
patterns they already use for their other handlers.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from .events import LogEvent

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@runtime_checkable
class Layout(Protocol):
    def render(self, event: LogEvent) -> str:  # noqa: D401
        """Return the human-readable text for one event."""
        ...


class FormatterLayout:
    """Layout backed by a stdlib ``logging.Formatter``.

    Each rendered event ends with ``line_separator`` so events concatenate
    into one message body line by line.
    """

    def __init__(
        self,
        fmt: str = DEFAULT_FORMAT,
        datefmt: str | None = None,
        *,
        line_separator: str = "\n",
    ) -> None:
        self._formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)
        self._line_separator = line_separator

    def render(self, event: LogEvent) -> str:
        level = logging.getLevelName(event.level)
        record = logging.makeLogRecord(
            {
                "name": event.logger_name,
                "msg": event.message,
                "args": None,
                "levelname": event.level,
                "levelno": level if isinstance(level, int) else logging.NOTSET,
                "created": event.created,
                "msecs": (event.created - int(event.created)) * 1000,
                "exc_text": event.exc_text,
                **dict(event.extra),
            }
        )
        return self._formatter.format(record) + self._line_separator


class MessageLayout:
    """Plain ``<LEVEL> <message>`` layout with no timestamp."""

    def render(self, event: LogEvent) -> str:
        text = f"{event.level} {event.message}"
        if event.exc_text:
            text = f"{text}\n{event.exc_text}"
        return text + "\n"


__all__ = ["DEFAULT_FORMAT", "FormatterLayout", "Layout", "MessageLayout"]
