"""
Log event record consumed by the batching engine.

A ``LogEvent`` is a frozen snapshot taken in the producer thread. The buffer
shares it with the flusher; nothing mutates it after enqueue.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

# LogRecord attributes that are not user-supplied ``extra`` values
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


@dataclass(frozen=True)
class LogEvent:
    """Immutable log event with the fields layouts need."""

    message: str
    level: str = "INFO"
    logger_name: str = "root"
    created: float = field(default_factory=time.time)
    exc_text: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the mapping so shared references stay read-only
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> LogEvent:
        """Snapshot a stdlib record: interpolate args and render exc_info now."""
        exc_text = record.exc_text
        if exc_text is None and record.exc_info:
            exc_text = logging.Formatter().formatException(record.exc_info)
        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        return cls(
            message=record.getMessage(),
            level=record.levelname,
            logger_name=record.name,
            created=record.created,
            exc_text=exc_text,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "level": self.level,
            "logger": self.logger_name,
            "created": self.created,
            "exc_text": self.exc_text,
            "extra": dict(self.extra),
        }
