"""
Structured internal diagnostics for non-fatal errors.

Scheduler, sink and buffer problems are reported here instead of being raised
to producer threads. Payloads are plain dicts handed to a writer; the default
writer logs them on the ``slackbatch.diagnostics`` stdlib logger, which the
stdlib bridge never forwards, so a failing webhook cannot feed itself.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

DIAGNOSTICS_LOGGER_NAME = "slackbatch.diagnostics"

Writer = Callable[[dict[str, Any]], None]

_logger = logging.getLogger(DIAGNOSTICS_LOGGER_NAME)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _default_writer(payload: dict[str, Any]) -> None:
    level = _LEVELS.get(str(payload.get("level")), logging.WARNING)
    fields = {
        k: v for k, v in payload.items() if k not in {"component", "message", "level"}
    }
    _logger.log(
        level,
        "[%s] %s %s",
        payload.get("component"),
        payload.get("message"),
        fields,
    )


_writer: Writer = _default_writer


def set_writer_for_tests(writer: Writer) -> None:
    """Swap the diagnostics writer (tests capture payloads with this)."""
    global _writer
    _writer = writer


def _reset_for_tests() -> None:
    global _writer
    _writer = _default_writer


def _emit(level: str, component: str, message: str, **fields: Any) -> None:
    payload: dict[str, Any] = {
        "component": component,
        "message": message,
        "level": level,
    }
    payload.update(fields)
    try:
        _writer(payload)
    except Exception:
        # Diagnostics must never break the flush path
        pass


def debug(component: str, message: str, **fields: Any) -> None:
    _emit("DEBUG", component, message, **fields)


def warn(component: str, message: str, **fields: Any) -> None:
    """Emit a WARN diagnostic, e.g. ``warn("sink", "delivery failed", status_code=500)``."""
    _emit("WARN", component, message, **fields)


def error(component: str, message: str, **fields: Any) -> None:
    _emit("ERROR", component, message, **fields)


__all__ = [
    "DIAGNOSTICS_LOGGER_NAME",
    "debug",
    "error",
    "set_writer_for_tests",
    "warn",
]
