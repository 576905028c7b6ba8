from __future__ import annotations

import logging
from typing import Any

import pytest

from slackbatch.core import diagnostics


def test_warn_builds_structured_payload(diagnostics_capture: list[dict[str, Any]]) -> None:
    diagnostics.warn("sink", "failed to deliver message", status_code=500)
    assert diagnostics_capture == [
        {
            "component": "sink",
            "message": "failed to deliver message",
            "level": "WARN",
            "status_code": 500,
        }
    ]


def test_error_and_debug_levels(diagnostics_capture: list[dict[str, Any]]) -> None:
    diagnostics.error("composer", "bad")
    diagnostics.debug("scheduler", "tick")
    assert [p["level"] for p in diagnostics_capture] == ["ERROR", "DEBUG"]


def test_default_writer_logs_to_diagnostics_logger(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger=diagnostics.DIAGNOSTICS_LOGGER_NAME):
        diagnostics.warn("buffer", "buffer full, events dropped", dropped=4)

    record = caplog.records[-1]
    assert record.name == "slackbatch.diagnostics"
    assert record.levelno == logging.WARNING
    assert "buffer full" in record.getMessage()
    assert "'dropped': 4" in record.getMessage()


def test_failing_writer_never_raises() -> None:
    def _boom(_payload: dict[str, Any]) -> None:
        raise RuntimeError("writer broken")

    diagnostics.set_writer_for_tests(_boom)
    diagnostics.warn("sink", "still fine")
