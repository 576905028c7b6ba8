"""
Testing helpers for code that uses slackbatch.

Provides a recording sink and a manual clock so batching behaviour can be
asserted without a real webhook or wall-clock waits.
"""

from __future__ import annotations

from .sinks import ManualClock, RecordingSink

__all__ = ["ManualClock", "RecordingSink"]
