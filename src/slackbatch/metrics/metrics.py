"""
Forwarder metrics collection.

Implements minimal Prometheus-compatible counters and a flush latency
histogram. In-memory counters are always tracked so tests (and hosts without
Prometheus) can observe capacity drops and sink errors.

Design goals:
- Zero global state; each forwarder owns its collector
- Isolated registry to avoid duplicate registration across instances
- Safe to call from producer threads and the flush loop alike
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class ForwarderMetrics:
    """Captured runtime counters for quick assertions in tests."""

    events_enqueued: int = 0
    events_dropped: int = 0
    flushes: int = 0
    messages_sent: int = 0
    sink_errors: int = 0
    advisories_sent: int = 0


class MetricsCollector:
    """Forwarder-scoped metrics collector.

    When disabled all Prometheus calls are skipped while the in-memory
    counters keep working.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = ForwarderMetrics()

        self._c_enqueued: Any | None = None
        self._c_dropped: Any | None = None
        self._c_sent: Any | None = None
        self._c_sink_errors: Any | None = None
        self._h_flush_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_enqueued = Counter(
                "slackbatch_events_enqueued_total",
                "Total number of events accepted into the buffer",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "slackbatch_events_dropped_total",
                "Total number of events dropped because the buffer was full",
                registry=self._registry,
            )
            self._c_sent = Counter(
                "slackbatch_messages_sent_total",
                "Total number of messages delivered to the webhook",
                ["kind"],
                registry=self._registry,
            )
            self._c_sink_errors = Counter(
                "slackbatch_sink_errors_total",
                "Total number of failed webhook deliveries",
                ["kind"],
                registry=self._registry,
            )
            self._h_flush_latency = Histogram(
                "slackbatch_flush_seconds",
                "Latency of one drain-compose-send cycle",
                buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_event_enqueued(self) -> None:
        with self._lock:
            self._state.events_enqueued += 1
        if self._c_enqueued is not None:
            self._c_enqueued.inc()

    def record_events_dropped(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._state.events_dropped += count
        if self._c_dropped is not None:
            self._c_dropped.inc(count)

    def record_flush(self, *, latency_seconds: float) -> None:
        with self._lock:
            self._state.flushes += 1
        if self._h_flush_latency is not None:
            self._h_flush_latency.observe(latency_seconds)

    def record_message_sent(self, *, advisory: bool = False) -> None:
        with self._lock:
            if advisory:
                self._state.advisories_sent += 1
            else:
                self._state.messages_sent += 1
        if self._c_sent is not None:
            self._c_sent.labels(kind="advisory" if advisory else "batch").inc()

    def record_sink_error(self, *, kind: str | None = None) -> None:
        with self._lock:
            self._state.sink_errors += 1
        if self._c_sink_errors is not None:
            self._c_sink_errors.labels(kind=kind or "unknown").inc()

    def snapshot(self) -> ForwarderMetrics:
        with self._lock:
            return replace(self._state)


__all__ = ["ForwarderMetrics", "MetricsCollector"]
