from __future__ import annotations

import asyncio
import time
from functools import partial
from typing import Any, Iterator

import pytest

from slackbatch.core.buffer import EventBuffer
from slackbatch.core.composer import TextComposer
from slackbatch.core.events import LogEvent
from slackbatch.core.message import ComposedMessage
from slackbatch.core.scheduler import DispatchScheduler, SchedulerState
from slackbatch.core.settings import BatchingSettings
from slackbatch.metrics.metrics import MetricsCollector
from slackbatch.sinks import SinkError
from slackbatch.testing import RecordingSink


class _LineLayout:
    def render(self, event: LogEvent) -> str:
        return event.message + "\n"


def _build(
    sink: RecordingSink, **batching: Any
) -> tuple[DispatchScheduler, MetricsCollector]:
    settings = BatchingSettings(**batching)
    metrics = MetricsCollector()
    scheduler = DispatchScheduler(
        buffer=EventBuffer(settings.buffer_capacity),
        composer=TextComposer(
            _LineLayout(),
            max_event_text_length=settings.max_event_text_length,
            max_message_text_length=settings.max_message_text_length,
        ),
        sink=sink,
        settings=settings,
        message_factory=partial(ComposedMessage, username="bot", channel="#ops"),
        metrics=metrics,
    )
    return scheduler, metrics


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def stopper() -> Iterator[list[DispatchScheduler]]:
    started: list[DispatchScheduler] = []
    yield started
    for scheduler in started:
        scheduler.stop()


@pytest.mark.critical
def test_events_within_one_interval_are_sent_once_in_order(
    sink: RecordingSink, stopper: list[DispatchScheduler], timeout_scale: float
) -> None:
    scheduler, metrics = _build(sink, batching_secs=0.5)
    stopper.append(scheduler)
    scheduler.start()

    time.sleep(0.1)
    scheduler.on_event(LogEvent(message="first"))
    time.sleep(0.15)
    scheduler.on_event(LogEvent(message="second"))
    assert sink.messages == []

    assert sink.wait_for(1, timeout=2.0 * timeout_scale)
    # Next tick finds the buffer empty and must not send anything
    time.sleep(0.6)

    assert sink.texts == ["first\nsecond\n"]
    assert sink.messages[0].username == "bot"
    assert sink.messages[0].channel == "#ops"
    snap = metrics.snapshot()
    assert snap.events_enqueued == 2
    assert snap.messages_sent == 1
    assert snap.flushes == 1


def test_empty_ticks_issue_no_sends(
    sink: RecordingSink, stopper: list[DispatchScheduler], timeout_scale: float
) -> None:
    scheduler, _ = _build(sink, batching_secs=0.05)
    stopper.append(scheduler)
    scheduler.start()
    time.sleep(0.3)
    assert sink.messages == []
    assert sink.started == 1


def test_state_transitions_and_single_timer(sink: RecordingSink) -> None:
    scheduler, _ = _build(sink, batching_secs=5)
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.active_timers == 0
    assert scheduler.next_fire_time is None

    scheduler.start()
    scheduler.start()
    assert scheduler.state is SchedulerState.SCHEDULED
    assert scheduler.active_timers == 1
    assert scheduler.next_fire_time is not None

    scheduler.stop()
    assert scheduler.state is SchedulerState.SHUTDOWN
    assert scheduler.active_timers == 0
    assert scheduler.next_fire_time is None
    assert sink.stopped == 1


@pytest.mark.critical
def test_no_sends_after_stop(sink: RecordingSink) -> None:
    scheduler, _ = _build(sink, batching_secs=0.05)
    scheduler.start()
    scheduler.stop()

    assert scheduler.on_event(LogEvent(message="late")) is False
    time.sleep(0.2)
    assert sink.messages == []
    assert scheduler.buffer.is_empty()


def test_stop_with_drain_ships_buffered_events(sink: RecordingSink) -> None:
    scheduler, _ = _build(sink, batching_secs=60)
    scheduler.start()
    scheduler.on_event(LogEvent(message="pending"))
    scheduler.stop(drain=True)
    assert sink.texts == ["pending\n"]


def test_events_before_start_are_buffered(
    sink: RecordingSink, stopper: list[DispatchScheduler], timeout_scale: float
) -> None:
    scheduler, _ = _build(sink, batching_secs=60)
    stopper.append(scheduler)
    assert scheduler.on_event(LogEvent(message="early")) is True
    scheduler.start()
    assert scheduler.flush(timeout=2.0 * timeout_scale) is True
    assert sink.texts == ["early\n"]


@pytest.mark.critical
def test_reconfigure_restarts_with_exactly_one_timer(
    sink: RecordingSink, stopper: list[DispatchScheduler], timeout_scale: float
) -> None:
    scheduler, _ = _build(sink, batching_secs=60)
    stopper.append(scheduler)
    scheduler.start()
    scheduler.on_event(LogEvent(message="kept"))

    for secs in (30, 0.05):
        scheduler.reconfigure(scheduler.settings.model_copy(update={"batching_secs": secs}))
        assert scheduler.state is SchedulerState.SCHEDULED
        assert scheduler.active_timers == 1

    assert scheduler.settings.batching_secs == 0.05
    assert sink.wait_for(1, timeout=2.0 * timeout_scale)
    assert sink.texts == ["kept\n"]


def test_reconfigure_while_idle_does_not_start(sink: RecordingSink) -> None:
    scheduler, _ = _build(sink, batching_secs=60)
    scheduler.reconfigure(BatchingSettings(batching_secs=1))
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.active_timers == 0


def test_sink_error_is_reported_not_raised(
    stopper: list[DispatchScheduler], diagnostics_capture: list[dict[str, Any]]
) -> None:
    sink = RecordingSink(
        [SinkError(kind="http_status", status_code=500, detail="Bad response code")]
    )
    scheduler, metrics = _build(sink, batching_secs=60)
    stopper.append(scheduler)
    scheduler.start()

    scheduler.on_event(LogEvent(message="lost"))
    assert scheduler.flush() is False
    scheduler.on_event(LogEvent(message="delivered"))
    assert scheduler.flush() is True

    assert sink.texts == ["lost\n", "delivered\n"]
    failures = [d for d in diagnostics_capture if d["component"] == "sink"]
    assert len(failures) == 1
    assert failures[0]["status_code"] == 500
    assert failures[0]["kind"] == "http_status"
    assert failures[0]["events"] == 1
    snap = metrics.snapshot()
    assert snap.sink_errors == 1
    assert snap.messages_sent == 1


def test_raising_sink_is_contained(
    stopper: list[DispatchScheduler], diagnostics_capture: list[dict[str, Any]]
) -> None:
    sink = RecordingSink([RuntimeError("boom")])
    scheduler, _ = _build(sink, batching_secs=60)
    stopper.append(scheduler)
    scheduler.start()

    scheduler.on_event(LogEvent(message="x"))
    assert scheduler.flush() is False
    assert scheduler.state is SchedulerState.SCHEDULED
    assert diagnostics_capture[-1]["kind"] == "exception"
    assert "boom" in diagnostics_capture[-1]["detail"]


def test_capacity_drops_are_reported_at_flush(
    sink: RecordingSink,
    stopper: list[DispatchScheduler],
    diagnostics_capture: list[dict[str, Any]],
) -> None:
    scheduler, metrics = _build(sink, batching_secs=60, buffer_capacity=2)
    stopper.append(scheduler)
    scheduler.start()

    results = [scheduler.on_event(LogEvent(message=str(i))) for i in range(5)]
    assert results == [True, True, False, False, False]
    assert scheduler.flush() is True

    assert sink.texts == ["0\n1\n"]
    drops = [d for d in diagnostics_capture if d["component"] == "buffer"]
    assert drops and drops[0]["dropped"] == 3 and drops[0]["capacity"] == 2
    assert metrics.snapshot().events_dropped == 3


def test_flush_on_idle_scheduler_returns_false(sink: RecordingSink) -> None:
    scheduler, _ = _build(sink)
    scheduler.on_event(LogEvent(message="x"))
    assert scheduler.flush() is False


def test_reconfigure_emits_debug_diagnostic(
    sink: RecordingSink,
    stopper: list[DispatchScheduler],
    diagnostics_capture: list[dict[str, Any]],
) -> None:
    scheduler, _ = _build(sink, batching_secs=60)
    stopper.append(scheduler)
    scheduler.start()
    scheduler.reconfigure(BatchingSettings(mode="window", window_millis=500))

    assert diagnostics_capture[-1] == {
        "component": "scheduler",
        "message": "reconfigured",
        "level": "DEBUG",
        "mode": "window",
        "batching_secs": 10,
        "window_millis": 500,
        "restart": True,
    }


def test_delivery_without_running_loop_raises(sink: RecordingSink) -> None:
    scheduler, _ = _build(sink)
    with pytest.raises(RuntimeError, match="not running"):
        asyncio.run(scheduler._flush())
    assert sink.messages == []
