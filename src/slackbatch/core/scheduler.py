"""
Flush scheduling for the batching engine.

The scheduler owns the only background execution context: one daemon thread
running one asyncio event loop per start/stop cycle. Producer threads call
``on_event`` which only touches the buffer (and, in window mode, a small
decision lock) and hands work to the loop with ``call_soon_threadsafe``.
Every drain-compose-send cycle runs on the loop under a single FIFO
``asyncio.Lock``, so flushes never overlap and messages reach the sink in
submission order.

Two cadences are supported:

- ``interval``: a single repeating tick task flushes every ``batching_secs``;
  empty ticks issue no send.
- ``window``: the first event after ``window_millis`` of quiet drains the
  buffer on the producer thread, under the decision lock, and hands that
  batch to the loop for sending. Events arriving inside the window are held
  for the next trigger; the first of them may produce a one-off advisory
  message.

Delivery failures come back from the sink as ``SinkError`` values and are
reported through diagnostics and metrics here, in one place.
"""

from __future__ import annotations

import asyncio
import threading
import time
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable

from ..metrics.metrics import MetricsCollector
from ..sinks.base import NotificationSink, SinkError
from . import diagnostics
from .buffer import EventBuffer
from .composer import TextComposer
from .events import LogEvent
from .message import ComposedMessage
from .settings import BatchingSettings

MessageFactory = Callable[[str], ComposedMessage]


class SchedulerState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    SHUTDOWN = "shutdown"


class DispatchScheduler:
    """Drives buffer draining, composition and delivery on a cadence."""

    def __init__(
        self,
        *,
        buffer: EventBuffer[LogEvent],
        composer: TextComposer,
        sink: NotificationSink,
        settings: BatchingSettings,
        message_factory: MessageFactory = ComposedMessage,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "slackbatch",
        lifecycle_timeout_seconds: float = 10.0,
    ) -> None:
        self._buffer = buffer
        self._composer = composer
        self._sink = sink
        self._settings = settings
        self._message_factory = message_factory
        self._metrics = metrics
        self._clock = clock
        self._name = name
        self._lifecycle_timeout = lifecycle_timeout_seconds

        self._state = SchedulerState.IDLE
        self._state_lock = threading.RLock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

        # Loop-thread only
        self._send_lock: asyncio.Lock | None = None
        self._timers: set[asyncio.Task[None]] = set()
        self._inflight: set[asyncio.Task[Any]] = set()
        self._next_fire_time: float | None = None

        # Window mode decision state, guarded by _window_lock
        self._window_lock = threading.Lock()
        self._last_flush: float | None = None
        self._in_window_events = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def mode(self) -> str:
        return self._settings.mode

    @property
    def settings(self) -> BatchingSettings:
        return self._settings

    @property
    def buffer(self) -> EventBuffer[LogEvent]:
        return self._buffer

    @property
    def active_timers(self) -> int:
        """Number of live repeating tick tasks (0 or 1)."""
        return len(self._timers)

    @property
    def next_fire_time(self) -> float | None:
        """Loop-clock time of the next interval tick while scheduled."""
        if self._state is not SchedulerState.SCHEDULED:
            return None
        return self._next_fire_time

    def start(self) -> None:
        """Start the background loop and arm the cadence (idempotent)."""
        with self._state_lock:
            if self._state is SchedulerState.SCHEDULED:
                return
            loop = asyncio.new_event_loop()
            ready = threading.Event()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop, ready),
                name=f"{self._name}-flush",
                daemon=True,
            )
            thread.start()
            ready.wait()
            self._loop, self._thread = loop, thread
            fut = asyncio.run_coroutine_threadsafe(self._on_loop_start(), loop)
            fut.result(timeout=self._lifecycle_timeout)
            with self._window_lock:
                self._last_flush = None
                self._in_window_events = 0
            self._state = SchedulerState.SCHEDULED

    def stop(self, *, drain: bool = False) -> None:
        """Cancel pending flushes and timers and shut the loop down.

        With ``drain=True`` in-flight sends are awaited and one final flush
        ships whatever is still buffered. Events passed to ``on_event`` after
        this call are ignored.
        """
        self._shutdown(drain=drain, final_state=SchedulerState.SHUTDOWN)

    def reconfigure(
        self,
        settings: BatchingSettings,
        *,
        composer: TextComposer | None = None,
    ) -> None:
        """Apply new cadence settings by stopping and restarting the loop.

        Buffered events are kept. While the restart is in progress the
        scheduler is IDLE and producers keep buffering.
        """
        with self._state_lock:
            was_running = self._state is SchedulerState.SCHEDULED
            self._shutdown(drain=False, final_state=SchedulerState.IDLE)
            self._settings = settings
            if composer is not None:
                self._composer = composer
            diagnostics.debug(
                "scheduler",
                "reconfigured",
                mode=settings.mode,
                batching_secs=settings.batching_secs,
                window_millis=settings.window_millis,
                restart=was_running,
            )
            if was_running:
                self.start()

    def _shutdown(self, *, drain: bool, final_state: SchedulerState) -> None:
        with self._state_lock:
            loop, thread = self._loop, self._thread
            running = self._state is SchedulerState.SCHEDULED
            self._state = final_state
            self._loop = self._thread = None
            if not running or loop is None or thread is None:
                return
            try:
                fut = asyncio.run_coroutine_threadsafe(self._on_loop_stop(drain), loop)
                fut.result(timeout=self._lifecycle_timeout)
            except Exception as exc:
                diagnostics.warn(
                    "scheduler",
                    "stop did not complete cleanly",
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=self._lifecycle_timeout)

    def _run_loop(self, loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        try:
            loop.run_forever()
        finally:
            pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    async def _on_loop_start(self) -> None:
        self._send_lock = asyncio.Lock()
        try:
            await self._sink.start()
        except Exception as exc:
            diagnostics.warn(
                "sink",
                "sink start failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
        if self._settings.mode == "interval":
            self._arm_timer()

    async def _on_loop_stop(self, drain: bool) -> None:
        timers = list(self._timers)
        for task in timers:
            task.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        self._timers.clear()
        self._next_fire_time = None

        inflight = list(self._inflight)
        if not drain:
            for task in inflight:
                task.cancel()
        await asyncio.gather(*inflight, return_exceptions=True)
        self._inflight.clear()

        if drain:
            await self._flush()
        try:
            await self._sink.stop()
        except Exception as exc:
            diagnostics.warn(
                "sink",
                "sink stop failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def _arm_timer(self) -> None:
        # A re-arm always replaces the previous tick task
        for task in list(self._timers):
            task.cancel()
        self._timers.clear()
        task = asyncio.get_running_loop().create_task(self._tick_loop())
        self._timers.add(task)
        task.add_done_callback(self._timers.discard)

    async def _tick_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._settings.batching_secs
        next_fire = loop.time() + interval
        while True:
            self._next_fire_time = next_fire
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            now = loop.time()
            while next_fire <= now:
                next_fire += interval
            await self._flush()

    def on_event(self, event: LogEvent) -> bool:
        """Buffer ``event``; never blocks on I/O and never raises.

        Returns False when the event was dropped (buffer full or scheduler
        shut down).
        """
        if self._state is SchedulerState.SHUTDOWN:
            return False
        if (
            self._settings.mode == "window"
            and self._state is SchedulerState.SCHEDULED
        ):
            accepted = self._on_window_event(event)
        else:
            accepted = self._buffer.enqueue(event)
        if self._metrics is not None:
            if accepted:
                self._metrics.record_event_enqueued()
            else:
                self._metrics.record_events_dropped(1)
        return accepted

    def _on_window_event(self, event: LogEvent) -> bool:
        now = self._clock()
        action: Callable[[], Awaitable[Any]] | None = None
        with self._window_lock:
            # Enqueue and drain under one lock: the batch is exactly what
            # arrived up to the triggering event
            accepted = self._buffer.enqueue(event)
            last = self._last_flush
            if last is None or (now - last) >= self._settings.window_seconds:
                self._last_flush = now
                self._in_window_events = 0
                action = partial(self._flush_window, self._buffer.drain_all())
            else:
                self._in_window_events += 1
                if self._in_window_events == 1 and self._settings.advisory_enabled:
                    action = self._send_advisory
        if action is not None:
            self._submit(action)
        return accepted

    def _submit(self, factory: Callable[[], Awaitable[Any]]) -> None:
        loop = self._loop
        if loop is None:
            return
        try:
            loop.call_soon_threadsafe(self._spawn, factory)
        except RuntimeError:
            # Loop closed between the state check and the hand-off
            pass

    def _spawn(self, factory: Callable[[], Awaitable[Any]]) -> None:
        task = asyncio.ensure_future(factory())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def flush(self, timeout: float | None = None) -> bool:
        """Flush now from any thread except the loop's own; True if a message was delivered."""
        loop = self._loop
        if loop is None or self._state is not SchedulerState.SCHEDULED:
            return False
        fut = asyncio.run_coroutine_threadsafe(self._flush(), loop)
        return bool(fut.result(timeout=timeout))

    def wait_until_idle(self, timeout: float | None = None) -> None:
        """Block until every flush/advisory handed to the loop has finished."""
        loop = self._loop
        if loop is None:
            return
        asyncio.run_coroutine_threadsafe(self._wait_inflight(), loop).result(
            timeout=timeout
        )

    async def _wait_inflight(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def _require_send_lock(self) -> asyncio.Lock:
        lock = self._send_lock
        if lock is None:
            raise RuntimeError("scheduler loop is not running")
        return lock

    async def _flush_window(self, events: list[LogEvent]) -> bool:
        async with self._require_send_lock():
            return await self._deliver(events, self._settings.banner_text)

    async def _flush(self, banner: str | None = None) -> bool:
        async with self._require_send_lock():
            return await self._deliver(self._buffer.drain_all(), banner)

    async def _deliver(self, events: list[LogEvent], banner: str | None) -> bool:
        dropped = self._buffer.take_dropped()
        if dropped:
            diagnostics.warn(
                "buffer",
                "buffer full, events dropped",
                dropped=dropped,
                capacity=self._buffer.capacity,
            )
        if not events:
            return False
        start = time.perf_counter()
        try:
            message = self._message_factory(self._composer.compose(events, banner))
        except Exception as exc:
            diagnostics.error(
                "composer",
                "failed to compose message, batch dropped",
                events=len(events),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return False
        error = await self._send(message)
        self._report(error, events=len(events))
        if self._metrics is not None:
            self._metrics.record_flush(latency_seconds=time.perf_counter() - start)
        return error is None

    async def _send_advisory(self) -> bool:
        async with self._require_send_lock():
            text = self._settings.advisory_text.replace(
                "{window_millis}", str(self._settings.window_millis)
            )
            error = await self._send(self._message_factory(text))
            self._report(error, advisory=True)
            return error is None

    async def _send(self, message: ComposedMessage) -> SinkError | None:
        try:
            return await self._sink.send(message)
        except Exception as exc:
            # Sinks should return errors; contain the ones that raise anyway
            return SinkError(kind="exception", detail=f"{type(exc).__name__}: {exc}")

    def _report(
        self, error: SinkError | None, *, events: int = 0, advisory: bool = False
    ) -> None:
        if error is None:
            if self._metrics is not None:
                self._metrics.record_message_sent(advisory=advisory)
            return
        if self._metrics is not None:
            self._metrics.record_sink_error(kind=error.kind)
        diagnostics.warn(
            "sink",
            "failed to deliver message",
            events=events,
            advisory=advisory,
            **error.as_fields(),
        )


__all__ = ["DispatchScheduler", "MessageFactory", "SchedulerState"]
