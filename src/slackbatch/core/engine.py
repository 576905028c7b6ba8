"""
SlackBatchForwarder: the object a host logging setup talks to.

It wires one buffer, composer, sink and scheduler together from
``ForwarderSettings`` and exposes the ``start`` / ``stop`` / ``on_event``
capability plus ``reconfigure`` for cadence changes at runtime.
"""

from __future__ import annotations

import time
from functools import partial
from typing import Any, Callable

from ..metrics.metrics import MetricsCollector
from ..sinks.base import NotificationSink
from ..sinks.slack_webhook import SlackWebhookSink
from .buffer import EventBuffer
from .composer import TextComposer
from .errors import ConfigurationError
from .events import LogEvent
from .layout import FormatterLayout, Layout
from .message import ComposedMessage
from .scheduler import DispatchScheduler, SchedulerState
from .settings import BatchingSettings, ForwarderSettings, load_settings


def _build_composer(layout: Layout, batching: BatchingSettings) -> TextComposer:
    return TextComposer(
        layout,
        max_event_text_length=batching.max_event_text_length,
        max_message_text_length=batching.max_message_text_length,
    )


class SlackBatchForwarder:
    """Batches log events and forwards digests to a Slack webhook.

    Example:
        forwarder = SlackBatchForwarder.from_env()
        forwarder.start()
        forwarder.on_event(LogEvent(message="disk almost full", level="WARNING"))
        forwarder.stop(drain=True)
    """

    def __init__(
        self,
        settings: ForwarderSettings,
        *,
        layout: Layout | None = None,
        sink: NotificationSink | None = None,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._layout = layout or FormatterLayout()
        self._metrics = metrics or MetricsCollector(
            enabled=settings.core.enable_metrics
        )
        self._sink = sink or SlackWebhookSink(settings.slack)
        slack = settings.slack
        self._scheduler = DispatchScheduler(
            buffer=EventBuffer[LogEvent](settings.batching.buffer_capacity),
            composer=_build_composer(self._layout, settings.batching),
            sink=self._sink,
            settings=settings.batching,
            message_factory=partial(
                ComposedMessage,
                username=slack.username,
                icon_emoji=slack.icon_emoji,
                channel=slack.channel,
                color=slack.color,
            ),
            metrics=self._metrics,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, **overrides: Any) -> SlackBatchForwarder:
        """Build from keyword settings, e.g. ``slack={"webhook_url": ...}``.

        Raises ``ConfigurationError`` immediately on invalid input.
        """
        return cls(load_settings(**overrides))

    @classmethod
    def from_env(cls) -> SlackBatchForwarder:
        return cls(load_settings())

    @property
    def settings(self) -> ForwarderSettings:
        return self._settings

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    @property
    def scheduler(self) -> DispatchScheduler:
        return self._scheduler

    @property
    def state(self) -> SchedulerState:
        return self._scheduler.state

    def start(self) -> None:
        self._scheduler.start()

    def stop(self, *, drain: bool = False) -> None:
        self._scheduler.stop(drain=drain)

    def on_event(self, event: LogEvent) -> bool:
        return self._scheduler.on_event(event)

    def flush(self, timeout: float | None = None) -> bool:
        return self._scheduler.flush(timeout=timeout)

    def reconfigure(self, **changes: Any) -> None:
        """Change batching settings (cadence, mode, limits) at runtime.

        Implemented as stop-then-start of the scheduler, so there is never
        more than one live timer. ``buffer_capacity`` is fixed for the
        forwarder's lifetime.
        """
        new_settings = self._settings.with_batching(**changes)
        if new_settings.batching.buffer_capacity != self._settings.batching.buffer_capacity:
            raise ConfigurationError(
                "buffer_capacity cannot change after construction",
                field="batching.buffer_capacity",
            )
        composer = None
        if (
            new_settings.batching.max_event_text_length
            != self._settings.batching.max_event_text_length
            or new_settings.batching.max_message_text_length
            != self._settings.batching.max_message_text_length
        ):
            composer = _build_composer(self._layout, new_settings.batching)
        self._scheduler.reconfigure(new_settings.batching, composer=composer)
        self._settings = new_settings

    def __enter__(self) -> SlackBatchForwarder:
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop(drain=True)


__all__ = ["SlackBatchForwarder"]
