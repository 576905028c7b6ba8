"""Batching engine: buffer, composer, scheduler and forwarder."""

from .buffer import EventBuffer
from .composer import TextComposer, truncate
from .engine import SlackBatchForwarder
from .errors import ConfigurationError, SlackBatchError
from .events import LogEvent
from .layout import FormatterLayout, Layout, MessageLayout
from .message import ComposedMessage
from .scheduler import DispatchScheduler, SchedulerState
from .settings import BatchingSettings, ForwarderSettings, SlackSettings, load_settings

__all__ = [
    "BatchingSettings",
    "ComposedMessage",
    "ConfigurationError",
    "DispatchScheduler",
    "EventBuffer",
    "FormatterLayout",
    "ForwarderSettings",
    "Layout",
    "LogEvent",
    "MessageLayout",
    "SchedulerState",
    "SlackBatchError",
    "SlackBatchForwarder",
    "SlackSettings",
    "TextComposer",
    "load_settings",
    "truncate",
]
