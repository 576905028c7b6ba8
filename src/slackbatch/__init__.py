"""
Public entrypoints for slackbatch.

Batches log events and delivers condensed digests to a Slack incoming
webhook on a fixed interval or a coalescing window.
"""

from __future__ import annotations

import logging

from ._version import __version__
from .core.engine import SlackBatchForwarder
from .core.errors import ConfigurationError, SlackBatchError
from .core.events import LogEvent
from .core.layout import FormatterLayout, Layout, MessageLayout
from .core.settings import ForwarderSettings, load_settings
from .sinks import NotificationSink, SinkError, SlackWebhookSink
from .stdlib_bridge import SlackBatchHandler, enable_stdlib_bridge

__all__ = [
    "ConfigurationError",
    "FormatterLayout",
    "ForwarderSettings",
    "Layout",
    "LogEvent",
    "MessageLayout",
    "NotificationSink",
    "SinkError",
    "SlackBatchError",
    "SlackBatchForwarder",
    "SlackBatchHandler",
    "SlackWebhookSink",
    "VERSION",
    "__version__",
    "enable_stdlib_bridge",
    "install",
    "load_settings",
]

VERSION = __version__


def install(
    *,
    level: int = logging.WARNING,
    logger: logging.Logger | None = None,
    settings: ForwarderSettings | None = None,
    layout: Layout | None = None,
) -> SlackBatchHandler:
    """Zero-config setup: forward ``level``+ records of ``logger`` to Slack.

    @docs:examples
    ```python
    import logging
    import slackbatch

    # SLACKBATCH_SLACK__WEBHOOK_URL must be set
    handler = slackbatch.install(level=logging.ERROR)
    logging.getLogger("billing").error("payment provider timed out")

    # On shutdown: ships anything still buffered
    handler.close()
    ```

    @docs:notes
    - Reads ``SLACKBATCH_*`` environment variables unless settings are given
    - Raises ``ConfigurationError`` right away for a malformed webhook URL
    - Logging calls never block on the webhook
    """
    forwarder = SlackBatchForwarder(settings or load_settings(), layout=layout)
    return enable_stdlib_bridge(forwarder, level=level, logger=logger)
