from __future__ import annotations

from .base import NotificationSink, SinkError, SinkErrorKind
from .slack_webhook import SlackWebhookSink

__all__ = [
    "NotificationSink",
    "SinkError",
    "SinkErrorKind",
    "SlackWebhookSink",
]
