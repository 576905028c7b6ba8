"""Outgoing Slack message model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ComposedMessage:
    """One message handed to a sink: text plus optional identity and target.

    ``channel`` accepts ``#channel`` or ``@username``. When ``color`` is set
    the text is sent as a colored attachment instead of the plain ``text``
    field.
    """

    text: str
    username: str | None = None
    icon_emoji: str | None = None
    channel: str | None = None
    color: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.username is not None:
            payload["username"] = self.username
        if self.icon_emoji is not None:
            payload["icon_emoji"] = self.icon_emoji
        if self.channel is not None:
            payload["channel"] = self.channel
        if self.color is None:
            payload["text"] = self.text
        else:
            # https://api.slack.com/docs/formatting
            payload["attachments"] = [
                {"color": self.color, "fields": [{"value": self.text}]}
            ]
        return payload


__all__ = ["ComposedMessage"]
