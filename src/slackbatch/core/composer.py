"""
Condense a batch of events into one bounded Slack message body.

Two limits apply. Each rendered event is cut to ``max_event_text_length`` so
one oversized entry cannot crowd out its batch-mates, and the whole message
is cut to ``max_message_text_length`` with a continuation marker. Events that
never made it into the message before the limit was crossed are counted in
the marker (``".. and N more"``).
"""

from __future__ import annotations

from typing import Sequence

from .events import LogEvent
from .layout import Layout

EVENT_ELLIPSIS = ".."
CONTINUATION_MARKER = "\n..\n.."
DEFAULT_MAX_EVENT_TEXT_LENGTH = 256
DEFAULT_MAX_MESSAGE_TEXT_LENGTH = 1024


def truncate(text: str, limit: int, marker: str) -> str:
    """Return ``text`` unchanged if it fits, else cut it and append ``marker``.

    The result never exceeds ``limit`` characters.
    """
    if len(text) <= limit:
        return text
    keep = max(0, limit - len(marker))
    return (text[:keep] + marker)[:limit]


def more_marker(remaining: int) -> str:
    return f"{EVENT_ELLIPSIS}\n.. and {remaining} more"


class TextComposer:
    """Pure, deterministic batch-to-text composer."""

    def __init__(
        self,
        layout: Layout,
        *,
        max_event_text_length: int = DEFAULT_MAX_EVENT_TEXT_LENGTH,
        max_message_text_length: int = DEFAULT_MAX_MESSAGE_TEXT_LENGTH,
    ) -> None:
        if max_event_text_length <= len(EVENT_ELLIPSIS):
            raise ValueError("max_event_text_length must be > 2")
        if max_message_text_length <= len(CONTINUATION_MARKER):
            raise ValueError("max_message_text_length must exceed the marker length")
        self._layout = layout
        self._max_event = max_event_text_length
        self._max_message = max_message_text_length

    @property
    def max_event_text_length(self) -> int:
        return self._max_event

    @property
    def max_message_text_length(self) -> int:
        return self._max_message

    def render_event(self, event: LogEvent) -> str:
        return truncate(self._layout.render(event), self._max_event, EVENT_ELLIPSIS)

    def compose(self, events: Sequence[LogEvent], banner: str | None = None) -> str:
        parts: list[str] = []
        length = 0
        if banner and len(events) > 1:
            parts.append(banner + "\n")
            length = len(parts[0])

        appended = 0
        for event in events:
            # Stop once the body is already over the limit; the rest are counted
            if length > self._max_message:
                break
            text = self.render_event(event)
            parts.append(text)
            length += len(text)
            appended += 1

        composite = "".join(parts)
        if len(composite) <= self._max_message:
            return composite
        remaining = len(events) - appended
        marker = more_marker(remaining) if remaining else CONTINUATION_MARKER
        return truncate(composite, self._max_message, marker)


__all__ = [
    "CONTINUATION_MARKER",
    "DEFAULT_MAX_EVENT_TEXT_LENGTH",
    "DEFAULT_MAX_MESSAGE_TEXT_LENGTH",
    "EVENT_ELLIPSIS",
    "TextComposer",
    "more_marker",
    "truncate",
]
