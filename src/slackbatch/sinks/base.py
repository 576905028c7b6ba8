from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

from ..core.message import ComposedMessage

SinkErrorKind = Literal["http_status", "network", "encoding", "exception"]


@dataclass(frozen=True)
class SinkError:
    """Why a delivery failed. Returned, not raised; the scheduler only logs it."""

    kind: SinkErrorKind
    detail: str
    status_code: int | None = None

    def as_fields(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "status_code": self.status_code,
            "detail": self.detail,
        }


@runtime_checkable
class NotificationSink(Protocol):
    """Delivery boundary for composed messages.

    Implementations are called only from the scheduler's flush loop, one
    message at a time, so messages reach the sink in order. ``send`` returns
    ``None`` on success and a ``SinkError`` on failure; it should not raise.
    """

    async def start(self) -> None:  # Optional lifecycle hook
        ...

    async def stop(self) -> None:  # Optional lifecycle hook
        ...

    async def send(self, message: ComposedMessage) -> SinkError | None:
        ...


__all__ = ["NotificationSink", "SinkError", "SinkErrorKind"]
