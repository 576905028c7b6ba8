"""
Slack incoming-webhook sink.

POSTs one JSON object per message with an ``httpx.AsyncClient``. Failures are
returned as ``SinkError`` values: any non-200 response or transport error.
There is no retry; the forwarder is best-effort.
"""

from __future__ import annotations

from typing import Any

import httpx
import orjson

from ..core.message import ComposedMessage
from ..core.settings import SlackSettings
from .base import SinkError

__all__ = ["SlackWebhookSink"]


class SlackWebhookSink:
    """Sink that delivers composed messages to a Slack webhook URL."""

    name = "slack-webhook"

    def __init__(
        self,
        config: SlackSettings | dict[str, Any],
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not isinstance(config, SlackSettings):
            config = SlackSettings.model_validate(config)
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._last_status: int | None = None
        self._last_error: str | None = None

    @property
    def config(self) -> SlackSettings:
        return self._config

    async def start(self) -> None:
        self._ensure_client()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def stop(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def send(self, message: ComposedMessage) -> SinkError | None:
        try:
            body = orjson.dumps(message.to_payload())
        except TypeError as exc:
            return self._failed(SinkError(kind="encoding", detail=str(exc)))

        client = self._ensure_client()
        try:
            resp = await client.post(
                self._config.webhook_url,
                content=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.ConnectError as exc:
            return self._failed(
                SinkError(kind="network", detail=f"cannot reach Slack, are you offline? {exc}")
            )
        except httpx.HTTPError as exc:
            return self._failed(
                SinkError(kind="network", detail=f"{type(exc).__name__}: {exc}")
            )

        self._last_status = resp.status_code
        if resp.status_code != 200:
            snippet = resp.text[:256]
            self._last_error = snippet
            return SinkError(
                kind="http_status",
                status_code=resp.status_code,
                detail=f"Bad response code: HTTP {resp.status_code} {snippet}".rstrip(),
            )
        self._last_error = None
        return None

    def _failed(self, error: SinkError) -> SinkError:
        self._last_status = error.status_code
        self._last_error = error.detail
        return error

    async def health_check(self) -> bool:
        return (
            self._last_error is None
            and self._last_status is not None
            and self._last_status < 400
        )
