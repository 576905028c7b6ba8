"""
Configuration models for slackbatch using Pydantic v2 Settings.

Settings are validated once at construction and are immutable afterwards;
changing the flush cadence goes through ``SlackBatchForwarder.reconfigure``
which validates a fresh ``BatchingSettings`` and restarts the scheduler.

Environment variables use the ``SLACKBATCH_`` prefix and ``__`` as the nested
delimiter, e.g. ``SLACKBATCH_SLACK__WEBHOOK_URL`` or
``SLACKBATCH_BATCHING__MODE=window``.
"""

from __future__ import annotations

from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .buffer import DEFAULT_CAPACITY
from .composer import DEFAULT_MAX_EVENT_TEXT_LENGTH, DEFAULT_MAX_MESSAGE_TEXT_LENGTH
from .errors import ConfigurationError

DEFAULT_BANNER_TEXT = "Following messages are batched:"
DEFAULT_ADVISORY_TEXT = (
    "Messages are arriving quickly; further messages will be batched "
    "for the next {window_millis} ms."
)


class SlackSettings(BaseModel):
    """Webhook endpoint and message identity."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    webhook_url: str = Field(description="Slack incoming webhook URL")
    channel: str | None = Field(
        default=None, description="Target '#channel' or '@username' override"
    )
    username: str | None = Field(default=None, description="Sender name override")
    icon_emoji: str | None = Field(default=None, description="Sender icon, e.g. ':ghost:'")
    color: str | None = Field(
        default=None,
        description="Send text as an attachment with this color (e.g. 'danger', '#439FE0')",
    )
    timeout_seconds: float = Field(
        default=5.0, gt=0.0, description="HTTP timeout for one webhook POST"
    )

    @field_validator("webhook_url")
    @classmethod
    def _validate_webhook_url(cls, value: str) -> str:
        value = value.strip()
        try:
            url = httpx.URL(value)
        except (httpx.InvalidURL, TypeError) as exc:
            raise ValueError(f"webhook_url is not a valid URL: {exc}") from exc
        if url.scheme not in {"http", "https"} or not url.host:
            raise ValueError("webhook_url must be an absolute http(s) URL")
        return value


class BatchingSettings(BaseModel):
    """Buffering, truncation and flush cadence."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: Literal["interval", "window"] = Field(
        default="interval",
        description="'interval' flushes every batching_secs; 'window' coalesces bursts",
    )
    batching_secs: float = Field(
        default=10.0, gt=0.0, description="Seconds between flushes in interval mode"
    )
    window_millis: int = Field(
        default=2000, ge=0, description="Coalescing window in window mode"
    )
    buffer_capacity: int = Field(
        default=DEFAULT_CAPACITY, ge=1, description="Maximum pending events"
    )
    max_event_text_length: int = Field(
        default=DEFAULT_MAX_EVENT_TEXT_LENGTH,
        ge=3,
        description="Per-event rendered text limit",
    )
    max_message_text_length: int = Field(
        default=DEFAULT_MAX_MESSAGE_TEXT_LENGTH,
        ge=32,
        description="Whole-message text limit",
    )
    banner_text: str | None = Field(
        default=DEFAULT_BANNER_TEXT,
        description="Prepended to window-mode batches holding more than one event",
    )
    advisory_enabled: bool = Field(
        default=True,
        description="Window mode: announce once per window that messages are coalesced",
    )
    advisory_text: str = Field(default=DEFAULT_ADVISORY_TEXT)

    @property
    def window_seconds(self) -> float:
        return self.window_millis / 1000.0


class CoreSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    enable_metrics: bool = Field(
        default=False, description="Enable Prometheus-compatible metrics"
    )


class ForwarderSettings(BaseSettings):
    """Top-level forwarder configuration."""

    slack: SlackSettings
    batching: BatchingSettings = Field(default_factory=BatchingSettings)
    core: CoreSettings = Field(default_factory=CoreSettings)

    model_config = SettingsConfigDict(
        env_prefix="SLACKBATCH_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    def with_batching(self, **changes: Any) -> ForwarderSettings:
        """Return a copy with validated batching changes applied."""
        batching = _validate(
            BatchingSettings, {**self.batching.model_dump(), **changes}
        )
        return self.model_copy(update={"batching": batching})


def _validate(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise _to_configuration_error(exc) from exc


def _to_configuration_error(exc: ValidationError) -> ConfigurationError:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ())) or None
    return ConfigurationError(f"invalid slackbatch settings: {exc}", field=field)


def load_settings(**overrides: Any) -> ForwarderSettings:
    """Build settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: when any value fails validation (for example a
            malformed webhook URL). Raised immediately, never at first flush.
    """
    try:
        return ForwarderSettings(**overrides)
    except ValidationError as exc:
        raise _to_configuration_error(exc) from exc


__all__ = [
    "BatchingSettings",
    "CoreSettings",
    "DEFAULT_ADVISORY_TEXT",
    "DEFAULT_BANNER_TEXT",
    "ForwarderSettings",
    "SlackSettings",
    "load_settings",
]
