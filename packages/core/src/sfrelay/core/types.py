"""Typed configuration, event and sink models."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .errors import ConfigError

__all__ = [
    "DEBUG_LOGGING_ON",
    "PluginEvent",
    "SalesforceConfig",
    "Sink",
    "validate_connection_config",
]

DEBUG_LOGGING_ON = "on"


class _Base(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Plugin configuration
# ---------------------------------------------------------------------------


class SalesforceConfig(_Base):
    """String-typed plugin configuration as supplied by the host.

    Fields are accepted by their camelCase wire name (``salesforceHost``) or
    by attribute name (``salesforce_host``).
    """

    salesforce_host: str = ""
    event_path: str = ""
    event_method_type: str = ""
    events_to_include: str = ""
    properties_to_include: str = ""
    # Either JSON text or an already-decoded object.
    event_endpoint_mapping: str | dict[str, Any] = ""
    username: str = ""
    password: str = ""
    consumer_key: str = ""
    consumer_secret: str = ""
    debug_logging: str = ""

    @property
    def debug_enabled(self) -> bool:
        return self.debug_logging.strip().lower() == DEBUG_LOGGING_ON


def _is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_connection_config(config: SalesforceConfig) -> None:
    """Raise ``ConfigError`` unless host and credentials are usable."""
    if not config.salesforce_host:
        raise ConfigError("host not provided!")
    if not _is_http_url(config.salesforce_host):
        raise ConfigError("host not a valid URL!")
    if not config.username:
        raise ConfigError("username not provided!")
    if not config.password:
        raise ConfigError("password not provided!")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class PluginEvent(BaseModel):
    """An analytics event handed over by the host.

    Unknown host fields are kept so the serialized size matches what the
    host sent.
    """

    model_config = ConfigDict(extra="allow")

    event: str
    distinct_id: str | None = None
    uuid: str | None = None
    timestamp: str | None = None
    properties: dict[str, Any] | None = None

    def serialized_size(self) -> int:
        """Byte length of the compact JSON rendering of the supplied fields."""
        return len(self.model_dump_json(exclude_unset=True).encode("utf-8"))


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class Sink(BaseModel):
    """Where one event is forwarded: path under the host, verb, property filter."""

    model_config = ConfigDict(frozen=True)

    path: str
    method: str
    properties_to_include: tuple[str, ...] = ()
