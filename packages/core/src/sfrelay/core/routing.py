"""Event routing: which events are forwarded, and to which sink.

Two mutually exclusive configuration generations are supported:

* ``FlatInclude`` -- a comma-separated ``eventsToInclude`` list sharing one
  global sink built from ``eventPath`` / ``eventMethodType`` /
  ``propertiesToInclude``.
* ``SinkMapping`` -- an ``eventEndpointMapping`` JSON object keyed by event
  name, each entry describing its own sink.

The generation is decided once, in ``build_routing_config``; resolution per
event never re-validates.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import ConfigError
from .properties import parse_allow_list
from .types import SalesforceConfig, Sink

DEFAULT_METHOD = "POST"

MISSING_MAPPING_FIELDS = "missing salesforce path/method for mapping entry"
MISSING_EVENTS_TO_INCLUDE = "events to include required when no mapping provided"
MISSING_EVENT_PATH = "event path required when no mapping provided"
BOTH_GENERATIONS = "cannot provide both generations of routing config"


class _MappingEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    salesforce_path: str = ""
    method: str = ""
    properties_to_include: tuple[str, ...] = ()

    @field_validator("properties_to_include", mode="before")
    @classmethod
    def _split_string(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return parse_allow_list(value)
        return value


@dataclass(frozen=True)
class FlatInclude:
    events: frozenset[str]
    sink: Sink

    def resolve(self, event_name: str) -> Sink | None:
        return self.sink if event_name in self.events else None


@dataclass(frozen=True)
class SinkMapping:
    sinks: dict[str, Sink] = field(default_factory=dict)

    def resolve(self, event_name: str) -> Sink | None:
        return self.sinks.get(event_name)


RoutingConfig = FlatInclude | SinkMapping


def parse_event_sink_mapping(raw: str | dict[str, Any] | None) -> dict[str, Any] | None:
    """Decode the raw mapping value.

    Empty, unparseable, or non-object input is treated as "no mapping".
    """
    if not raw:
        return None
    if isinstance(raw, dict):
        return raw
    try:
        decoded = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(decoded, dict) or not decoded:
        return None
    return decoded


def _mapping_sink(entry: Any, default_method: str) -> Sink:
    if not isinstance(entry, dict):
        raise ConfigError(MISSING_MAPPING_FIELDS)
    try:
        parsed = _MappingEntry.model_validate(entry)
    except ValidationError as exc:
        raise ConfigError(MISSING_MAPPING_FIELDS) from exc
    path = parsed.salesforce_path.strip()
    method = (parsed.method or default_method).strip()
    if not path or not method:
        raise ConfigError(MISSING_MAPPING_FIELDS)
    return Sink(
        path=path,
        method=method,
        properties_to_include=parsed.properties_to_include,
    )


def build_routing_config(config: SalesforceConfig) -> RoutingConfig:
    """Detect the active generation and validate it, raising ``ConfigError``."""
    mapping = parse_event_sink_mapping(config.event_endpoint_mapping)
    events_to_include = config.events_to_include.strip()

    if mapping is not None:
        sinks = {
            name: _mapping_sink(entry, config.event_method_type)
            for name, entry in mapping.items()
        }
        if events_to_include:
            raise ConfigError(BOTH_GENERATIONS)
        return SinkMapping(sinks=sinks)

    if not events_to_include:
        raise ConfigError(MISSING_EVENTS_TO_INCLUDE)
    if not config.event_path.strip():
        raise ConfigError(MISSING_EVENT_PATH)

    return FlatInclude(
        events=frozenset(name.strip() for name in events_to_include.split(",")),
        sink=Sink(
            path=config.event_path.strip(),
            method=config.event_method_type.strip() or DEFAULT_METHOD,
            properties_to_include=tuple(parse_allow_list(config.properties_to_include)),
        ),
    )


def resolve(routing: RoutingConfig, event_name: str) -> Sink | None:
    return routing.resolve(event_name)
