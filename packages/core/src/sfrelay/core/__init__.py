"""sfrelay-core: route, buffer and deliver analytics events to Salesforce."""

from .buffer import BufferedEvent, EventBuffer
from .cache import CacheExtension, MemoryCache
from .client import SalesforcePipeline
from .delivery import DeliveryClient
from .errors import (
    AuthError,
    ConfigError,
    DeliveryError,
    NotReadyError,
    RetryableError,
    SalesforceRelayError,
)
from .log import make_logger
from .metrics import PipelineMetricKind, PipelineMetrics
from .properties import filter_properties, get_properties, parse_allow_list
from .routing import (
    FlatInclude,
    RoutingConfig,
    SinkMapping,
    build_routing_config,
    parse_event_sink_mapping,
    resolve,
)
from .tokens import CACHE_TOKEN, CACHE_TTL, PasswordGrant, TokenCache
from .types import PluginEvent, SalesforceConfig, Sink, validate_connection_config

__all__ = [
    # pipeline
    "SalesforcePipeline",
    # config / types
    "PluginEvent",
    "SalesforceConfig",
    "Sink",
    "validate_connection_config",
    # routing
    "FlatInclude",
    "RoutingConfig",
    "SinkMapping",
    "build_routing_config",
    "parse_event_sink_mapping",
    "resolve",
    # properties
    "filter_properties",
    "get_properties",
    "parse_allow_list",
    # tokens
    "CACHE_TOKEN",
    "CACHE_TTL",
    "CacheExtension",
    "MemoryCache",
    "PasswordGrant",
    "TokenCache",
    # delivery / buffering
    "BufferedEvent",
    "DeliveryClient",
    "EventBuffer",
    # errors
    "AuthError",
    "ConfigError",
    "DeliveryError",
    "NotReadyError",
    "RetryableError",
    "SalesforceRelayError",
    # logging / metrics
    "PipelineMetricKind",
    "PipelineMetrics",
    "make_logger",
]
