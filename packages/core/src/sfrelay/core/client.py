"""SalesforcePipeline: routes, buffers and delivers events to Salesforce."""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any, TypeVar

import httpx

from .buffer import (
    DEFAULT_LIMIT_BYTES,
    DEFAULT_TIMEOUT_SECONDS,
    BufferedEvent,
    EventBuffer,
)
from .cache import CacheExtension, MemoryCache
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
from .routing import RoutingConfig, build_routing_config
from .tokens import PasswordGrant, TokenCache
from .types import PluginEvent, SalesforceConfig, validate_connection_config

HTTP_TIMEOUT_SECONDS = 10.0

T = TypeVar("T")


class SalesforcePipeline:
    """Per-process pipeline context.

    Holds the routing config, logger, token cache, buffer and metrics that
    every operation works against. Use ``SalesforcePipeline.init()`` or
    construct and ``await setup()``; events are rejected until setup has
    succeeded.
    """

    def __init__(
        self,
        config: SalesforceConfig | Mapping[str, Any],
        *,
        http: httpx.AsyncClient | None = None,
        cache: CacheExtension | None = None,
        buffer_limit_bytes: int = DEFAULT_LIMIT_BYTES,
        buffer_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        buffer_tick_seconds: float | None = None,
    ) -> None:
        if not isinstance(config, SalesforceConfig):
            config = SalesforceConfig.model_validate(config)
        self.config = config
        self.logger = make_logger(config.debug_enabled)
        self.metrics = PipelineMetrics()
        self.cache: CacheExtension = cache if cache is not None else MemoryCache()

        self._http = http
        self._owns_http = http is None
        self._buffer_limit_bytes = buffer_limit_bytes
        self._buffer_timeout_seconds = buffer_timeout_seconds
        self._buffer_tick_seconds = buffer_tick_seconds

        self.routing: RoutingConfig | None = None
        self.tokens: TokenCache | None = None
        self.buffer: EventBuffer | None = None
        self._delivery: DeliveryClient | None = None

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    async def init(
        cls, config: SalesforceConfig | Mapping[str, Any], **kwargs: Any
    ) -> SalesforcePipeline:
        pipeline = cls(config, **kwargs)
        await pipeline.setup()
        return pipeline

    @property
    def ready(self) -> bool:
        return self.buffer is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def setup(self) -> None:
        """Validate config, fetch a token eagerly, then start buffering.

        Raises ``ConfigError`` for bad config (fatal) and ``RetryableError``
        when the token cannot be fetched. Calling it again on a ready
        pipeline swaps in the new state and drains the previous buffer.
        """
        try:
            routing = build_routing_config(self.config)
            validate_connection_config(self.config)
        except ConfigError as exc:
            self.logger.error("[sfrelay] Invalid config: %s", exc)
            raise

        if self._http is None:
            self._http = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)

        tokens = TokenCache(
            PasswordGrant(self._http, self.config, logger=self.logger),
            self.cache,
            logger=self.logger,
        )
        try:
            await tokens.get_token()
        except Exception as exc:
            # Credential or cache backend outage; the host may call setup again.
            self.logger.error("[sfrelay] Could not fetch an access token: %s", exc)
            if self.buffer is None:
                await self._close_http()
            raise RetryableError("Service is down, retry later") from exc

        self.routing = routing
        self.tokens = tokens
        self._delivery = DeliveryClient(
            self._http, self.config.salesforce_host, logger=self.logger
        )
        previous, self.buffer = self.buffer, EventBuffer(
            self._send_batch,
            limit_bytes=self._buffer_limit_bytes,
            timeout_seconds=self._buffer_timeout_seconds,
            tick_seconds=self._buffer_tick_seconds,
            logger=self.logger,
        )
        self.buffer.start()
        self.logger.debug("[sfrelay] Setup complete, routing with %s", type(routing).__name__)
        if previous is not None:
            await previous.close()

    async def teardown(self) -> None:
        """Flush remaining events once and release resources. May raise."""
        buffer, self.buffer = self.buffer, None
        try:
            if buffer is not None:
                await buffer.close()
        finally:
            await self._close_http()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def on_event(self, event: PluginEvent | Mapping[str, Any]) -> None:
        """Route ``event`` and buffer it if it has a sink."""
        if not isinstance(event, PluginEvent):
            event = PluginEvent.model_validate(event)

        if self.buffer is None or self.routing is None:
            message = (
                "There is no buffer. Setup must have failed, "
                f"cannot process event: {event.event}"
            )
            self.logger.error("[sfrelay] %s", message)
            raise NotReadyError(message)

        sink = self.routing.resolve(event.event)
        if sink is None or event.properties is None:
            self.logger.debug("[sfrelay] Skipping event %s", event.event)
            return

        self.logger.debug("[sfrelay] Buffering event %s for %s", event.event, sink.path)
        await self.buffer.add(
            BufferedEvent(
                event=event.event,
                properties=event.properties,
                size=event.serialized_size(),
                sink=sink,
            )
        )

    async def flush(self) -> None:
        """Deliver everything currently buffered."""
        if self.buffer is not None:
            await self.buffer.flush()

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    async def _send_batch(self, batch: list[BufferedEvent]) -> None:
        for index, item in enumerate(batch):
            try:
                await self._send(item)
            except SalesforceRelayError:
                dropped = len(batch) - index - 1
                if dropped:
                    self.logger.error(
                        "[sfrelay] Dropping %d unsent events from this batch", dropped
                    )
                raise

    async def _send(self, item: BufferedEvent) -> None:
        tokens = self._require(self.tokens, item)
        try:
            token = await tokens.get_token()
            try:
                await self._deliver(item, token)
            except DeliveryError as exc:
                if exc.status != HTTPStatus.UNAUTHORIZED:
                    raise
                self.logger.debug(
                    "[sfrelay] Token rejected while sending %s, refreshing", item.event
                )
                await tokens.invalidate(token)
                await self._deliver(item, await tokens.get_token())
        except (AuthError, DeliveryError) as exc:
            self.logger.error("[sfrelay] Failed to send event %s: %s", item.event, exc)
            raise

    async def _deliver(self, item: BufferedEvent, token: str) -> None:
        delivery = self._require(self._delivery, item)
        self.metrics.increment(PipelineMetricKind.TOTAL_REQUESTS)
        try:
            await delivery.deliver(
                item.sink, item.properties, token, event_name=item.event
            )
        except DeliveryError:
            self.metrics.increment(PipelineMetricKind.ERRORS)
            raise

    def _require(self, value: T | None, item: BufferedEvent) -> T:
        if value is None:
            raise NotReadyError(f"Setup has not completed, cannot send event: {item.event}")
        return value

    async def _close_http(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
