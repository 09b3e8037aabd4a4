"""Sends one event to its sink with a bearer token."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from .errors import DeliveryError
from .properties import filter_properties
from .types import Sink
from .utils import compact_json, join_url, status_ok

logger = logging.getLogger("sfrelay")


class DeliveryClient:
    """Performs a single authenticated request per call; never retries."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        host: str,
        logger: logging.Logger = logger,
    ) -> None:
        self._http = http
        self._host = host
        self._logger = logger

    async def deliver(
        self,
        sink: Sink,
        properties: Mapping[str, Any],
        token: str,
        *,
        event_name: str | None = None,
    ) -> None:
        url = join_url(self._host, sink.path)
        body = compact_json(dict(filter_properties(properties, sink.properties_to_include)))
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

        self._logger.debug("[sfrelay] Sending %s to %s %s", event_name, sink.method, url)
        try:
            resp = await self._http.request(sink.method, url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            raise DeliveryError(None, str(exc), event=event_name) from exc

        if not status_ok(resp.status_code):
            raise DeliveryError(resp.status_code, resp.text, event=event_name)
