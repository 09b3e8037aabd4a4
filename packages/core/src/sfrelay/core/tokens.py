"""OAuth2 password-grant token exchange and the shared token cache."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from .cache import CacheExtension
from .errors import AuthError
from .types import SalesforceConfig
from .utils import join_url, status_ok

logger = logging.getLogger("sfrelay")

CACHE_TOKEN = "SF_AUTH_TOKEN"
CACHE_TTL = 60 * 60 * 5  # seconds
TOKEN_PATH = "services/oauth2/token"

TokenExchange = Callable[[], Awaitable[str]]


class PasswordGrant:
    """Exchanges configured credentials for an access token."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        config: SalesforceConfig,
        logger: logging.Logger = logger,
    ) -> None:
        self._http = http
        self._config = config
        self._logger = logger

    async def __call__(self) -> str:
        url = join_url(self._config.salesforce_host, TOKEN_PATH)
        form = {
            "grant_type": "password",
            "client_id": self._config.consumer_key,
            "client_secret": self._config.consumer_secret,
            "username": self._config.username,
            "password": self._config.password,
        }

        self._logger.debug("[sfrelay] Requesting access token from %s", url)
        try:
            resp = await self._http.post(url, data=form)
        except httpx.HTTPError as exc:
            raise AuthError(f"Token request to {url} failed: {exc}") from exc

        if not status_ok(resp.status_code):
            raise AuthError(
                f"Got bad response getting the token {resp.status_code}",
                status=resp.status_code,
            )

        try:
            token = resp.json()["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthError(
                "Token response did not contain an access_token", status=resp.status_code
            ) from exc
        if not isinstance(token, str) or not token:
            raise AuthError(
                "Token response did not contain an access_token", status=resp.status_code
            )
        return token


class TokenCache:
    """Holds one bearer token in a ``CacheExtension`` with a fixed TTL.

    Concurrent misses are collapsed: while an exchange is in flight every
    caller awaits that same future instead of starting another one. The
    slot is cleared once the exchange settles, so a failed exchange is
    retried by the next caller and nothing is cached for it. A caller whose
    cache read started before an exchange finished takes that exchange's
    token rather than starting another one.
    """

    def __init__(
        self,
        exchange: TokenExchange,
        cache: CacheExtension,
        *,
        key: str = CACHE_TOKEN,
        ttl_seconds: int = CACHE_TTL,
        logger: logging.Logger = logger,
    ) -> None:
        self._exchange = exchange
        self._cache = cache
        self._key = key
        self._ttl_seconds = ttl_seconds
        self._logger = logger
        self._inflight: asyncio.Future[str] | None = None
        self._generation = 0
        self._latest: str | None = None

    async def get_token(self) -> str:
        generation = self._generation
        token = await self._cache.get(self._key, None)
        if token:
            self._logger.debug("[sfrelay] Token cache hit")
            return token
        if self._inflight is None and generation != self._generation and self._latest:
            return self._latest
        return await self.refresh()

    async def refresh(self) -> str:
        """Run (or join) a credential exchange and return the new token."""
        if self._inflight is None:
            self._logger.debug("[sfrelay] Token cache miss, requesting a new access token")
            self._inflight = asyncio.ensure_future(self._exchange_and_store())
        return await asyncio.shield(self._inflight)

    async def invalidate(self, rejected: str | None = None) -> None:
        """Evict the cached token.

        With ``rejected`` given, only evict if the cache still holds that
        value; a token stored by a newer exchange is left alone.
        """
        if rejected is not None:
            current = await self._cache.get(self._key, None)
            if current != rejected:
                return
        self._latest = None
        await self._cache.expire(self._key, 0)

    async def _exchange_and_store(self) -> str:
        try:
            token = await self._exchange()
            await self._cache.set(self._key, token, self._ttl_seconds)
            self._latest = token
            self._generation += 1
            return token
        finally:
            self._inflight = None
