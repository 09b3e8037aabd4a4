"""Key-value cache extension used to persist the access token."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol


class CacheExtension(Protocol):
    """Host-provided durable cache. All operations may suspend."""

    async def get(self, key: str, default: Any) -> Any: ...

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None: ...

    async def expire(self, key: str, ttl_seconds: int) -> None: ...


class _Entry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: Any, expires_at: float | None) -> None:
        self.value = value
        self.expires_at = expires_at


class MemoryCache:
    """In-process ``CacheExtension`` honouring TTLs."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    async def get(self, key: str, default: Any) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._entries[key]
            return default
        return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        expires_at = None if ttl_seconds is None else self._clock() + ttl_seconds
        self._entries[key] = _Entry(value, expires_at)

    async def expire(self, key: str, ttl_seconds: int) -> None:
        entry = self._entries.get(key)
        if entry is None:
            return
        if ttl_seconds <= 0:
            del self._entries[key]
        else:
            entry.expires_at = self._clock() + ttl_seconds
