"""Size/time bounded event buffer."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .types import Sink

logger = logging.getLogger("sfrelay")

DEFAULT_LIMIT_BYTES = 1024 * 1024
DEFAULT_TIMEOUT_SECONDS = 1.0


@dataclass(frozen=True)
class BufferedEvent:
    event: str
    properties: dict[str, Any]
    size: int
    sink: Sink


FlushCallback = Callable[[list[BufferedEvent]], Awaitable[None]]


class EventBuffer:
    """Accumulates routed events and hands them to ``on_flush`` in batches.

    A flush happens when the buffered byte size reaches ``limit_bytes``
    (inside ``add``, which then waits for the flush) or when the oldest
    buffered event is ``timeout_seconds`` old (checked by a background
    task started with ``start``).

    Draining is a single synchronous step, so events added while a batch
    is being delivered always land in the next batch. Batches are handed to
    ``on_flush`` one at a time, in the order they were drained.
    """

    def __init__(
        self,
        on_flush: FlushCallback,
        *,
        limit_bytes: int = DEFAULT_LIMIT_BYTES,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        tick_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger = logger,
    ) -> None:
        self._on_flush = on_flush
        self._limit_bytes = limit_bytes
        self._timeout_seconds = timeout_seconds
        self._tick_seconds = (
            tick_seconds if tick_seconds is not None else min(timeout_seconds, 0.1)
        )
        self._clock = clock
        self._logger = logger

        self._events: list[BufferedEvent] = []
        self._size = 0
        self._started_at: float | None = None
        self._flush_lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self._timer: asyncio.Task[None] | None = None

    @property
    def size(self) -> int:
        return self._size

    @property
    def events(self) -> tuple[BufferedEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._timer is None:
            self._timer = asyncio.ensure_future(self._run_timer())

    async def close(self) -> None:
        """Stop the timer, then flush whatever is left. May raise."""
        self._stopped.set()
        if self._timer is not None:
            await self._timer
            self._timer = None
        await self.flush()

    # ------------------------------------------------------------------
    # Buffering
    # ------------------------------------------------------------------

    async def add(self, item: BufferedEvent) -> None:
        if not self._events:
            self._started_at = self._clock()
        self._events.append(item)
        self._size += item.size
        if self._size >= self._limit_bytes:
            self._logger.debug(
                "[sfrelay] Buffer reached %d bytes, flushing %d events",
                self._size,
                len(self._events),
            )
            await self.flush()

    async def flush(self) -> None:
        batch = self._drain()
        if not batch:
            return
        async with self._flush_lock:
            await self._on_flush(batch)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _drain(self) -> list[BufferedEvent]:
        batch, self._events = self._events, []
        self._size = 0
        self._started_at = None
        return batch

    def _is_due(self) -> bool:
        return (
            self._started_at is not None
            and self._clock() - self._started_at >= self._timeout_seconds
        )

    async def _run_timer(self) -> None:
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._tick_seconds)
            except asyncio.TimeoutError:
                pass
            if self._stopped.is_set():
                return
            if not self._is_due():
                continue
            # Nobody awaits a timer-driven flush, so its failure ends here.
            try:
                await self.flush()
            except Exception as exc:
                self._logger.error("[sfrelay] Timed flush failed: %s", exc)
