import asyncio

import pytest

from sfrelay.core import BufferedEvent, EventBuffer, Sink

SINK = Sink(path="p", method="POST")


def _item(name: str, size: int = 10) -> BufferedEvent:
    return BufferedEvent(event=name, properties={"name": name}, size=size, sink=SINK)


class Recorder:
    def __init__(self) -> None:
        self.batches: list[list[str]] = []

    async def __call__(self, batch: list[BufferedEvent]) -> None:
        self.batches.append([item.event for item in batch])


@pytest.mark.asyncio
async def test_size_tracks_buffered_events() -> None:
    buffer = EventBuffer(Recorder(), limit_bytes=100)
    await buffer.add(_item("a", 10))
    await buffer.add(_item("b", 25))

    assert buffer.size == 35
    assert len(buffer) == 2
    assert [item.event for item in buffer.events] == ["a", "b"]


@pytest.mark.asyncio
async def test_size_limit_flushes_inside_add() -> None:
    recorder = Recorder()
    buffer = EventBuffer(recorder, limit_bytes=30)

    await buffer.add(_item("a", 10))
    await buffer.add(_item("b", 10))
    assert recorder.batches == []

    await buffer.add(_item("c", 10))
    assert recorder.batches == [["a", "b", "c"]]
    assert buffer.size == 0
    assert len(buffer) == 0


@pytest.mark.asyncio
async def test_flush_of_empty_buffer_does_nothing() -> None:
    recorder = Recorder()
    buffer = EventBuffer(recorder)
    await buffer.flush()
    assert recorder.batches == []


@pytest.mark.asyncio
async def test_events_added_during_flush_go_to_next_batch() -> None:
    batches: list[list[str]] = []
    release = asyncio.Event()

    async def slow_flush(batch: list[BufferedEvent]) -> None:
        batches.append([item.event for item in batch])
        await release.wait()

    buffer = EventBuffer(slow_flush)
    await buffer.add(_item("a"))
    flushing = asyncio.ensure_future(buffer.flush())
    await asyncio.sleep(0)

    await buffer.add(_item("b"))
    assert [item.event for item in buffer.events] == ["b"]

    release.set()
    await flushing
    await buffer.flush()
    assert batches == [["a"], ["b"]]


@pytest.mark.asyncio
async def test_flush_failure_propagates_and_empties_buffer() -> None:
    async def failing(batch: list[BufferedEvent]) -> None:
        raise RuntimeError("boom")

    buffer = EventBuffer(failing)
    await buffer.add(_item("a"))

    with pytest.raises(RuntimeError, match="boom"):
        await buffer.flush()
    assert len(buffer) == 0


@pytest.mark.asyncio
async def test_time_limit_flushes_without_new_arrivals() -> None:
    recorder = Recorder()
    buffer = EventBuffer(recorder, timeout_seconds=0.05, tick_seconds=0.01)
    buffer.start()
    try:
        await buffer.add(_item("a"))
        await asyncio.sleep(0.3)
        assert recorder.batches == [["a"]]
    finally:
        await buffer.close()


@pytest.mark.asyncio
async def test_timed_flush_failure_keeps_timer_running() -> None:
    calls: list[list[str]] = []

    async def flaky(batch: list[BufferedEvent]) -> None:
        calls.append([item.event for item in batch])
        if len(calls) == 1:
            raise RuntimeError("sink down")

    buffer = EventBuffer(flaky, timeout_seconds=0.02, tick_seconds=0.01)
    buffer.start()
    try:
        await buffer.add(_item("a"))
        await asyncio.sleep(0.2)
        await buffer.add(_item("b"))
        await asyncio.sleep(0.2)
    finally:
        await buffer.close()

    assert calls == [["a"], ["b"]]


@pytest.mark.asyncio
async def test_close_flushes_remaining_events() -> None:
    recorder = Recorder()
    buffer = EventBuffer(recorder, timeout_seconds=60)
    buffer.start()
    await buffer.add(_item("a"))
    await buffer.add(_item("b"))

    await buffer.close()

    assert recorder.batches == [["a", "b"]]


@pytest.mark.asyncio
async def test_size_flush_waits_for_running_timed_flush() -> None:
    in_flight = 0
    peak = 0
    delivered: list[str] = []
    timed_flush_started = asyncio.Event()

    async def slow_flush(batch: list[BufferedEvent]) -> None:
        nonlocal in_flight, peak
        for item in batch:
            in_flight += 1
            peak = max(peak, in_flight)
            timed_flush_started.set()
            await asyncio.sleep(0.05)
            delivered.append(item.event)
            in_flight -= 1

    buffer = EventBuffer(slow_flush, limit_bytes=100, timeout_seconds=0.02, tick_seconds=0.01)
    buffer.start()
    try:
        await buffer.add(_item("a", 10))
        await timed_flush_started.wait()

        # Crosses the size limit while "a" is still being delivered.
        await buffer.add(_item("b", 200))
    finally:
        await buffer.close()

    assert peak == 1
    assert delivered == ["a", "b"]
