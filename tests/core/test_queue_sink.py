import asyncio
import threading

import pytest

from toolstream.core.exceptions import SinkClosedError, SinkFullError
from toolstream.core.sinks import EventSink, QueueSink
from toolstream.core.sse import KEEPALIVE_FRAME


@pytest.mark.anyio
async def test_frames_are_yielded_in_write_order() -> None:
    sink = QueueSink()
    sink.write("a")
    sink.write("b")
    sink.close()

    assert [frame async for frame in sink.frames()] == ["a", "b"]


@pytest.mark.anyio
async def test_write_after_close_raises() -> None:
    sink = QueueSink()
    sink.close()
    sink.close()
    with pytest.raises(SinkClosedError):
        sink.write("late")


@pytest.mark.anyio
async def test_full_buffer_rejects_writes_without_blocking() -> None:
    sink = QueueSink(max_queued=2)
    sink.write("1")
    sink.write("2")
    with pytest.raises(SinkFullError):
        sink.write("3")
    assert sink.pending() == 2


@pytest.mark.anyio
async def test_idle_stream_yields_keepalive() -> None:
    sink = QueueSink()
    frames = sink.frames(keepalive_seconds=0.01)
    assert await frames.__anext__() == KEEPALIVE_FRAME
    await frames.aclose()


@pytest.mark.anyio
async def test_write_from_another_thread_wakes_reader() -> None:
    sink = QueueSink()
    frames = sink.frames(keepalive_seconds=5)

    def _writer() -> None:
        sink.write("from-thread")

    pending = asyncio.ensure_future(frames.__anext__())
    await asyncio.sleep(0)
    thread = threading.Thread(target=_writer)
    thread.start()
    thread.join()

    assert await asyncio.wait_for(pending, timeout=2) == "from-thread"
    await frames.aclose()


@pytest.mark.anyio
async def test_queue_sink_satisfies_protocol() -> None:
    assert isinstance(QueueSink(), EventSink)


def test_max_queued_must_be_positive() -> None:
    loop = asyncio.new_event_loop()
    try:
        with pytest.raises(ValueError):
            QueueSink(max_queued=0, loop=loop)
    finally:
        loop.close()
