"""Per-connection output sinks.

A sink is the write side of one subscriber's stream. The registry and the
delivery engine only ever call `write` and `close`; how frames reach the
transport is up to the sink.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from .exceptions import SinkClosedError, SinkFullError
from .sse import KEEPALIVE_FRAME

DEFAULT_MAX_QUEUED_FRAMES = 256


@runtime_checkable
class EventSink(Protocol):
    def write(self, frame: str) -> None:
        """Write one formatted frame. Raise on failure; never block."""

    def close(self) -> None:
        """Stop accepting frames. Must be idempotent."""


class QueueSink:
    """Bounded in-memory sink feeding a single async HTTP stream.

    `write` may be called from any thread and never blocks: once
    `max_queued` frames are waiting it raises `SinkFullError`, which the
    delivery engine treats like any other dead connection. The reader side
    (`frames`) runs on the event loop the sink was created on.
    """

    def __init__(
        self,
        *,
        max_queued: int = DEFAULT_MAX_QUEUED_FRAMES,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if max_queued < 1:
            raise ValueError("max_queued must be at least 1")
        self._loop = loop or asyncio.get_running_loop()
        self._max_queued = max_queued
        self._frames: deque[str] = deque()
        self._lock = threading.Lock()
        self._wakeup = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def pending(self) -> int:
        with self._lock:
            return len(self._frames)

    def write(self, frame: str) -> None:
        with self._lock:
            if self._closed:
                raise SinkClosedError("sink is closed")
            if len(self._frames) >= self._max_queued:
                raise SinkFullError(
                    f"sink buffer full ({self._max_queued} frames pending)"
                )
            self._frames.append(frame)
        if not self._notify():
            raise SinkClosedError("event loop for this sink is closed")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._notify()

    def _notify(self) -> bool:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._wakeup.set()
            return True
        try:
            self._loop.call_soon_threadsafe(self._wakeup.set)
        except RuntimeError:
            return False
        return True

    async def frames(
        self, *, keepalive_seconds: Optional[float] = None
    ) -> AsyncIterator[str]:
        """Yield frames in write order until the sink is closed.

        When nothing is written for `keepalive_seconds`, a comment frame is
        yielded so intermediaries keep the connection open.
        """
        while True:
            with self._lock:
                pending = list(self._frames)
                self._frames.clear()
                closed = self._closed
                if not pending and not closed:
                    self._wakeup.clear()
            for frame in pending:
                yield frame
            if closed:
                return
            if pending:
                continue
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield KEEPALIVE_FRAME


__all__ = ["DEFAULT_MAX_QUEUED_FRAMES", "EventSink", "QueueSink"]
