"""Server-Sent Events (SSE) formatting and parsing utilities."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from .exceptions import EventValidationError

KEEPALIVE_FRAME = ": keepalive\n\n"


def _check_field(name: str, value: Optional[str]) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise EventValidationError(f"Event {name} must be a string")
    if "\n" in value or "\r" in value:
        raise EventValidationError(f"Event {name} must not contain line breaks")


@dataclass(frozen=True)
class SSEEvent:
    """An outbound Server-Sent Event.

    `data` is an opaque, already-serialized payload and must be non-empty.
    An event without a name is delivered as an untyped "message" event.
    """

    data: str
    event: Optional[str] = None
    id: Optional[str] = None
    retry: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.data, str) or not self.data:
            raise EventValidationError("Event data is required")
        _check_field("event", self.event)
        _check_field("id", self.id)
        if self.retry is not None:
            if (
                isinstance(self.retry, bool)
                or not isinstance(self.retry, int)
                or self.retry < 0
            ):
                raise EventValidationError(
                    "Event retry must be a non-negative integer"
                )


@dataclass(frozen=True)
class ReceivedEvent:
    """An event as seen by a subscriber after parsing the stream."""

    event: str
    data: str
    id: Optional[str] = None
    retry: Optional[int] = None


def encode_payload(value: object) -> str:
    """JSON-encode a structured payload for use as event data."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def format_sse_event(event: SSEEvent) -> str:
    """Format an event as one SSE frame.

    Fields are written in the order id, event, data, retry; optional fields are
    omitted when unset. Multi-line data becomes one `data:` line per line.
    """
    parts = []
    if event.id:
        parts.append(f"id: {event.id}")
    if event.event:
        parts.append(f"event: {event.event}")
    for line in event.data.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        parts.append(f"data: {line}")
    if event.retry is not None:
        parts.append(f"retry: {event.retry}")
    return "\n".join(parts) + "\n\n"


def format_retry_hint(retry_ms: int) -> str:
    return f"retry: {int(retry_ms)}\n\n"


async def parse_sse_lines(lines: AsyncIterator[str]) -> AsyncIterator[ReceivedEvent]:
    """Parse Server-Sent Events from an async line iterator.

    Args:
        lines: An async iterator of SSE text lines, without line terminators.

    Yields:
        Parsed ReceivedEvent instances. Comment lines (keepalives) are skipped.
    """
    event_name = "message"
    data_lines: list[str] = []
    event_id: Optional[str] = None
    retry_value: Optional[int] = None

    async for line in lines:
        if not line:
            if data_lines or event_id is not None or retry_value is not None:
                yield ReceivedEvent(
                    event=event_name or "message",
                    data="\n".join(data_lines),
                    id=event_id,
                    retry=retry_value,
                )
            event_name = "message"
            data_lines = []
            event_id = None
            retry_value = None
            continue

        if line.startswith(":"):
            continue

        if ":" in line:
            field, value = line.split(":", 1)
            if value.startswith(" "):
                value = value[1:]
        else:
            field, value = line, ""

        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)
        elif field == "id":
            event_id = value
        elif field == "retry":
            try:
                retry_value = int(value)
            except ValueError:
                retry_value = None

    if data_lines or event_id is not None or retry_value is not None:
        yield ReceivedEvent(
            event=event_name or "message",
            data="\n".join(data_lines),
            id=event_id,
            retry=retry_value,
        )


__all__ = [
    "KEEPALIVE_FRAME",
    "ReceivedEvent",
    "SSEEvent",
    "encode_payload",
    "format_retry_hint",
    "format_sse_event",
    "parse_sse_lines",
]
