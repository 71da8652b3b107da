"""Core event-channel primitives."""

from .delivery import DeliveryReport, EventDelivery
from .exceptions import (
    ConfigError,
    EventValidationError,
    SinkClosedError,
    SinkFullError,
    SinkWriteError,
    ToolstreamError,
)
from .notifications import ToolNotifier, ToolResult, sanitize_args
from .registry import Connection, ConnectionRegistry
from .sinks import EventSink, QueueSink
from .sse import SSEEvent, format_sse_event, parse_sse_lines

__all__ = [
    "ConfigError",
    "Connection",
    "ConnectionRegistry",
    "DeliveryReport",
    "EventDelivery",
    "EventSink",
    "EventValidationError",
    "QueueSink",
    "SSEEvent",
    "SinkClosedError",
    "SinkFullError",
    "SinkWriteError",
    "ToolNotifier",
    "ToolResult",
    "ToolstreamError",
    "format_sse_event",
    "parse_sse_lines",
    "sanitize_args",
]
