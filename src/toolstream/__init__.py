"""Real-time tool-call notifications over Server-Sent Events."""

from .core.delivery import DeliveryReport, EventDelivery
from .core.notifications import ToolNotifier, ToolResult, sanitize_args
from .core.registry import ConnectionRegistry
from .core.sse import SSEEvent

__all__ = [
    "ConnectionRegistry",
    "DeliveryReport",
    "EventDelivery",
    "SSEEvent",
    "ToolNotifier",
    "ToolResult",
    "sanitize_args",
]
