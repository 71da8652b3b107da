"""Tool-call lifecycle notifications broadcast to SSE subscribers.

`ToolNotifier.wrap` decorates a tool handler so every invocation emits
`tool_call_start` and then either `tool_call_complete` or `tool_call_error`.
The wrapped handler's return value and exceptions pass through untouched.
"""

from __future__ import annotations

import functools
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Union

from .delivery import DeliveryReport, EventDelivery
from .logging_utils import log_event
from .sse import SSEEvent, encode_payload
from .time_utils import now_iso

logger = logging.getLogger(__name__)

SENSITIVE_ARG_KEYS = ("password", "token")
MASK = "******"

TOOL_CALL_START = "tool_call_start"
TOOL_CALL_COMPLETE = "tool_call_complete"
TOOL_CALL_ERROR = "tool_call_error"
SCREENSHOT_TAKEN = "screenshot_taken"
CONSOLE_LOGS_UPDATED = "console_logs_updated"


@dataclass
class ToolResult:
    content: list[Any] = field(default_factory=list)
    is_error: bool = False


ToolHandler = Callable[[str, Any, Any], Union[Awaitable[Any], Any]]


def sanitize_args(args: Any) -> Any:
    """Return a shallow copy of tool arguments that is safe to broadcast.

    Top-level `password` and `token` values are masked. Nested mappings are
    copied by reference and not inspected.
    """
    if args is None:
        return {}
    if not isinstance(args, Mapping):
        return args
    sanitized = dict(args)
    for key in SENSITIVE_ARG_KEYS:
        if key in sanitized:
            sanitized[key] = MASK
    return sanitized


def result_is_error(result: Any) -> bool:
    if isinstance(result, Mapping):
        return bool(result.get("isError", result.get("is_error", False)))
    return bool(getattr(result, "is_error", False))


class ToolNotifier:
    def __init__(self, delivery: EventDelivery) -> None:
        self._delivery = delivery

    def emit(self, event_name: str, payload: Mapping[str, Any]) -> DeliveryReport:
        """Broadcast one notification. Failures are logged, never raised."""
        try:
            event = SSEEvent(event=event_name, data=encode_payload(dict(payload)))
            return self._delivery.broadcast(event)
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "tool.notify.emit_failed",
                event_name=event_name,
                exc=exc,
            )
            return DeliveryReport(attempted=0, delivered=0)

    def wrap(self, handler: ToolHandler) -> Callable[[str, Any, Any], Awaitable[Any]]:
        """Wrap `handler(name, args, context)` with lifecycle broadcasts.

        Sync handlers are accepted as well; the wrapper itself is always async.
        """

        @functools.wraps(handler)
        async def wrapper(name: str, args: Any, context: Any) -> Any:
            safe_args = sanitize_args(args)
            self.emit(
                TOOL_CALL_START,
                {"tool": name, "args": safe_args, "timestamp": now_iso()},
            )
            try:
                result = handler(name, args, context)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                log_event(
                    logger,
                    logging.DEBUG,
                    "tool.notify.error",
                    tool=name,
                    exc=exc,
                )
                self.emit(
                    TOOL_CALL_ERROR,
                    {
                        "tool": name,
                        "args": safe_args,
                        "error": str(exc) or type(exc).__name__,
                        "timestamp": now_iso(),
                    },
                )
                raise
            self.emit(
                TOOL_CALL_COMPLETE,
                {
                    "tool": name,
                    "args": safe_args,
                    "success": not result_is_error(result),
                    "timestamp": now_iso(),
                },
            )
            return result

        return wrapper

    def browser_event(self, event: str, details: Any = None) -> DeliveryReport:
        return self.emit(
            f"browser_{event}",
            {"event": event, "details": details, "timestamp": now_iso()},
        )

    def screenshot_taken(self, name: str, has_selector: bool) -> DeliveryReport:
        return self.emit(
            SCREENSHOT_TAKEN,
            {
                "name": name,
                "type": "element" if has_selector else "page",
                "timestamp": now_iso(),
            },
        )

    def console_logs_updated(self, count: int) -> DeliveryReport:
        return self.emit(
            CONSOLE_LOGS_UPDATED, {"count": count, "timestamp": now_iso()}
        )


__all__ = [
    "CONSOLE_LOGS_UPDATED",
    "MASK",
    "SCREENSHOT_TAKEN",
    "SENSITIVE_ARG_KEYS",
    "TOOL_CALL_COMPLETE",
    "TOOL_CALL_ERROR",
    "TOOL_CALL_START",
    "ToolHandler",
    "ToolNotifier",
    "ToolResult",
    "result_is_error",
    "sanitize_args",
]
