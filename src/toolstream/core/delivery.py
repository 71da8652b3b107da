"""Unicast and broadcast delivery of events to registered connections.

Connection death is routine (tabs close, networks drop), so delivery never
raises: a failed write deregisters the connection and is reported as False.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .logging_utils import log_event
from .registry import ConnectionRegistry
from .sinks import EventSink
from .sse import SSEEvent, encode_payload, format_retry_hint, format_sse_event

logger = logging.getLogger(__name__)

DEFAULT_RETRY_MS = 10000
CONNECTED_EVENT = "connected"


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of a broadcast. Informational; callers are free to ignore it."""

    attempted: int
    delivered: int
    failed: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed


class EventDelivery:
    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    def _write(self, connection_id: str, frame: str) -> bool:
        connection = self._registry.get(connection_id)
        if connection is None:
            return False
        try:
            connection.sink.write(frame)
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "sse.delivery.failed",
                client_id=connection_id,
                exc=exc,
            )
            self._registry.remove(connection_id)
            return False
        return True

    def send_to(self, connection_id: str, event: SSEEvent) -> bool:
        """Deliver one event to one connection.

        Returns False for an unknown id (registry untouched) or when the write
        fails (the connection is removed).
        """
        return self._write(connection_id, format_sse_event(event))

    def broadcast(self, event: SSEEvent) -> DeliveryReport:
        frame = format_sse_event(event)
        targets = self._registry.list_ids()
        failed = [cid for cid in targets if not self._write(cid, frame)]
        report = DeliveryReport(
            attempted=len(targets),
            delivered=len(targets) - len(failed),
            failed=tuple(failed),
        )
        log_event(
            logger,
            logging.DEBUG,
            "sse.broadcast",
            event_name=event.event or "message",
            attempted=report.attempted,
            delivered=report.delivered,
        )
        return report

    def acknowledge(
        self, connection_id: str, *, retry_ms: Optional[int] = DEFAULT_RETRY_MS
    ) -> bool:
        """Send the reconnect hint and the `connected` event carrying the id."""
        if retry_ms is not None and not self._write(
            connection_id, format_retry_hint(retry_ms)
        ):
            return False
        return self.send_to(
            connection_id,
            SSEEvent(
                event=CONNECTED_EVENT,
                data=encode_payload({"clientId": connection_id}),
            ),
        )

    def open(
        self, sink: EventSink, *, retry_ms: Optional[int] = DEFAULT_RETRY_MS
    ) -> str:
        connection_id = self._registry.register(sink)
        self.acknowledge(connection_id, retry_ms=retry_ms)
        return connection_id


__all__ = ["CONNECTED_EVENT", "DEFAULT_RETRY_MS", "DeliveryReport", "EventDelivery"]
