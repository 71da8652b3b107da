"""In-memory registry of live push connections."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .logging_utils import log_event
from .sinks import EventSink
from .time_utils import now_iso

logger = logging.getLogger(__name__)


def new_connection_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Connection:
    id: str
    sink: EventSink
    connected_at: str = field(default_factory=now_iso)


class ConnectionRegistry:
    """Thread-safe table of live connections keyed by connection id.

    Construct one per application and pass it to whatever needs it. Every
    read and mutation takes the same lock; sinks are never written or closed
    while it is held.
    """

    def __init__(self, *, id_factory: Callable[[], str] = new_connection_id) -> None:
        self._id_factory = id_factory
        self._lock = threading.Lock()
        self._connections: Dict[str, Connection] = {}

    def register(self, sink: EventSink) -> str:
        with self._lock:
            connection_id = self._id_factory()
            while connection_id in self._connections:
                connection_id = self._id_factory()
            self._connections[connection_id] = Connection(id=connection_id, sink=sink)
            total = len(self._connections)
        log_event(
            logger,
            logging.INFO,
            "sse.client.connected",
            client_id=connection_id,
            clients=total,
        )
        return connection_id

    def remove(self, connection_id: str) -> bool:
        """Drop a connection and close its sink.

        Removing an unknown or already-removed id is a no-op and returns False.
        """
        with self._lock:
            connection = self._connections.pop(connection_id, None)
            total = len(self._connections)
        if connection is None:
            return False
        try:
            connection.sink.close()
        except Exception as exc:
            log_event(
                logger,
                logging.DEBUG,
                "sse.client.close_failed",
                client_id=connection_id,
                exc=exc,
            )
        log_event(
            logger,
            logging.INFO,
            "sse.client.disconnected",
            client_id=connection_id,
            clients=total,
        )
        return True

    def get(self, connection_id: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(connection_id)

    def count(self) -> int:
        with self._lock:
            return len(self._connections)

    def list_ids(self) -> list[str]:
        with self._lock:
            return list(self._connections)

    def close_all(self) -> int:
        removed = 0
        for connection_id in self.list_ids():
            if self.remove(connection_id):
                removed += 1
        return removed


__all__ = ["Connection", "ConnectionRegistry", "new_connection_id"]
