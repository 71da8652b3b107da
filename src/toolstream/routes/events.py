"""
SSE channel routes: subscribe, unicast, broadcast and introspection.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict

from ..core.delivery import EventDelivery
from ..core.exceptions import EventValidationError
from ..core.sinks import QueueSink
from ..core.sse import SSEEvent, encode_payload


SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class EventBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    event: Optional[str] = None
    data: Any = None
    retry: Optional[int] = None


def event_from_body(body: Optional[EventBody]) -> SSEEvent:
    if body is None or body.data is None or body.data == "":
        raise HTTPException(status_code=400, detail="Event data is required")
    data = body.data if isinstance(body.data, str) else encode_payload(body.data)
    try:
        return SSEEvent(
            data=data,
            event=body.event or None,
            id=body.id or None,
            retry=body.retry,
        )
    except EventValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None


async def event_stream(
    delivery: EventDelivery,
    sink: QueueSink,
    *,
    retry_ms: Optional[int],
    keepalive_seconds: Optional[float],
) -> AsyncIterator[str]:
    """Register `sink`, then relay its frames until it closes or the client goes away."""
    client_id = delivery.open(sink, retry_ms=retry_ms)
    try:
        async for frame in sink.frames(keepalive_seconds=keepalive_seconds):
            yield frame
    finally:
        delivery.registry.remove(client_id)


def build_event_routes() -> APIRouter:
    router = APIRouter(tags=["events"])

    @router.get("/sse")
    async def subscribe(request: Request):
        config = request.app.state.config
        sink = QueueSink(max_queued=config.sse.max_queued_events)
        return StreamingResponse(
            event_stream(
                request.app.state.delivery,
                sink,
                retry_ms=config.sse.retry_ms,
                keepalive_seconds=config.sse.keepalive_seconds,
            ),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    @router.post("/sse/event/{client_id}")
    async def send_event(
        client_id: str, request: Request, body: Optional[EventBody] = None
    ) -> dict[str, Any]:
        event = event_from_body(body)
        delivery: EventDelivery = request.app.state.delivery
        if not delivery.send_to(client_id, event):
            raise HTTPException(status_code=404, detail="Client not found")
        return {"success": True}

    @router.post("/sse/broadcast")
    async def broadcast_event(
        request: Request, body: Optional[EventBody] = None
    ) -> dict[str, Any]:
        event = event_from_body(body)
        delivery: EventDelivery = request.app.state.delivery
        delivery.broadcast(event)
        return {"success": True, "clientCount": delivery.registry.count()}

    @router.get("/sse/clients")
    async def list_clients(request: Request) -> dict[str, Any]:
        registry = request.app.state.registry
        return {"count": registry.count(), "clients": registry.list_ids()}

    return router


__all__ = ["EventBody", "SSE_HEADERS", "build_event_routes", "event_from_body", "event_stream"]
