import json

import pytest
from fastapi.testclient import TestClient

from toolstream.core.delivery import EventDelivery
from toolstream.core.registry import ConnectionRegistry
from toolstream.core.sinks import QueueSink
from toolstream.core.sse import SSEEvent
from toolstream.routes.events import SSE_HEADERS, event_stream
from toolstream.surfaces.web.app import create_app
from toolstream.surfaces.web.app_state import build_app_context


@pytest.fixture()
def app(server_config):
    return create_app(server_config)


@pytest.fixture()
def client(app):
    return TestClient(app)


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_send_event_to_client(app, client, recording_sink_factory) -> None:
    sink = recording_sink_factory()
    client_id = app.state.registry.register(sink)

    response = client.post(
        f"/sse/event/{client_id}", json={"event": "ping", "data": "hello", "id": "7"}
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert sink.frames == ["id: 7\nevent: ping\ndata: hello\n\n"]


def test_send_event_encodes_structured_data(app, client, recording_sink_factory) -> None:
    sink = recording_sink_factory()
    client_id = app.state.registry.register(sink)

    response = client.post(f"/sse/event/{client_id}", json={"data": {"step": 1}})

    assert response.status_code == 200
    assert sink.frames == ['data: {"step":1}\n\n']


def test_send_event_unknown_client_is_404(client) -> None:
    response = client.post("/sse/event/missing", json={"data": "x"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Client not found"


def test_send_event_to_dead_client_is_404(app, client, recording_sink_factory) -> None:
    client_id = app.state.registry.register(recording_sink_factory(fail=True))

    response = client.post(f"/sse/event/{client_id}", json={"data": "x"})

    assert response.status_code == 404
    assert app.state.registry.count() == 0


@pytest.mark.parametrize("body", [None, {}, {"data": ""}, {"event": "x"}])
def test_missing_data_is_400(client, body) -> None:
    if body is None:
        response = client.post("/sse/broadcast")
    else:
        response = client.post("/sse/broadcast", json=body)
    assert response.status_code == 400
    assert response.json()["detail"] == "Event data is required"


def test_invalid_event_name_is_400(app, client, recording_sink_factory) -> None:
    client_id = app.state.registry.register(recording_sink_factory())
    response = client.post(
        f"/sse/event/{client_id}", json={"event": "a\nb", "data": "x"}
    )
    assert response.status_code == 400


def test_broadcast_reports_live_client_count(app, client, recording_sink_factory) -> None:
    sinks = [recording_sink_factory() for _ in range(3)]
    sinks[1].fail = True
    for sink in sinks:
        app.state.registry.register(sink)

    response = client.post("/sse/broadcast", json={"event": "tick", "data": "go"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "clientCount": 2}
    assert sinks[0].frames == ["event: tick\ndata: go\n\n"]
    assert sinks[2].frames == ["event: tick\ndata: go\n\n"]


def test_list_clients(app, client, recording_sink_factory) -> None:
    ids = {app.state.registry.register(recording_sink_factory()) for _ in range(2)}

    payload = client.get("/sse/clients").json()

    assert payload["count"] == 2
    assert set(payload["clients"]) == ids


def test_cors_allows_configured_origins(client) -> None:
    response = client.get("/health", headers={"Origin": "http://example.com"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_shared_context_reaches_routes(server_config, recording_sink_factory) -> None:
    context = build_app_context(server_config)
    sink = recording_sink_factory()
    context.registry.register(sink)
    client = TestClient(create_app(context=context))

    context.notifier.console_logs_updated(1)

    assert client.get("/sse/clients").json()["count"] == 1
    assert sink.frames[0].startswith("event: console_logs_updated\n")


def test_shutdown_closes_open_connections(app, recording_sink_factory) -> None:
    sink = recording_sink_factory()
    with TestClient(app):
        app.state.registry.register(sink)
    assert sink.closed is True
    assert app.state.registry.count() == 0


def test_sse_headers_disable_buffering() -> None:
    assert SSE_HEADERS["Cache-Control"] == "no-cache"
    assert SSE_HEADERS["X-Accel-Buffering"] == "no"


@pytest.mark.anyio
async def test_event_stream_acknowledges_and_relays() -> None:
    delivery = EventDelivery(ConnectionRegistry())
    sink = QueueSink()
    stream = event_stream(delivery, sink, retry_ms=10000, keepalive_seconds=5)

    assert await stream.__anext__() == "retry: 10000\n\n"
    connected = await stream.__anext__()
    assert connected.startswith("event: connected\ndata: ")
    client_id = json.loads(connected.split("data: ", 1)[1])["clientId"]
    assert delivery.registry.list_ids() == [client_id]

    assert delivery.send_to(client_id, SSEEvent(data="hi")) is True
    assert await stream.__anext__() == "data: hi\n\n"

    await stream.aclose()
    assert delivery.registry.count() == 0
    assert sink.closed is True


@pytest.mark.anyio
async def test_event_stream_ends_when_connection_removed() -> None:
    delivery = EventDelivery(ConnectionRegistry())
    sink = QueueSink()
    stream = event_stream(delivery, sink, retry_ms=None, keepalive_seconds=5)

    connected = await stream.__anext__()
    client_id = json.loads(connected.split("data: ", 1)[1])["clientId"]
    delivery.registry.remove(client_id)

    assert [frame async for frame in stream] == []


def test_build_app_context_keeps_empty_shared_registry(
    server_config, recording_sink_factory
) -> None:
    shared = ConnectionRegistry()
    context = build_app_context(server_config, registry=shared)
    app = create_app(context=context)

    assert context.registry is shared
    assert context.delivery.registry is shared
    assert app.state.registry is shared

    sink = recording_sink_factory()
    shared.register(sink)
    context.notifier.console_logs_updated(2)

    assert TestClient(app).get("/sse/clients").json()["count"] == 1
    assert sink.frames[0].startswith("event: console_logs_updated\n")
