import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import typer

from ....core.exceptions import TransientError
from ....core.retry import retry_transient
from ....core.sse import ReceivedEvent, parse_sse_lines


def _event_payload(
    data: str, *, event: Optional[str] = None, event_id: Optional[str] = None
) -> dict[str, Any]:
    payload: dict[str, Any] = {"data": data}
    if event:
        payload["event"] = event
    if event_id:
        payload["id"] = event_id
    return payload


def _render_event(received: ReceivedEvent, *, as_json: bool) -> str:
    if as_json:
        return json.dumps(
            {"event": received.event, "id": received.id, "data": received.data}
        )
    return f"[{received.event}] {received.data}"


async def listen_for_events(
    url: str,
    *,
    count: Optional[int],
    emit: Callable[[ReceivedEvent], None],
    max_attempts: int = 5,
) -> int:
    """Stream events from `url`, reconnecting on transport errors.

    Returns the number of events emitted. Frames without data (the initial
    retry hint) are skipped.
    """
    received = 0

    @retry_transient(max_attempts=max_attempts)
    async def _listen_once() -> None:
        nonlocal received
        timeout = httpx.Timeout(10.0, read=None)
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    async for event in parse_sse_lines(response.aiter_lines()):
                        if not event.data:
                            continue
                        emit(event)
                        received += 1
                        if count is not None and received >= count:
                            return
        except httpx.TransportError as exc:
            raise TransientError(f"Connection to {url} lost: {exc}") from exc

    await _listen_once()
    return received


def register_event_commands(
    app: typer.Typer,
    *,
    require_config: Callable,
    build_server_url: Callable,
    request_json: Callable,
    describe_http_error: Callable,
    raise_exit: Callable,
) -> None:
    root_option = typer.Option(None, "--root", help="Directory holding toolstream.yml")
    url_option = typer.Option(
        None, "--url", help="Server base URL (defaults to the configured host/port)"
    )

    @app.command("listen")
    def listen(
        root: Optional[Path] = root_option,
        url: Optional[str] = url_option,
        count: Optional[int] = typer.Option(
            None, "--count", "-n", min=1, help="Exit after this many events"
        ),
        output_json: bool = typer.Option(
            False, "--json", help="Print one JSON object per event"
        ),
    ):
        """Subscribe to the event channel and print events as they arrive."""
        config = require_config(root)
        target = build_server_url(config, "/sse", url=url)

        def _emit(event: ReceivedEvent) -> None:
            typer.echo(_render_event(event, as_json=output_json))

        try:
            asyncio.run(listen_for_events(target, count=count, emit=_emit))
        except TransientError as exc:
            raise_exit(str(exc), cause=exc)
        except httpx.HTTPError as exc:
            raise_exit(describe_http_error(exc), cause=exc)
        except KeyboardInterrupt:
            raise typer.Exit(code=0) from None

    @app.command("send")
    def send(
        client_id: str = typer.Argument(..., help="Target connection id"),
        data: str = typer.Argument(..., help="Event data"),
        event: Optional[str] = typer.Option(None, "--event", help="Event type"),
        event_id: Optional[str] = typer.Option(None, "--id", help="Event id"),
        root: Optional[Path] = root_option,
        url: Optional[str] = url_option,
    ):
        """Send one event to a single connection."""
        config = require_config(root)
        target = build_server_url(config, f"/sse/event/{client_id}", url=url)
        try:
            request_json(
                "POST", target, _event_payload(data, event=event, event_id=event_id)
            )
        except httpx.HTTPError as exc:
            raise_exit(describe_http_error(exc), cause=exc)
        except ValueError as exc:
            raise_exit(str(exc), cause=exc)
        typer.echo(f"Sent to {client_id}")

    @app.command("broadcast")
    def broadcast(
        data: str = typer.Argument(..., help="Event data"),
        event: Optional[str] = typer.Option(None, "--event", help="Event type"),
        event_id: Optional[str] = typer.Option(None, "--id", help="Event id"),
        root: Optional[Path] = root_option,
        url: Optional[str] = url_option,
    ):
        """Broadcast one event to every connection."""
        config = require_config(root)
        target = build_server_url(config, "/sse/broadcast", url=url)
        try:
            result = request_json(
                "POST", target, _event_payload(data, event=event, event_id=event_id)
            )
        except httpx.HTTPError as exc:
            raise_exit(describe_http_error(exc), cause=exc)
        except ValueError as exc:
            raise_exit(str(exc), cause=exc)
        typer.echo(f"Broadcast to {result.get('clientCount', 0)} client(s)")

    @app.command("clients")
    def clients(
        root: Optional[Path] = root_option,
        url: Optional[str] = url_option,
        output_json: bool = typer.Option(False, "--json", help="Emit JSON payload"),
    ):
        """List live connection ids."""
        config = require_config(root)
        target = build_server_url(config, "/sse/clients", url=url)
        try:
            result = request_json("GET", target)
        except httpx.HTTPError as exc:
            raise_exit(describe_http_error(exc), cause=exc)
        except ValueError as exc:
            raise_exit(str(exc), cause=exc)
        if output_json:
            typer.echo(json.dumps(result, indent=2))
            return
        ids = result.get("clients") or []
        typer.echo(f"{result.get('count', len(ids))} client(s) connected")
        for client_id in ids:
            typer.echo(f"- {client_id}")
