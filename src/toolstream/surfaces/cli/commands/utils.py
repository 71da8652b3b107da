from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import httpx
import typer

from ....core.config import ConfigError, ServerConfig, load_config

logger = logging.getLogger("toolstream.cli")


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def require_config(root: Optional[Path]) -> ServerConfig:
    try:
        return load_config(root)
    except ConfigError as exc:
        raise_exit(str(exc), cause=exc)


def build_server_url(config: ServerConfig, path: str, *, url: Optional[str] = None) -> str:
    base = (url or config.base_url).rstrip("/")
    return f"{base}{path}"


def request_json(
    method: str,
    url: str,
    payload: Optional[dict] = None,
    *,
    timeout: float = 5.0,
) -> dict[str, Any]:
    response = httpx.request(
        method,
        url,
        json=payload,
        timeout=timeout,
        follow_redirects=True,
    )
    response.raise_for_status()
    try:
        data = response.json()
    except ValueError as exc:
        preview = (response.text or "")[:200].strip()
        raise ValueError(f"Expected JSON from {url}, got: {preview!r}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object from {url}")
    return data


def describe_http_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        detail = ""
        try:
            body = exc.response.json()
            if isinstance(body, dict):
                detail = str(body.get("detail") or body.get("error") or "")
        except ValueError:
            detail = (exc.response.text or "").strip()
        status = exc.response.status_code
        return f"Request failed ({status}): {detail}" if detail else f"Request failed ({status})"
    return f"Request failed: {exc}"
