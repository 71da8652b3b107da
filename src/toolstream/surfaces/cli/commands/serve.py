from pathlib import Path
from typing import Callable, Optional

import typer
import uvicorn

from ....core.logging_utils import setup_logging
from ...web.app import create_app


def register_serve_commands(
    app: typer.Typer,
    *,
    require_config: Callable,
) -> None:
    @app.command("serve")
    def serve(
        root: Optional[Path] = typer.Option(
            None, "--root", help="Directory holding toolstream.yml and .env"
        ),
        host: Optional[str] = typer.Option(None, "--host", help="Host to bind"),
        port: Optional[int] = typer.Option(None, "--port", help="Port to bind"),
    ):
        """Serve the SSE event channel over HTTP."""
        config = require_config(root)
        if host:
            config.host = host
        if port:
            config.port = port
        setup_logging(config.log)
        typer.echo(f"Serving event channel on {config.base_url}/sse")
        uvicorn.run(
            create_app(config),
            host=config.host,
            port=config.port,
            access_log=config.access_log,
            log_config=None,
        )
