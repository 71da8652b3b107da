import logging

import typer

from ...version import get_version
from .commands.events import register_event_commands
from .commands.serve import register_serve_commands
from .commands.utils import (
    build_server_url as _build_server_url,
)
from .commands.utils import (
    describe_http_error as _describe_http_error,
)
from .commands.utils import (
    raise_exit as _raise_exit,
)
from .commands.utils import (
    request_json as _request_json,
)
from .commands.utils import (
    require_config as _require_config,
)

logger = logging.getLogger("toolstream.cli")

app = typer.Typer(add_completion=False)


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"toolstream {get_version()}")
    raise typer.Exit(code=0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    # Subcommands implement behavior; `--version` is handled eagerly.
    return


def main() -> None:
    """Entrypoint for CLI execution."""
    app()


register_serve_commands(app, require_config=_require_config)
register_event_commands(
    app,
    require_config=_require_config,
    build_server_url=_build_server_url,
    request_json=_request_json,
    describe_http_error=_describe_http_error,
    raise_exit=_raise_exit,
)


if __name__ == "__main__":
    app()
