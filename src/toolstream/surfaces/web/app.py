import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ...core.config import ServerConfig, load_config
from ...core.logging_utils import log_event
from ...routes.events import build_event_routes
from ...routes.system import build_system_routes
from .app_state import AppContext, apply_app_context, build_app_context


def _app_lifespan(context: AppContext):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_event(
            context.logger,
            logging.INFO,
            "toolstream.server.started",
            host=context.config.host,
            port=context.config.port,
        )
        try:
            yield
        finally:
            # Closing the sinks ends every open stream so shutdown is not held
            # up by long-lived subscribers.
            closed = context.registry.close_all()
            log_event(
                context.logger,
                logging.INFO,
                "toolstream.server.stopped",
                closed_connections=closed,
            )

    return lifespan


def create_app(
    config: Optional[ServerConfig] = None,
    *,
    context: Optional[AppContext] = None,
) -> FastAPI:
    """Build the FastAPI app serving the SSE channel.

    Pass `context` to share an existing registry with in-process tool code;
    otherwise a fresh one is built from `config` (loaded from the current
    directory when omitted).
    """
    if context is None:
        context = build_app_context(config or load_config())
    app = FastAPI(redirect_slashes=False, lifespan=_app_lifespan(context))
    apply_app_context(app, context)

    allowed_origins = context.config.allowed_origins
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(build_system_routes())
    app.include_router(build_event_routes())
    return app


__all__ = ["create_app"]
