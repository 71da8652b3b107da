import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI

from ...core.config import ServerConfig
from ...core.delivery import EventDelivery
from ...core.notifications import ToolNotifier
from ...core.registry import ConnectionRegistry


@dataclass
class AppContext:
    config: ServerConfig
    registry: ConnectionRegistry
    delivery: EventDelivery
    notifier: ToolNotifier
    logger: logging.Logger


def build_app_context(
    config: ServerConfig, registry: Optional[ConnectionRegistry] = None
) -> AppContext:
    """Wire the single registry instance into delivery and notification."""
    if registry is None:
        registry = ConnectionRegistry()
    delivery = EventDelivery(registry)
    return AppContext(
        config=config,
        registry=registry,
        delivery=delivery,
        notifier=ToolNotifier(delivery),
        logger=logging.getLogger("toolstream.web"),
    )


def apply_app_context(app: FastAPI, context: AppContext) -> None:
    app.state.context = context
    app.state.config = context.config
    app.state.registry = context.registry
    app.state.delivery = context.delivery
    app.state.notifier = context.notifier
    app.state.logger = context.logger


__all__ = ["AppContext", "apply_app_context", "build_app_context"]
