"""Logging helpers shared by the server, the delivery core and the CLI."""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .config import LogConfig

ROOT_LOGGER_NAME = "toolstream"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _format_value(value: Any) -> str:
    if isinstance(value, BaseException):
        value = f"{type(value).__name__}: {value}"
    try:
        return json.dumps(value, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return json.dumps(str(value))


def format_event(event: str, fields: dict[str, Any]) -> str:
    parts = [event]
    for key, value in fields.items():
        parts.append(f"{key}={_format_value(value)}")
    return " ".join(parts)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    /,
    *,
    exc: Optional[BaseException] = None,
    **fields: Any,
) -> None:
    """Log a structured `event key=value ...` line.

    Values are JSON-encoded so they stay on one line and are greppable. Logging
    failures are never propagated to the caller.
    """
    if not logger.isEnabledFor(level):
        return
    if exc is not None:
        fields["exc"] = exc
    try:
        logger.log(level, format_event(event, fields))
    except Exception:
        pass


def setup_logging(config: "LogConfig") -> logging.Logger:
    """Configure the `toolstream` logger tree from config.

    Installs a stderr handler and, when `log.path` is set, a rotating file
    handler. Calling it again replaces the handlers it installed before.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(config.level)
    for handler in list(logger.handlers):
        if getattr(handler, "_toolstream_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.path is not None:
        config.path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                config.path,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        handler._toolstream_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.propagate = False
    return logger


__all__ = ["format_event", "log_event", "setup_logging"]
