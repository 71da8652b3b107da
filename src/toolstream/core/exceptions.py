from __future__ import annotations


class ToolstreamError(Exception):
    """Base class for toolstream errors."""


class ConfigError(ToolstreamError):
    """Raised when a config file or value is invalid."""


class EventValidationError(ToolstreamError, ValueError):
    """Raised when an outbound event is malformed (for example, empty data)."""


class SinkWriteError(ToolstreamError):
    """Raised by a sink when a frame cannot be written."""


class SinkClosedError(SinkWriteError):
    pass


class SinkFullError(SinkWriteError):
    pass


class TransientError(ToolstreamError):
    """A failure worth retrying (dropped connection, refused connect)."""


__all__ = [
    "ConfigError",
    "EventValidationError",
    "SinkClosedError",
    "SinkFullError",
    "SinkWriteError",
    "ToolstreamError",
    "TransientError",
]
