from .core.config import ServerConfig, load_config
from .surfaces.web.app import create_app
from .surfaces.web.app_state import AppContext, build_app_context

__all__ = [
    "AppContext",
    "ServerConfig",
    "build_app_context",
    "create_app",
    "load_config",
]
