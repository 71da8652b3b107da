import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, cast

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError

logger = logging.getLogger("toolstream.core.config")

CONFIG_FILENAME = "toolstream.yml"
OVERRIDE_FILENAME = "toolstream.override.yml"
DOTENV_FILENAME = ".env"


def _default_server_section() -> Dict[str, Any]:
    """Build the default server section."""
    return {
        "host": "127.0.0.1",
        "port": 3000,
        "access_log": False,
        "allowed_origins": ["*"],
    }


def _default_sse_section() -> Dict[str, Any]:
    """Build the default sse section."""
    return {
        "retry_ms": 10000,
        "keepalive_seconds": 15,
        "max_queued_events": 256,
    }


def _default_log_section() -> Dict[str, Any]:
    return {
        "level": "INFO",
        "path": None,
        "max_bytes": 10 * 1024 * 1024,
        "backup_count": 3,
    }


def default_config_data() -> Dict[str, Any]:
    return {
        "server": _default_server_section(),
        "sse": _default_sse_section(),
        "log": _default_log_section(),
    }


@dataclasses.dataclass
class LogConfig:
    level: str
    path: Optional[Path]
    max_bytes: int
    backup_count: int


@dataclasses.dataclass
class SseConfig:
    retry_ms: int
    keepalive_seconds: float
    max_queued_events: int


@dataclasses.dataclass
class ServerConfig:
    root: Path
    host: str
    port: int
    access_log: bool
    allowed_origins: List[str]
    sse: SseConfig
    log: LogConfig

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


def _merge_defaults(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = cast(Dict[str, Any], json.loads(json.dumps(base)))
    for key, value in overrides.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml_dict(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def load_config_data(root: Path) -> Dict[str, Any]:
    """Load defaults, then the root config file, then its override file."""
    merged = default_config_data()
    base = _load_yaml_dict(root / CONFIG_FILENAME)
    if base:
        merged = _merge_defaults(merged, base)
    override_path = root / OVERRIDE_FILENAME
    try:
        override = _load_yaml_dict(override_path)
    except ConfigError as exc:
        raise ConfigError(
            f"Invalid override config {override_path}; fix or delete it: {exc}"
        ) from exc
    if override:
        merged = _merge_defaults(merged, override)
    return merged


def load_dotenv_for_root(root: Path) -> None:
    """Best-effort load of `<root>/.env` into the process environment."""
    try:
        candidate = root.resolve() / DOTENV_FILENAME
        if candidate.exists():
            load_dotenv(dotenv_path=candidate, override=False)
    except OSError as exc:
        logger.debug("Failed to load .env file: %s", exc)


def apply_env_overrides(data: Dict[str, Any], env: Mapping[str, str]) -> Dict[str, Any]:
    """Apply environment overrides on top of file config.

    `PORT` is honoured for platform compatibility; `TOOLSTREAM_PORT` wins
    when both are set.
    """
    merged = _merge_defaults(data, {})
    server = merged.setdefault("server", {})
    log = merged.setdefault("log", {})
    for key in ("PORT", "TOOLSTREAM_PORT"):
        value = (env.get(key) or "").strip()
        if value:
            server["port"] = value
    host = (env.get("TOOLSTREAM_HOST") or "").strip()
    if host:
        server["host"] = host
    level = (env.get("TOOLSTREAM_LOG_LEVEL") or "").strip()
    if level:
        log["level"] = level
    return merged


def _section(data: Mapping[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{name} must be a mapping")
    return section


def _parse_int(
    section: Mapping[str, Any], prefix: str, key: str, *, minimum: int = 0
) -> int:
    raw = section.get(key)
    if isinstance(raw, bool):
        raise ConfigError(f"{prefix}.{key} must be an integer")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{prefix}.{key} must be an integer") from None
    if value < minimum:
        raise ConfigError(f"{prefix}.{key} must be >= {minimum}")
    return value


def _parse_float(
    section: Mapping[str, Any], prefix: str, key: str, *, minimum: float = 0.0
) -> float:
    raw = section.get(key)
    if isinstance(raw, bool):
        raise ConfigError(f"{prefix}.{key} must be a number")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{prefix}.{key} must be a number") from None
    if value <= minimum:
        raise ConfigError(f"{prefix}.{key} must be > {minimum}")
    return value


def _parse_origins(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise ConfigError("server.allowed_origins must be a list of strings")
    return [str(entry).strip() for entry in raw if str(entry).strip()]


def _parse_log_level(raw: Any) -> str:
    level = str(raw or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"log.level is not a valid logging level: {raw!r}")
    return level


def build_config(root: Path, data: Mapping[str, Any]) -> ServerConfig:
    server = _section(data, "server")
    sse = _section(data, "sse")
    log = _section(data, "log")

    host = str(server.get("host") or "").strip()
    if not host:
        raise ConfigError("server.host is required")
    port = _parse_int(server, "server", "port", minimum=1)
    if port > 65535:
        raise ConfigError("server.port must be <= 65535")

    log_path_raw = log.get("path")
    log_path: Optional[Path] = None
    if log_path_raw:
        log_path = Path(str(log_path_raw)).expanduser()
        if not log_path.is_absolute():
            log_path = root / log_path

    return ServerConfig(
        root=root,
        host=host,
        port=port,
        access_log=bool(server.get("access_log", False)),
        allowed_origins=_parse_origins(server.get("allowed_origins")),
        sse=SseConfig(
            retry_ms=_parse_int(sse, "sse", "retry_ms"),
            keepalive_seconds=_parse_float(sse, "sse", "keepalive_seconds"),
            max_queued_events=_parse_int(sse, "sse", "max_queued_events", minimum=1),
        ),
        log=LogConfig(
            level=_parse_log_level(log.get("level")),
            path=log_path,
            max_bytes=_parse_int(log, "log", "max_bytes", minimum=1),
            backup_count=_parse_int(log, "log", "backup_count"),
        ),
    )


def load_config(
    root: Optional[Path] = None, *, env: Optional[Mapping[str, str]] = None
) -> ServerConfig:
    """Load the server config for `root` (defaults to the current directory).

    When `env` is not given, `<root>/.env` is loaded first and the process
    environment supplies overrides.
    """
    root = (root or Path.cwd()).resolve()
    if env is None:
        load_dotenv_for_root(root)
        env = os.environ
    data = apply_env_overrides(load_config_data(root), env)
    return build_config(root, data)


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "LogConfig",
    "OVERRIDE_FILENAME",
    "ServerConfig",
    "SseConfig",
    "apply_env_overrides",
    "build_config",
    "default_config_data",
    "load_config",
    "load_config_data",
]
