"""Test harness configuration.

This repo uses a `src/` layout. Ensure tests always import the in-repo code
even if an older installed `toolstream` package is on the path.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS = 60


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = str(repo_root / "src")
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Apply a default per-test timeout to non-integration tests."""
    _ = session, config
    for item in items:
        if item.get_closest_marker("integration") is not None:
            continue
        item.add_marker(pytest.mark.timeout(DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS))


class RecordingSink:
    """Sink that keeps every frame written to it; optionally fails writes."""

    def __init__(self, *, fail: bool = False) -> None:
        self.frames: list[str] = []
        self.fail = fail
        self.closed = False

    def write(self, frame: str) -> None:
        if self.fail:
            raise OSError("broken pipe")
        self.frames.append(frame)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def recording_sink_factory():
    return RecordingSink


@pytest.fixture()
def server_config(tmp_path: Path):
    from toolstream.core.config import build_config, default_config_data

    return build_config(tmp_path, default_config_data())


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"
