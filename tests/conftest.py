"""Shared pytest fixtures for HAR logger tests."""

import json
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from har_logger.coordinator import shutdown
from har_logger.errors import ShutdownError
from har_logger.registry import TargetRegistry
from har_logger.settings import get_settings

TEST_CREATOR_NAME = "har-logger tests"
TEST_CREATOR_VERSION = "0.0.1"


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    """Make every test read settings from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def registry() -> Iterator[TargetRegistry]:
    """An isolated registry, shut down after the test if it is still open."""
    reg = TargetRegistry(
        creator_name=TEST_CREATOR_NAME,
        creator_version=TEST_CREATOR_VERSION,
    )
    yield reg
    if not reg.closing:
        try:
            shutdown(reg, timeout=5)
        except ShutdownError:
            pass


@pytest.fixture
def har_path(tmp_path: Path) -> Path:
    return tmp_path / "trace.har"


@pytest.fixture
def read_har() -> Callable[[Path], dict[str, Any]]:
    """Loader for finished HAR files."""

    def _read(path: Path) -> dict[str, Any]:
        return json.loads(path.read_text(encoding="utf-8"))

    return _read
