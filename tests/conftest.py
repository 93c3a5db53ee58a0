"""
Pytest configuration and shared fixtures for shelfcache tests.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from shelfcache.config.settings import CacheSettings, reset_settings
from shelfcache.services.cache_manager import CacheManager


class FakeClock:
    """Manually advanced clock for expiration tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _reset_global_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate tests from SHELFCACHE_* variables, process settings and logger setup."""
    for key in list(os.environ):
        if key.startswith("SHELFCACHE_"):
            monkeypatch.delenv(key)
    reset_settings()

    package_logger = logging.getLogger("shelfcache")
    yield
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
    reset_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> CacheSettings:
    """Production-mode settings storing files under tmp_path."""
    return CacheSettings(cache_directory=tmp_path / "stores")


@pytest.fixture
def debug_settings(tmp_path: Path) -> CacheSettings:
    """Fail-fast settings storing files under tmp_path."""
    return CacheSettings(cache_directory=tmp_path / "stores", debug=True)


@pytest.fixture
def manager(settings: CacheSettings, clock: FakeClock) -> Generator[CacheManager, None, None]:
    cache_manager = CacheManager("test", settings=settings, clock=clock)
    yield cache_manager
    cache_manager.close()


@pytest.fixture
def debug_manager(debug_settings: CacheSettings, clock: FakeClock) -> Generator[CacheManager, None, None]:
    cache_manager = CacheManager("test", settings=debug_settings, clock=clock)
    yield cache_manager
    cache_manager.close()
