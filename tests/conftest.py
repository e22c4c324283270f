"""
Pytest Configuration and Fixtures for the Pirate Bomb Cache Tests
=================================================================

Purpose
-------
Reusable fixtures for the cache test suite: a controllable clock, cache
instances built on it, and small namespace policy sets for capacity tests.

Architecture Notes
------------------
- Nothing here sleeps. Expiry is driven by advancing `FakeClock`.
- Each test gets a fresh cache; nothing is shared across tests.
- `Config` is reset around every test so environment tweaks never leak.
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

from pirate_cache.core.cache.game import GameDataCache
from pirate_cache.core.cache.namespaces import DEFAULT_NAMESPACE_CONFIGS, NamespaceConfig
from pirate_cache.core.cache.service import NamespacedCache
from pirate_cache.core.config.config import Config

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"
    os.environ["LOG_TO_FILE"] = "false"


@pytest.fixture(autouse=True)
def reset_config() -> Generator[None, None, None]:
    Config.reset()
    yield
    Config.reset()


# ============================================================================
# CLOCK
# ============================================================================


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# CACHE FIXTURES
# ============================================================================


@pytest.fixture
def cache(clock: FakeClock) -> NamespacedCache:
    """Cache with the default namespace policies on the fake clock."""
    return NamespacedCache(DEFAULT_NAMESPACE_CONFIGS, clock=clock)


@pytest.fixture
def game_cache(cache: NamespacedCache) -> GameDataCache:
    return GameDataCache(cache)


@pytest.fixture
def tiny_cache(clock: FakeClock) -> NamespacedCache:
    """Single-namespace cache holding at most two entries."""
    return NamespacedCache(
        [NamespaceConfig("players", default_ttl=60, max_entries=2, sweep_interval=1)],
        clock=clock,
    )
