"""
Core infrastructure for the Pirate Bomb cache service.

Purpose
-------
One import surface for the infrastructure subsystems:

- Configuration (Config, namespace policy loading)
- Logging (structured logging, logger factory, log context)
- Cache (NamespacedCache, GameDataCache)
- Exceptions (PirateCacheInfrastructureException hierarchy)

Non-Responsibilities
--------------------
- Implementing infra logic (delegated to submodules)
- Any side effects beyond re-exports
"""

from pirate_cache.core.cache import GameDataCache, NamespacedCache, NamespaceConfig
from pirate_cache.core.config import Config
from pirate_cache.core.exceptions import (
    CacheError,
    PirateCacheInfrastructureException,
)
from pirate_cache.core.logging import get_logger, setup_logging

__all__ = [
    "Config",
    "NamespacedCache",
    "GameDataCache",
    "NamespaceConfig",
    "CacheError",
    "PirateCacheInfrastructureException",
    "get_logger",
    "setup_logging",
]
