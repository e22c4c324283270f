"""
Cache subsystem for the Pirate Bomb backend.

Architecture
------------
- **expiring_map.py**: bounded TTL map, one per namespace
- **namespaces.py**: namespace names and TTL/capacity policies (YAML-overridable)
- **keys.py**: canonical key templates
- **metrics.py**: per-namespace hit/miss accounting
- **sweeper.py**: background active expiry
- **service.py**: `NamespacedCache`, the process-wide cache object
- **game.py**: `GameDataCache`, entity-level accessors

Usage Example
-------------
>>> from pirate_cache.core.cache import GameDataCache, NamespacedCache
>>>
>>> cache = NamespacedCache()
>>> game = GameDataCache(cache)
>>> game.set_player("0xabc", {"score": 10})
True
>>> cache.get_stats()["players"]["sets"]
1
"""

from pirate_cache.core.cache.expiring_map import ExpiringMap, Lookup
from pirate_cache.core.cache.game import GameDataCache
from pirate_cache.core.cache.keys import make_key
from pirate_cache.core.cache.metrics import HitStats
from pirate_cache.core.cache.namespaces import (
    DEFAULT_NAMESPACE_CONFIGS,
    NamespaceConfig,
    load_namespace_configs,
)
from pirate_cache.core.cache.service import NamespacedCache
from pirate_cache.core.cache.sweeper import ExpirySweeper

CacheLookup = Lookup

__all__ = [
    "NamespacedCache",
    "GameDataCache",
    "NamespaceConfig",
    "DEFAULT_NAMESPACE_CONFIGS",
    "load_namespace_configs",
    "ExpiringMap",
    "ExpirySweeper",
    "HitStats",
    "CacheLookup",
    "make_key",
]
