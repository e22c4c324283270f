"""
Namespaced in-memory cache for the Pirate Bomb game backend.

Purpose
-------
Fronts the system of record (players, leaderboards, sessions, achievements,
API responses, blockchain lookups, rate-limit counters) with one bounded
`ExpiringMap` per namespace, each with its own TTL/capacity policy, and
keeps per-namespace hit/miss accounting.

Responsibilities
----------------
- Route get/set/delete to the right namespace map
- Count hits, misses, sets, deletes and flushes per namespace
- Substring-based and whole-namespace invalidation
- Atomic rate-limit counter increments
- Best-effort warm-up from an external loader
- Stats, memory estimate and liveness reporting
- Background expiry sweepers and idempotent shutdown

Non-Responsibilities
--------------------
- Querying the system of record (callers do that on a miss)
- Knowing which namespaces relate to each other (callers invalidate)
- Persistence of entries or statistics

Error Handling
--------------
The cache never raises into the request path. Unknown namespaces, use after
shutdown, full namespaces, non-string keys and failing loaders are logged
and degrade to a miss, `False`, or `0`. Only constructing a cache from an
invalid policy set raises.

Concurrency
-----------
Each namespace has one lock (its map's `RLock`). Every operation, together
with its counter update, runs inside that lock and never awaits or does I/O
there, so the cache is linearizable per key from both threads and asyncio
tasks. Operations on different namespaces never contend.

Invalidation by pattern is plain substring containment on the composed key.
Two unrelated keys that happen to share the substring are evicted together.

Usage Example
-------------
>>> cache = NamespacedCache()
>>> await cache.start()
>>> cache.set("players", "player:0xabc", {"score": 10})
True
>>> cache.get("players", "player:0xabc")
{'score': 10}
>>> await cache.shutdown()
"""

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from pirate_cache.core.cache.expiring_map import (
    DEFAULT_SWEEP_BATCH_SIZE,
    MISS,
    Clock,
    ExpiringMap,
    Lookup,
)
from pirate_cache.core.cache.keys import rate_key
from pirate_cache.core.cache.metrics import HitStats, estimate_key_bytes, namespace_report
from pirate_cache.core.cache.namespaces import (
    DEFAULT_NAMESPACE_CONFIGS,
    RATE_LIMITS,
    NamespaceConfig,
)
from pirate_cache.core.cache.sweeper import ExpirySweeper
from pirate_cache.core.exceptions import (
    CacheError,
    CacheShutdownError,
    CapacityExceededError,
    ConfigurationError,
    InvalidKeyError,
    InvalidNamespaceError,
    LoaderFailureError,
    get_error_severity,
)
from pirate_cache.core.logging.logger import get_logger

logger = get_logger(__name__)

WarmItem = Union[Mapping[str, Any], Tuple[str, Any]]
WarmLoader = Callable[[], Union[Iterable[WarmItem], Awaitable[Iterable[WarmItem]]]]
ValueLoader = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass(slots=True)
class _Namespace:
    config: NamespaceConfig
    store: ExpiringMap
    stats: HitStats


class NamespacedCache:
    """
    Process-wide cache object, constructed once by the entry point and passed
    to whichever components need it.
    """

    def __init__(
        self,
        configs: Optional[Union[Mapping[str, NamespaceConfig], Iterable[NamespaceConfig]]] = None,
        *,
        clock: Clock = time.monotonic,
        sweep_batch_size: int = DEFAULT_SWEEP_BATCH_SIZE,
    ) -> None:
        if configs is None:
            configs = DEFAULT_NAMESPACE_CONFIGS
        config_list = list(configs.values()) if isinstance(configs, Mapping) else list(configs)

        if not config_list:
            raise ConfigurationError("namespaces", "at least one namespace is required")

        self._namespaces: Dict[str, _Namespace] = {}
        for config in config_list:
            if config.name in self._namespaces:
                raise ConfigurationError("namespaces", f"duplicate namespace '{config.name}'")
            self._namespaces[config.name] = _Namespace(
                config=config,
                store=ExpiringMap(
                    default_ttl=config.default_ttl,
                    max_entries=config.max_entries,
                    clock=clock,
                ),
                stats=HitStats(),
            )

        self._sweep_batch_size = sweep_batch_size
        self._sweepers: Dict[str, ExpirySweeper] = {}
        self._lifecycle_lock = asyncio.Lock()
        self._closed = False

        logger.info(
            "NamespacedCache initialized",
            extra={
                "namespaces": sorted(self._namespaces),
                "namespace_count": len(self._namespaces),
            },
        )

    # =========================================================================
    # INTERNAL UTILITIES
    # =========================================================================

    @property
    def namespaces(self) -> Tuple[str, ...]:
        return tuple(self._namespaces)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def config_for(self, namespace: str) -> Optional[NamespaceConfig]:
        slot = self._namespaces.get(namespace)
        return slot.config if slot else None

    def _resolve(self, namespace: str, operation: str) -> _Namespace:
        if self._closed:
            raise CacheShutdownError(operation)
        slot = self._namespaces.get(namespace)
        if slot is None:
            raise InvalidNamespaceError(namespace, operation)
        return slot

    @staticmethod
    def _report(exc: CacheError, **context: Any) -> None:
        logger.log(
            get_error_severity(exc).log_level,
            exc.message,
            extra={"error": exc.to_dict(), **context},
        )

    # =========================================================================
    # CORE OPERATIONS
    # =========================================================================

    def lookup(self, namespace: str, key: str) -> Lookup:
        """Return `Lookup(found, value)`; a cached None or 0 is still a hit."""
        try:
            slot = self._resolve(namespace, "get")
        except CacheError as exc:
            self._report(exc, key=key)
            return MISS
        if not isinstance(key, str):
            self._report(InvalidKeyError(key), namespace=namespace)
            return MISS

        with slot.store.lock:
            result = slot.store.lookup(key)
            slot.stats.record_lookup(result.found)
        return result

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        found, value = self.lookup(namespace, key)
        return value if found else default

    def set(
        self,
        namespace: str,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
    ) -> bool:
        """
        Store `value` under `key` for `ttl` seconds (namespace default when None).

        Returns False, without raising, when the namespace is unknown or full,
        or when `key` is not a string.
        """
        try:
            slot = self._resolve(namespace, "set")
        except CacheError as exc:
            self._report(exc, key=key)
            return False

        with slot.store.lock:
            try:
                slot.store.put(key, value, ttl)
            except (CapacityExceededError, InvalidKeyError) as exc:
                rejected = exc
            else:
                rejected = None
                slot.stats.record_set()

        if rejected is not None:
            self._report(rejected, namespace=namespace)
            return False

        logger.debug(
            "Cache SET",
            extra={"namespace": namespace, "key": key, "ttl_seconds": slot.store.resolve_ttl(ttl)},
        )
        return True

    def delete(self, namespace: str, key: str) -> int:
        try:
            slot = self._resolve(namespace, "delete")
        except CacheError as exc:
            self._report(exc, key=key)
            return 0
        if not isinstance(key, str):
            self._report(InvalidKeyError(key), namespace=namespace)
            return 0

        with slot.store.lock:
            removed = slot.store.delete(key)
            if removed:
                slot.stats.record_delete()

        if removed:
            logger.debug("Cache DELETE", extra={"namespace": namespace, "key": key})
        return removed

    # =========================================================================
    # INVALIDATION
    # =========================================================================

    def invalidate_pattern(self, namespace: str, substring: str) -> int:
        """
        Delete every key in `namespace` that contains `substring`.

        Plain substring containment, not glob or regex. An empty substring is
        refused rather than treated as "match everything"; use
        `invalidate_namespace` for that.
        """
        try:
            slot = self._resolve(namespace, "invalidate_pattern")
        except CacheError as exc:
            self._report(exc, pattern=substring)
            return 0

        if not isinstance(substring, str) or not substring:
            logger.warning(
                "Refusing to invalidate with an empty or non-string pattern",
                extra={"namespace": namespace},
            )
            return 0

        matching = [key for key in slot.store.keys() if substring in key]
        removed = 0
        with slot.store.lock:
            for key in matching:
                removed += slot.store.delete(key)
            if removed:
                slot.stats.record_delete(removed)

        if removed:
            logger.info(
                f"Invalidated {removed} cache entries matching pattern: {substring}",
                extra={"namespace": namespace, "pattern": substring, "removed": removed},
            )
        return removed

    def invalidate_namespace(self, namespace: str) -> int:
        """Flush one namespace. Returns the number of entries dropped."""
        try:
            slot = self._resolve(namespace, "invalidate_namespace")
        except CacheError as exc:
            self._report(exc)
            return 0

        with slot.store.lock:
            removed = slot.store.flush_all()
            slot.stats.record_flush()

        logger.info("Cache FLUSH", extra={"namespace": namespace, "removed": removed})
        return removed

    # =========================================================================
    # RATE LIMITING
    # =========================================================================

    def increment_rate_limit(self, identifier: str, ttl: Optional[float] = None) -> int:
        """
        Atomically add one to the counter for `identifier` and return the new count.

        Every increment restarts the counter's TTL. Returns 0 if the cache is
        unusable. If the namespace is full and the identifier is new, the
        count (1) is returned but not stored.
        """
        key = rate_key(identifier)
        try:
            slot = self._resolve(RATE_LIMITS, "increment_rate_limit")
        except CacheError as exc:
            self._report(exc, key=key)
            return 0

        rejected: Optional[CapacityExceededError] = None
        with slot.store.lock:
            found, current = slot.store.lookup(key)
            slot.stats.record_lookup(found)
            count = (current if found and isinstance(current, int) else 0) + 1
            try:
                slot.store.put(key, count, ttl)
            except CapacityExceededError as exc:
                rejected = exc
            else:
                slot.stats.record_set()

        if rejected is not None:
            self._report(rejected, namespace=RATE_LIMITS)
        return count

    # =========================================================================
    # WARMING / CACHE-ASIDE
    # =========================================================================

    async def warm_cache(self, namespace: str, loader: WarmLoader) -> int:
        """
        Populate `namespace` from `loader`, which returns (or resolves to) an
        iterable of `{"key": ..., "value": ...}` mappings or `(key, value)` pairs.

        Best effort: if the loader fails partway, entries already stored stay
        and nothing is rolled back. Items with a missing key or a None value
        are skipped. Returns the number of entries stored.
        """
        try:
            self._resolve(namespace, "warm_cache")
        except CacheError as exc:
            self._report(exc)
            return 0

        logger.info(f"Warming cache: {namespace}", extra={"namespace": namespace})
        loaded = 0
        skipped = 0

        try:
            async for key, value in self._iter_loader(namespace, loader):
                if key is None or value is None:
                    skipped += 1
                    continue
                if self.set(namespace, key, value):
                    loaded += 1
                else:
                    skipped += 1
        except LoaderFailureError as exc:
            logger.error(
                f"Cache warming failed for {namespace}",
                extra={"error": exc.to_dict(), "namespace": namespace, "loaded": loaded},
                exc_info=True,
            )
            return loaded

        logger.info(
            f"Cache warming completed for: {namespace}",
            extra={"namespace": namespace, "loaded": loaded, "skipped": skipped},
        )
        return loaded

    @staticmethod
    async def _iter_loader(namespace: str, loader: WarmLoader):
        try:
            data = loader()
            if inspect.isawaitable(data):
                data = await data
            if hasattr(data, "__aiter__"):
                async for item in data:
                    yield _unpack_item(item)
            else:
                for item in data:
                    yield _unpack_item(item)
        except Exception as exc:
            raise LoaderFailureError(namespace, exc) from exc

    async def get_or_load(
        self,
        namespace: str,
        key: str,
        loader: ValueLoader,
        ttl: Optional[float] = None,
    ) -> Any:
        """
        Cache-aside read: return the cached value, or call `loader`, cache a
        non-None result and return it. Loader errors propagate to the caller.
        """
        found, value = self.lookup(namespace, key)
        if found:
            return value

        value = loader()
        if inspect.isawaitable(value):
            value = await value

        if value is not None:
            self.set(namespace, key, value, ttl)
        return value

    # =========================================================================
    # STATISTICS & HEALTH
    # =========================================================================

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        """
        Per-namespace report: key_count, hits, misses, sets, deletes, flushes
        and hit_rate (percentage string, "0%" before any lookup).
        """
        report: Dict[str, Dict[str, Any]] = {}
        for name, slot in self._namespaces.items():
            with slot.store.lock:
                report[name] = namespace_report(len(slot.store), slot.stats)
        return report

    def get_memory_usage(self) -> Dict[str, Dict[str, int]]:
        usage: Dict[str, Dict[str, int]] = {}
        for name, slot in self._namespaces.items():
            keys = slot.store.keys()
            usage[name] = {"keys": len(keys), "size": estimate_key_bytes(keys)}
        return usage

    def health_check(self) -> Dict[str, Any]:
        """
        Liveness report. Status is "healthy" whenever the namespaces can be
        enumerated; no get/set round-trip is attempted.

        After `shutdown()` the namespace names are still known but their maps
        have been released, so the report says "shutdown" with zero namespaces
        and empty stats instead of "healthy".
        """
        timestamp = datetime.now(timezone.utc).isoformat()

        if self._closed:
            return {
                "status": "shutdown",
                "timestamp": timestamp,
                "namespace_count": 0,
                "stats": {},
                "memory_estimate": {},
            }

        usage = self.get_memory_usage()
        return {
            "status": "healthy",
            "timestamp": timestamp,
            "namespace_count": len(self._namespaces),
            "stats": self.get_stats(),
            "memory_estimate": {
                "namespaces": usage,
                "total_keys": sum(item["keys"] for item in usage.values()),
                "approx_key_bytes": sum(item["size"] for item in usage.values()),
            },
        }

    def reset_stats(self) -> None:
        for slot in self._namespaces.values():
            with slot.store.lock:
                slot.stats.reset()
        logger.info("Cache statistics reset")

    # =========================================================================
    # MAINTENANCE & LIFECYCLE
    # =========================================================================

    def cleanup(self) -> None:
        """Flush every namespace, then reset all statistics."""
        for name in self._namespaces:
            self.invalidate_namespace(name)
        self.reset_stats()
        logger.info("Cache cleanup completed")

    def sweep_expired(self) -> Dict[str, int]:
        """Synchronous active-expiry pass over every namespace, for callers without an event loop."""
        removed = {
            name: slot.store.sweep(self._sweep_batch_size)
            for name, slot in self._namespaces.items()
        }
        total = sum(removed.values())
        if total:
            logger.debug("Cache EXPIRED", extra={"removed": removed, "total": total})
        return removed

    async def start(self) -> None:
        """Start one background expiry sweeper per namespace (idempotent)."""
        async with self._lifecycle_lock:
            if self._closed:
                logger.warning("Cannot start sweepers on a shut down cache")
                return

            for name, slot in self._namespaces.items():
                if name in self._sweepers:
                    continue
                sweeper = ExpirySweeper(
                    name,
                    slot.store,
                    interval_seconds=slot.config.sweep_interval,
                    batch_size=self._sweep_batch_size,
                )
                sweeper.start()
                self._sweepers[name] = sweeper

            logger.info(
                "Cache expiry sweepers started",
                extra={"sweeper_count": len(self._sweepers)},
            )

    async def shutdown(self) -> None:
        """
        Stop every sweeper, then release all entries. Safe to call more than
        once; later calls are no-ops.
        """
        async with self._lifecycle_lock:
            if self._closed:
                logger.debug("Cache already shut down")
                return

            sweepers, self._sweepers = self._sweepers, {}
            for sweeper in sweepers.values():
                await sweeper.stop()

            self._closed = True
            released = 0
            for slot in self._namespaces.values():
                with slot.store.lock:
                    released += slot.store.flush_all()

            logger.info(
                "Cache manager shutdown completed",
                extra={"released_entries": released, "stopped_sweepers": len(sweepers)},
            )

    @property
    def sweepers(self) -> Dict[str, ExpirySweeper]:
        return dict(self._sweepers)


def _unpack_item(item: WarmItem) -> Tuple[Any, Any]:
    if isinstance(item, Mapping):
        return item.get("key"), item.get("value")
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return item[0], item[1]
    raise TypeError(f"Warm-up items must be {{key, value}} mappings or pairs, got {type(item).__name__}")
