"""
Bounded, string-keyed map with absolute per-entry expiry.

Purpose
-------
Storage primitive behind every cache namespace. Knows nothing about the
values it holds, hit/miss accounting, or namespaces.

Behaviour
---------
- `set()` stamps `expires_at = clock() + ttl`. Replacing an existing key
  always succeeds; inserting a new key into a full map is rejected
  (`set()` returns False, `put()` raises `CapacityExceededError`). Nothing
  is ever evicted to make room. Keys must be `str`; anything else is
  rejected the same way (`InvalidKeyError`).
- Lazy expiry: `lookup()`/`get()` treat an entry with `clock() >= expires_at`
  as absent and remove it on the spot.
- Active expiry: `sweep()` removes every expired entry in batches of
  `batch_size`, taking the lock once per batch so foreground callers are
  never stalled for a full scan of a large map.

Thread Safety
-------------
All mutations happen under one `threading.RLock` per map. The lock is
exposed as `lock` so an owner can extend the critical section across a
read-modify-write (see `NamespacedCache.increment_rate_limit`). No method
awaits or does I/O while holding it, so the map is equally safe from OS
threads and from asyncio tasks.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, NamedTuple, Optional, Set, TypeVar

from pirate_cache.core.exceptions import CapacityExceededError, InvalidKeyError

V = TypeVar("V")

Clock = Callable[[], float]

DEFAULT_SWEEP_BATCH_SIZE = 1000


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    # expires_at is on the owning map's clock (time.monotonic by default)
    value: V
    expires_at: float


class Lookup(NamedTuple):
    """Result of a lookup; `found` tells a cached None apart from a miss."""

    found: bool
    value: Optional[object] = None


MISS = Lookup(False, None)


class ExpiringMap(Generic[V]):
    """Thread-safe TTL map with a hard entry bound and reject-on-full inserts."""

    def __init__(
        self,
        *,
        default_ttl: float,
        max_entries: int,
        clock: Clock = time.monotonic,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")

        self.default_ttl = float(default_ttl)
        self.max_entries = int(max_entries)
        self._clock = clock
        self._entries: Dict[str, CacheEntry[V]] = {}
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def resolve_ttl(self, ttl: Optional[float]) -> float:
        # None or non-positive means "use the namespace default"
        if ttl is None or ttl <= 0:
            return self.default_ttl
        return float(ttl)

    def put(self, key: str, value: V, ttl: Optional[float] = None) -> None:
        """
        Insert or replace `key`.

        Raises InvalidKeyError for a non-string key and CapacityExceededError
        for a new key on a full map.
        """
        if not isinstance(key, str):
            raise InvalidKeyError(key)
        expires_at = self._clock() + self.resolve_ttl(ttl)
        with self.lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                raise CapacityExceededError(key, self.max_entries)
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def set(self, key: str, value: V, ttl: Optional[float] = None) -> bool:
        try:
            self.put(key, value, ttl)
        except (CapacityExceededError, InvalidKeyError):
            return False
        return True

    def lookup(self, key: str) -> Lookup:
        with self.lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISS
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return MISS
            return Lookup(True, entry.value)

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        found, value = self.lookup(key)
        return value if found else default

    def delete(self, key: str) -> int:
        with self.lock:
            return 1 if self._entries.pop(key, None) is not None else 0

    def keys(self) -> Set[str]:
        """Snapshot of stored keys, including expired entries not yet swept."""
        with self.lock:
            return set(self._entries)

    def flush_all(self) -> int:
        with self.lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    # -------------------------------------------------------------------------
    # Active expiry
    # -------------------------------------------------------------------------

    def expired_keys(self) -> List[str]:
        with self.lock:
            snapshot = list(self._entries.items())
        now = self._clock()
        return [key for key, entry in snapshot if entry.expires_at <= now]

    def evict_expired(self, keys: List[str]) -> int:
        """Remove the given keys if they are still expired; a key re-set since the scan survives."""
        removed = 0
        with self.lock:
            now = self._clock()
            for key in keys:
                entry = self._entries.get(key)
                if entry is not None and entry.expires_at <= now:
                    del self._entries[key]
                    removed += 1
        return removed

    def sweep(self, batch_size: int = DEFAULT_SWEEP_BATCH_SIZE) -> int:
        candidates = self.expired_keys()
        removed = 0
        for start in range(0, len(candidates), batch_size):
            removed += self.evict_expired(candidates[start:start + batch_size])
        return removed
