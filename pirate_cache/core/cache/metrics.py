"""
Per-namespace cache statistics.

Purpose
-------
Hit/miss/set/delete/flush counters for one namespace, plus the derived hit
rate and a rough memory estimate used by stats and health reporting.

Thread Safety
-------------
`HitStats` holds plain integers and no lock of its own. The owning
`NamespacedCache` updates it inside the same critical section as the map
operation being counted, so an operation and its accounting are never
observed apart.

Counters are monotonically increasing for the process lifetime, until
`reset()`. They are never persisted.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable


@dataclass(slots=True)
class HitStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    flushes: int = 0

    def record_lookup(self, found: bool) -> None:
        if found:
            self.hits += 1
        else:
            self.misses += 1

    def record_set(self) -> None:
        self.sets += 1

    def record_delete(self, count: int = 1) -> None:
        self.deletes += count

    def record_flush(self) -> None:
        self.flushes += 1

    def reset(self) -> None:
        self.hits = self.misses = self.sets = self.deletes = self.flushes = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage (0-100). 0.0 when nothing was looked up."""
        if self.lookups == 0:
            return 0.0
        return self.hits / self.lookups * 100

    def snapshot(self) -> Dict[str, int]:
        return asdict(self)


def format_hit_rate(stats: HitStats) -> str:
    """
    Render the hit rate for reports.

    Example
    -------
    >>> format_hit_rate(HitStats(hits=3, misses=1))
    '75.00%'
    >>> format_hit_rate(HitStats())
    '0%'
    """
    if stats.lookups == 0:
        return "0%"
    return f"{stats.hit_rate:.2f}%"


def namespace_report(key_count: int, stats: HitStats) -> Dict[str, Any]:
    return {
        "key_count": key_count,
        **stats.snapshot(),
        "hit_rate": format_hit_rate(stats),
    }


def estimate_key_bytes(keys: Iterable[str]) -> int:
    # Size of the JSON-encoded key list; values are not measured.
    return len(json.dumps(sorted(keys)))
