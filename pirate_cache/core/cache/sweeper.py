"""
Background active-expiry task for one cache namespace.

Purpose
-------
Periodically remove expired entries from a namespace's `ExpiringMap` even
when nobody reads them again, so memory stays bounded by live data.

Architecture Notes
------------------
- Runs as a background asyncio task, one per namespace.
- Scans a snapshot, then evicts in batches of `batch_size`, yielding to the
  event loop between batches so large namespaces never stall foreground
  get/set calls for a full scan.
- Errors in one pass are logged and the loop keeps running.
- `stop()` cancels and awaits the task; it is safe to call repeatedly.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from pirate_cache.core.cache.expiring_map import DEFAULT_SWEEP_BATCH_SIZE, ExpiringMap
from pirate_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


class ExpirySweeper:
    """Periodic expired-entry eviction for a single namespace."""

    def __init__(
        self,
        namespace: str,
        store: ExpiringMap,
        interval_seconds: float,
        batch_size: int = DEFAULT_SWEEP_BATCH_SIZE,
    ) -> None:
        self.namespace = namespace
        self._store = store
        self._interval = float(interval_seconds)
        self._batch_size = max(1, int(batch_size))
        self._task: Optional[asyncio.Task] = None
        self.passes: int = 0
        self.evicted: int = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.is_running:
            logger.warning(
                "Expiry sweeper already running",
                extra={"namespace": self.namespace},
            )
            return

        self._task = asyncio.create_task(
            self._sweep_loop(), name=f"cache-sweeper:{self.namespace}"
        )
        logger.debug(
            "Expiry sweeper started",
            extra={"namespace": self.namespace, "interval_seconds": self._interval},
        )

    async def stop(self) -> None:
        if self._task is None:
            return

        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        logger.debug(
            "Expiry sweeper stopped",
            extra={"namespace": self.namespace, "passes": self.passes, "evicted": self.evicted},
        )

    # ═══════════════════════════════════════════════════════════════════════
    # SWEEP LOOP
    # ═══════════════════════════════════════════════════════════════════════

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error(
                    "Error in expiry sweep",
                    extra={
                        "namespace": self.namespace,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )

    async def sweep_once(self) -> int:
        """Run one full pass, yielding between batches. Returns entries removed."""
        candidates = self._store.expired_keys()
        removed = 0

        for start in range(0, len(candidates), self._batch_size):
            removed += self._store.evict_expired(candidates[start:start + self._batch_size])
            await asyncio.sleep(0)

        self.passes += 1
        self.evicted += removed

        if removed:
            logger.debug(
                "Cache EXPIRED",
                extra={
                    "namespace": self.namespace,
                    "removed": removed,
                    "remaining": len(self._store),
                },
            )
        return removed
