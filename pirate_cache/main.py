"""
Pirate Bomb Cache - Process Entry Point
=======================================

Bootstrap
---------
- Config validation
- Logging setup
- Namespace policy loading
- Cache construction and expiry sweepers
- Graceful shutdown on SIGINT/SIGTERM

Run with ``python -m pirate_cache.main``. Embedding applications construct
`NamespacedCache` themselves and only borrow `_startup`/`_shutdown`.
"""

import asyncio
import signal
import sys

from pirate_cache.core.cache.namespaces import load_namespace_configs
from pirate_cache.core.cache.service import NamespacedCache
from pirate_cache.core.config.config import Config
from pirate_cache.core.logging.logger import (
    get_logger,
    get_logging_health,
    setup_logging,
    shutdown_logging,
)

logger = get_logger(__name__)


# ============================================================================
# Application Bootstrap
# ============================================================================

async def _startup() -> NamespacedCache:
    """Validate configuration, build the cache and start its sweepers."""
    # Step 1: Validate configuration early
    try:
        Config.validate()
    except Exception as exc:
        logger.critical(f"Configuration validation failed: {exc}")
        raise

    setup_logging()
    logger.info("========== PIRATE BOMB CACHE INITIALIZATION START ==========")
    logger.info("✓ Configuration validated", extra=Config.get_config_summary())

    # Step 2: Namespace policies
    try:
        configs = load_namespace_configs(Config.CACHE_CONFIG_PATH)
        logger.info("✓ Namespace policies loaded")
    except Exception as exc:
        logger.critical(f"Namespace policy loading failed: {exc}", exc_info=True)
        raise

    # Step 3: Cache manager
    cache = NamespacedCache(configs, sweep_batch_size=Config.CACHE_SWEEP_BATCH_SIZE)
    logger.info("✓ Cache manager initialized")

    # Step 4: Background expiry
    if Config.CACHE_SWEEP_ENABLED:
        await cache.start()
        logger.info("✓ Expiry sweepers started")
    else:
        logger.info("Expiry sweepers disabled; relying on lazy expiry")

    health = cache.health_check()
    logger.info(
        "========== CACHE READY ==========",
        extra={
            "status": health["status"],
            "namespace_count": health["namespace_count"],
            "logging_queue_max_size": get_logging_health().queue_max_size,
        },
    )
    return cache


# ============================================================================
# Application Shutdown
# ============================================================================

async def _shutdown(cache: NamespacedCache | None) -> None:
    """Stop sweepers, release entries and flush logs."""
    logger.info("========== PIRATE BOMB CACHE SHUTDOWN START ==========")

    if cache is not None:
        try:
            await cache.shutdown()
            logger.info("✓ Cache manager shut down")
        except Exception as exc:
            logger.error(f"Cache shutdown error: {exc}", exc_info=True)

    logger.info("========== SHUTDOWN COMPLETE ==========")
    shutdown_logging()


# ============================================================================
# Application Entrypoint
# ============================================================================

def _install_signal_handlers(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            logger.debug(f"{sig.name} handler installed")
        except NotImplementedError:
            logger.debug(f"{sig.name} not supported on this platform (likely Windows)")


async def main() -> None:
    """
    Lifecycle:
        1. Validate configuration
        2. Build cache and start sweepers
        3. Wait for a termination signal
        4. Shut down gracefully
    """
    cache: NamespacedCache | None = None
    stop_event = asyncio.Event()

    try:
        cache = await _startup()
        _install_signal_handlers(asyncio.get_running_loop(), stop_event)

        logger.info("Pirate Bomb cache running; waiting for shutdown signal")
        await stop_event.wait()

    except asyncio.CancelledError:
        logger.warning("Asyncio task cancellation received; shutting down gracefully.")
        raise

    except Exception as exc:
        logger.critical(f"Fatal startup error: {exc}", exc_info=True)
        sys.exit(1)

    finally:
        await _shutdown(cache)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Cache manually stopped via keyboard interrupt.")
