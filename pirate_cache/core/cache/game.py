"""
Game-domain convenience layer over `NamespacedCache`.

Purpose
-------
Give callers (HTTP handlers, game services) one method per entity so they
never compose keys or pick namespaces by hand.

Responsibilities
----------------
- Player profiles and per-player achievements
- Leaderboards by (type, limit) and global game statistics
- Sessions, external API responses, blockchain lookups
- Rate-limit counters
- Cross-entry invalidation helpers used after player mutations

Non-Responsibilities
--------------------
- Loading data on a miss (callers query the system of record)
- Deciding *when* to invalidate (callers do it after a write)

Key Format
----------
See `pirate_cache.core.cache.keys`. Example: `player:0xabc`,
`leaderboard:score:10`, `api:leaderboard%3Atop:h=1f3a9c0d2b4e5f60`.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pirate_cache.core.cache.keys import (
    ALL_ACHIEVEMENTS_KEY,
    GAME_STATS_KEY,
    achievements_key,
    api_key,
    blockchain_key,
    leaderboard_key,
    player_key,
    rate_key,
    session_key,
)
from pirate_cache.core.cache.namespaces import (
    ACHIEVEMENTS,
    API_RESPONSES,
    BLOCKCHAIN_DATA,
    LEADERBOARDS,
    PLAYERS,
    RATE_LIMITS,
    SESSIONS,
    STATISTICS,
)
from pirate_cache.core.cache.service import NamespacedCache
from pirate_cache.core.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LEADERBOARD_LIMIT = 100

Params = Union[str, Mapping[str, Any], None]


class GameDataCache:
    """Entity-level accessors for the Pirate Bomb backend."""

    def __init__(self, cache: NamespacedCache) -> None:
        self.cache = cache

    # =========================================================================
    # PLAYERS
    # =========================================================================

    def get_player(self, address: str) -> Any:
        return self.cache.get(PLAYERS, player_key(address))

    def set_player(self, address: str, player_data: Any, ttl: Optional[float] = None) -> bool:
        return self.cache.set(PLAYERS, player_key(address), player_data, ttl)

    def invalidate_player(self, address: str) -> int:
        removed = self.cache.delete(PLAYERS, player_key(address))
        logger.debug("Player cache invalidated", extra={"address": address, "removed": removed})
        return removed

    def player_changed(self, address: str) -> None:
        """Invalidate everything a player mutation can make stale: profile and leaderboards."""
        self.invalidate_player(address)
        self.invalidate_leaderboards()

    # =========================================================================
    # LEADERBOARDS & STATISTICS
    # =========================================================================

    def get_leaderboard(self, board_type: str, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> Any:
        return self.cache.get(LEADERBOARDS, leaderboard_key(board_type, limit))

    def set_leaderboard(
        self,
        board_type: str,
        data: Any,
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
        ttl: Optional[float] = None,
    ) -> bool:
        return self.cache.set(LEADERBOARDS, leaderboard_key(board_type, limit), data, ttl)

    def invalidate_leaderboards(self) -> int:
        return self.cache.invalidate_namespace(LEADERBOARDS)

    def get_game_stats(self) -> Any:
        return self.cache.get(STATISTICS, GAME_STATS_KEY)

    def set_game_stats(self, stats: Any, ttl: Optional[float] = None) -> bool:
        return self.cache.set(STATISTICS, GAME_STATS_KEY, stats, ttl)

    # =========================================================================
    # ACHIEVEMENTS
    # =========================================================================

    def get_player_achievements(self, address: str) -> Any:
        return self.cache.get(ACHIEVEMENTS, achievements_key(address))

    def set_player_achievements(
        self, address: str, achievements: Any, ttl: Optional[float] = None
    ) -> bool:
        return self.cache.set(ACHIEVEMENTS, achievements_key(address), achievements, ttl)

    def get_all_achievements(self) -> Any:
        return self.cache.get(ACHIEVEMENTS, ALL_ACHIEVEMENTS_KEY)

    def set_all_achievements(self, achievements: Any, ttl: Optional[float] = None) -> bool:
        return self.cache.set(ACHIEVEMENTS, ALL_ACHIEVEMENTS_KEY, achievements, ttl)

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def get_session(self, session_id: str) -> Any:
        return self.cache.get(SESSIONS, session_key(session_id))

    def set_session(self, session_id: str, session_data: Any, ttl: Optional[float] = None) -> bool:
        return self.cache.set(SESSIONS, session_key(session_id), session_data, ttl)

    def delete_session(self, session_id: str) -> int:
        return self.cache.delete(SESSIONS, session_key(session_id))

    # =========================================================================
    # EXTERNAL DATA
    # =========================================================================

    def get_api_response(self, endpoint: str, params: Params = None) -> Any:
        return self.cache.get(API_RESPONSES, api_key(endpoint, params))

    def set_api_response(
        self,
        endpoint: str,
        response: Any,
        params: Params = None,
        ttl: Optional[float] = None,
    ) -> bool:
        return self.cache.set(API_RESPONSES, api_key(endpoint, params), response, ttl)

    def get_blockchain_data(self, key: str) -> Any:
        return self.cache.get(BLOCKCHAIN_DATA, blockchain_key(key))

    def set_blockchain_data(self, key: str, data: Any, ttl: Optional[float] = None) -> bool:
        return self.cache.set(BLOCKCHAIN_DATA, blockchain_key(key), data, ttl)

    # =========================================================================
    # RATE LIMITING
    # =========================================================================

    def get_rate_limit(self, identifier: str) -> int:
        """Current request count for `identifier`; 0 when no window is open."""
        count = self.cache.get(RATE_LIMITS, rate_key(identifier))
        return count if isinstance(count, int) else 0

    def set_rate_limit(self, identifier: str, count: int, ttl: Optional[float] = None) -> bool:
        return self.cache.set(RATE_LIMITS, rate_key(identifier), count, ttl)

    def increment_rate_limit(self, identifier: str, ttl: Optional[float] = None) -> int:
        return self.cache.increment_rate_limit(identifier, ttl)
