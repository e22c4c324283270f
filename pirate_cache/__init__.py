"""
Pirate Bomb cache service.

In-process, namespaced, TTL-bound cache that fronts the game's system of
record (players, leaderboards, sessions, achievements, external API and
blockchain lookups, rate-limit counters).
"""

__version__ = "1.0.0"
