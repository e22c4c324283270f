"""
Canonical cache key templates.

Every domain entity has exactly one key shape. Each template starts with a
distinct prefix, and `:` and `%` inside variable parts are percent-escaped,
so two different logical entities never compose the same key (`game_stats`
and `all_achievements` are fixed keys without a variable part).
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping, Union

KEY_TEMPLATES = {
    "player": "player:{address}",
    "leaderboard": "leaderboard:{type}:{limit}",
    "session": "session:{session_id}",
    "achievements": "achievements:{address}",
    "api": "api:{endpoint}:{params_hash}",
    "blockchain": "blockchain:{key}",
    "rate": "rate:{identifier}",
}

GAME_STATS_KEY = "game_stats"
ALL_ACHIEVEMENTS_KEY = "all_achievements"

_PARAMS_HASH_LENGTH = 16


def make_key(template: str, **kwargs: Any) -> str:
    """
    Generate a cache key from a named template.

    Raises
    ------
    ValueError
        If the template name is unknown.
    """
    template_str = KEY_TEMPLATES.get(template)
    if not template_str:
        raise ValueError(f"Unknown key template: {template}")
    return template_str.format(**{name: _escape(value) for name, value in kwargs.items()})


def _escape(part: Any) -> str:
    return str(part).replace("%", "%25").replace(":", "%3A")


def params_hash(params: Union[str, Mapping[str, Any], None]) -> str:
    """
    Stable, tagged form of request parameters.

    A string is kept readable as `s=<string>`; a mapping becomes
    `h=<digest>` of its sorted-key JSON so argument order never changes the
    key. The tags keep the two forms apart, so a caller-supplied string can
    never equal a digest. No params at all gives "".

    >>> params_hash("page=1")
    's=page=1'
    """
    if params is None:
        return ""
    if isinstance(params, str):
        return f"s={params}"
    canonical = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:_PARAMS_HASH_LENGTH]
    return f"h={digest}"


def player_key(address: str) -> str:
    return make_key("player", address=address)


def leaderboard_key(board_type: str, limit: int) -> str:
    return make_key("leaderboard", type=board_type, limit=limit)


def session_key(session_id: str) -> str:
    return make_key("session", session_id=session_id)


def achievements_key(address: str) -> str:
    return make_key("achievements", address=address)


def api_key(endpoint: str, params: Union[str, Mapping[str, Any], None] = None) -> str:
    return make_key("api", endpoint=endpoint, params_hash=params_hash(params))


def blockchain_key(key: str) -> str:
    return make_key("blockchain", key=key)


def rate_key(identifier: str) -> str:
    return make_key("rate", identifier=identifier)
