"""
Namespace policies for the cache.

Every namespace has a fixed default TTL, an entry bound, and an active-sweep
interval. The built-in defaults below can be overridden per namespace from a
YAML policy file:

```yaml
namespaces:
  players:
    default_ttl: 300
    max_entries: 10000
    sweep_interval: 60
```

The set of namespace names itself is fixed; the policy file can only tune
existing namespaces.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from pirate_cache.core.config.errors import ConfigLoadError, ConfigValidationError
from pirate_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


PLAYERS = "players"
LEADERBOARDS = "leaderboards"
STATISTICS = "statistics"
ACHIEVEMENTS = "achievements"
SESSIONS = "sessions"
API_RESPONSES = "api_responses"
BLOCKCHAIN_DATA = "blockchain_data"
RATE_LIMITS = "rate_limits"


@dataclass(frozen=True, slots=True)
class NamespaceConfig:
    """TTL and capacity policy for one namespace. Durations are in seconds."""

    name: str
    default_ttl: int
    max_entries: int
    sweep_interval: int

    def __post_init__(self) -> None:
        for field_name in ("default_ttl", "max_entries", "sweep_interval"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigValidationError(
                    f"{self.name}.{field_name} must be a positive integer, got {value!r}"
                )


DEFAULT_NAMESPACE_CONFIGS: Dict[str, NamespaceConfig] = {
    cfg.name: cfg
    for cfg in (
        NamespaceConfig(PLAYERS, default_ttl=300, max_entries=10_000, sweep_interval=60),
        NamespaceConfig(LEADERBOARDS, default_ttl=600, max_entries=100, sweep_interval=120),
        NamespaceConfig(STATISTICS, default_ttl=900, max_entries=200, sweep_interval=180),
        NamespaceConfig(ACHIEVEMENTS, default_ttl=1800, max_entries=1000, sweep_interval=300),
        NamespaceConfig(SESSIONS, default_ttl=180, max_entries=5000, sweep_interval=30),
        NamespaceConfig(API_RESPONSES, default_ttl=120, max_entries=2000, sweep_interval=30),
        NamespaceConfig(BLOCKCHAIN_DATA, default_ttl=1200, max_entries=500, sweep_interval=240),
        NamespaceConfig(RATE_LIMITS, default_ttl=3600, max_entries=50_000, sweep_interval=600),
    )
}

_OVERRIDABLE_FIELDS = ("default_ttl", "max_entries", "sweep_interval")


def apply_overrides(
    base: Mapping[str, NamespaceConfig],
    overrides: Mapping[str, Any],
) -> Dict[str, NamespaceConfig]:
    """
    Overlay per-namespace overrides onto `base`.

    Raises
    ------
    ConfigValidationError
        For unknown namespaces, unknown fields, or non-positive values.
    """
    merged = dict(base)

    for name, fields in overrides.items():
        if name not in merged:
            raise ConfigValidationError(
                f"Unknown cache namespace '{name}' (known: {', '.join(sorted(merged))})"
            )
        if not isinstance(fields, Mapping):
            raise ConfigValidationError(f"Policy for '{name}' must be a mapping")

        unknown = set(fields) - set(_OVERRIDABLE_FIELDS)
        if unknown:
            raise ConfigValidationError(
                f"Unknown policy fields for '{name}': {', '.join(sorted(unknown))}"
            )

        merged[name] = replace(merged[name], **dict(fields))

    return merged


def load_namespace_configs(path: Optional[Path] = None) -> Dict[str, NamespaceConfig]:
    """
    Build the namespace policy set from the defaults and an optional YAML file.

    A missing file is not an error; the defaults are returned unchanged.
    """
    if path is None or not Path(path).exists():
        logger.info(
            "Namespace policy file not found; using built-in defaults",
            extra={"policy_path": str(path) if path else None},
        )
        return dict(DEFAULT_NAMESPACE_CONFIGS)

    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigLoadError(f"Failed to load namespace policy file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigValidationError(
            f"Namespace policy root must be a mapping, got {type(data).__name__}"
        )

    overrides = data.get("namespaces") or {}
    if not isinstance(overrides, Mapping):
        raise ConfigValidationError("'namespaces' must be a mapping of namespace policies")

    configs = apply_overrides(DEFAULT_NAMESPACE_CONFIGS, overrides)

    logger.info(
        "Namespace policies loaded",
        extra={
            "policy_path": str(path),
            "overridden": sorted(overrides),
            "namespace_count": len(configs),
        },
    )
    return configs
