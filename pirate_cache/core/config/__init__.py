"""
Configuration package.

- `Config`: static, environment-driven process configuration.
- Error hierarchy for namespace policy loading.
"""

from pirate_cache.core.config.config import Config, Environment
from pirate_cache.core.config.errors import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
)

__all__ = [
    "Config",
    "Environment",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
]
