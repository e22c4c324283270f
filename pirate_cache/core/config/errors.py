"""
Configuration error hierarchy.

Exception Hierarchy
-------------------
ConfigError (base)
├── ConfigValidationError (schema/type validation failures)
└── ConfigLoadError (policy file cannot be read or parsed)
"""


class ConfigError(Exception):
    """
    Base exception for all configuration-related errors.

    Example
    -------
    >>> try:
    ...     configs = load_namespace_configs(path)
    ... except ConfigError as e:
    ...     logger.error(f"Namespace policy rejected: {e}")
    """


class ConfigValidationError(ConfigError):
    """
    Raised when configuration validation fails.

    This exception is raised when:
    - An unknown namespace is named in the policy file
    - A TTL, capacity or sweep interval is not a positive integer
    - The policy file root is not a mapping
    """


class ConfigLoadError(ConfigError):
    """Raised when the namespace policy file exists but cannot be read or parsed."""


__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "ConfigLoadError",
]
