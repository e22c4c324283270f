"""
Infrastructure exceptions for the Pirate Bomb cache layer.

Purpose
-------
Define the structured exception hierarchy for cache-level concerns: unknown
namespaces, full namespaces, failing warm-up loaders, use after shutdown and
bad configuration.

Design Notes
------------
- All exceptions inherit from `PirateCacheInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Cache internals raise these; the public `NamespacedCache` surface catches
  them, logs `to_dict()` and degrades to a miss / not-cached result.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return getattr(logging, self.name)


class PirateCacheInfrastructureException(Exception):
    """
    Base exception for all cache infrastructure errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise PirateCacheInfrastructureException(
        ...     "Cache unavailable",
        ...     {"namespace": "players"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ConfigurationError(PirateCacheInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class CacheError(PirateCacheInfrastructureException):
    """Base class for cache operation failures. Never surfaced to request handlers."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False


class InvalidNamespaceError(CacheError):
    """
    Raised when an operation references a namespace outside the configured set.

    Args:
        namespace: The namespace name that was requested
        operation: The cache operation being attempted
    """

    def __init__(self, namespace: str, operation: str) -> None:
        self.namespace = namespace
        self.operation = operation
        super().__init__(
            f"Invalid cache namespace '{namespace}' for {operation}",
            details={"namespace": namespace, "operation": operation},
            error_code="INVALID_NAMESPACE",
        )


class InvalidKeyError(CacheError):
    """Raised when a key is not a string. Keys are matched by substring and sized as JSON."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(
            f"Cache keys must be strings, got {type(key).__name__}",
            details={"key": repr(key), "key_type": type(key).__name__},
            error_code="INVALID_KEY",
        )

class CapacityExceededError(CacheError):
    """
    Raised when a brand-new key is inserted into a full map.

    Replacing an existing key never raises this.
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = True

    def __init__(self, key: str, max_entries: int) -> None:
        self.key = key
        self.max_entries = max_entries
        super().__init__(
            f"Cache full ({max_entries} entries), rejected key '{key}'",
            details={"key": key, "max_entries": max_entries},
            error_code="CAPACITY_EXCEEDED",
        )


class LoaderFailureError(CacheError):
    """
    Raised when a warm-up loader fails or yields malformed data.

    Args:
        namespace: Namespace being warmed
        original_error: The underlying exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, namespace: str, original_error: Exception) -> None:
        self.namespace = namespace
        self.original_error = original_error
        super().__init__(
            f"Cache warming loader failed for {namespace}: {original_error}",
            details={
                "namespace": namespace,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="LOADER_FAILURE",
        )


class CacheShutdownError(CacheError):
    """Raised when the cache is used after `shutdown()` released its maps."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"Cache is shut down, cannot {operation}",
            details={"operation": operation},
            error_code="CACHE_SHUTDOWN",
        )


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """
    Get the severity level of an exception for logging.

    Unknown exceptions are treated as ERROR.
    """
    if isinstance(exc, PirateCacheInfrastructureException):
        return exc.severity
    return ErrorSeverity.ERROR
