"""Custom exception hierarchy for rendercache."""

from __future__ import annotations


class RenderCacheError(Exception):
    """Base class for all custom errors raised by rendercache."""


# --- 3-layer hierarchy ---

class DomainError(RenderCacheError):
    """Base class for domain-level errors."""


class InfrastructureError(RenderCacheError):
    """Base class for infrastructure-level errors."""


class ApplicationError(RenderCacheError):
    """Base class for application-level errors."""


# --- Domain errors ---

class PixelsNotFoundError(DomainError):
    """Raised when an explicitly requested pixel set does not exist."""


class SettingsNotFoundError(DomainError):
    """Raised when an explicitly requested rendering settings id does not resolve."""


class IncompatibleSettingsError(DomainError):
    """Raised when rendering settings do not structurally match a pixel set."""


# --- Infrastructure errors ---

class DatabaseError(InfrastructureError):
    """Raised when a database operation fails."""


class DatabaseBusyError(DatabaseError):
    """Raised when a connection cannot be acquired after retrying.

    ``backoff`` holds the last back-off (seconds) so callers may decide when
    to try again.
    """

    def __init__(self, message: str, backoff: float = 0.0):
        super().__init__(message)
        self.backoff = backoff


class ConnectionPoolExhausted(InfrastructureError):
    """Raised when no connections are available in the pool."""


class ThumbnailStoreError(InfrastructureError):
    """Raised when the binary thumbnail store cannot be queried."""


# --- Application errors ---

class MetadataPreconditionError(ApplicationError):
    """Raised when staleness is queried before both timestamps are known."""


# --- DI-specific errors ---

class CircularDependencyError(RenderCacheError):
    """Raised when a circular dependency is detected during resolution."""


class ResolutionError(RenderCacheError):
    """Raised when a dependency cannot be resolved."""


# --- Configuration ---

class ConfigError(RenderCacheError):
    """Base class for configuration related failures."""


class ConfigLoadError(ConfigError):
    """Raised when the settings file cannot be parsed or loaded."""


class ConfigValidationError(ConfigError):
    """Raised when settings data fails schema validation."""
