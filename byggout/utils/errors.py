"""Error handling utilities."""

from typing import Optional


class ByggoutError(Exception):
    """Base exception for the Byggout marketplace core."""
    pass


class ValidationError(ByggoutError):
    """User input rejected before any mutation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class AuthorizationError(ByggoutError):
    """Actor lacks the capability required for an operation."""
    pass


class ConfigError(ByggoutError):
    """Required configuration (Supabase URL/key, payment key) is missing."""
    pass


class RemoteError(ByggoutError):
    """Supabase table operation error."""
    pass


class NetworkError(RemoteError):
    """Auth round-trip to Supabase failed."""
    pass


class StorageError(RemoteError):
    """Supabase storage (image upload) error."""
    pass
