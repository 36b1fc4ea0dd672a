class StorefrontSyncError(Exception):
    """Base class for all exceptions in storefront-sync."""


class CacheError(StorefrontSyncError):
    """Exception raised for cache-related errors."""


class BackendNotFoundError(CacheError):
    """Exception raised when no default storage backend is configured."""


class CacheSerializationError(CacheError):
    """Exception raised when a value cannot be stored as JSON."""


class RealtimeError(StorefrontSyncError):
    """Exception raised for realtime subscription errors."""


class MalformedEventError(RealtimeError):
    """Exception raised when a change event cannot be normalized."""
