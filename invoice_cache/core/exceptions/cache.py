"""
Cache-Related Exceptions

All exceptions related to caching operations (Redis, in-process fallback, serialization).
"""

from invoice_cache.core.exceptions.base import InvoiceCacheError


class CacheError(InvoiceCacheError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to the remote cache (Redis).

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a remote cache key operation fails.

    Never escapes CacheService: the service retries the call on the
    in-process store instead.
    """
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded as JSON for caching."""
    pass


class InvalidTTLError(CacheError):
    """Raised when a TTL is not one of the CacheTTL classes."""
    pass
