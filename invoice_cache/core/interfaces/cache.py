"""
Key-Value Store Protocol

This module defines the capability set shared by the two cache backends,
enabling dependency injection and testability.

Architectural Decision: Protocol-based abstraction
- RedisClient (remote, shared across instances) and MemoryStore
  (in-process fallback) implement the same interface
- CacheService swaps between them by catching errors at the call site,
  never by inspecting the runtime type
- Tests inject fakes that satisfy the protocol structurally
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Protocol defining the operations every cache backend provides.

    Keys are plain strings; values are JSON text. ``pattern`` arguments use
    glob syntax (``*`` matches any sequence, including ``:``) and match the
    whole key.

    Implementations:
    - RedisClient: Production Redis-backed store
    - MemoryStore: In-process fallback with lazy expiry
    """

    async def get(self, key: str) -> str | None:
        """
        Get value from the store.

        Returns:
            Value, or None if the key is missing or expired
        """
        ...

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """
        Store a value.

        Args:
            key: Cache key
            value: JSON text to store
            ttl: Time-to-live in seconds; None or 0 means no expiry
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove a key. Removing a missing key is not an error."""
        ...

    async def exists(self, key: str) -> bool:
        """Return True if the key is present and not expired."""
        ...

    async def keys(self, pattern: str) -> list[str]:
        """Return every live key matching the glob pattern."""
        ...


@runtime_checkable
class ConnectableStore(KeyValueStore, Protocol):
    """
    A KeyValueStore with a connection lifecycle (the remote backend).
    """

    async def connect(self) -> None:
        """
        Establish connection to the backend.

        Raises:
            CacheConnectionError: If connection fails
        """
        ...

    async def disconnect(self) -> None:
        """Close connection to the backend."""
        ...

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check.

        Returns:
            Dict with health status and metrics
        """
        ...
