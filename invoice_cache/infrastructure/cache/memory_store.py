"""
In-Process Fallback Store

Map-based cache with per-key expiry timestamps, used when Redis is
unreachable.

Responsibility: Serve the KeyValueStore protocol from process memory.

LIMITATION:
-----------
This store is local to one process. In a multi-instance deployment each
instance has its own copy: an invalidation handled by one instance does not
reach another instance's fallback entries, which then stay servable until
their TTL elapses. The Redis backend is the only coherent view.

Implementation Details:
- Expiry is lazy: ``get``/``exists``/``keys`` treat an expired entry as
  absent, and ``get``/``exists`` delete it when they observe it
- ``purge_expired`` sweeps everything at once (backs the cleanup action)
- An asyncio.Lock serializes read-then-delete sequences between coroutines
- The clock is injectable so tests can advance time deterministically
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

from invoice_cache.infrastructure.cache.patterns import compile_glob, literal_prefix


@dataclass(slots=True)
class MemoryEntry:
    """A stored value and its absolute expiry time (clock seconds)."""

    value: str
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        # Alive up to and including the expiry instant
        return self.expires_at is not None and now > self.expires_at


class MemoryStore:
    """
    In-process implementation of the KeyValueStore protocol.

    Usage:
        store = MemoryStore()
        await store.set("dashboard:u1", '{"total": 3}', ttl=300)
        value = await store.get("dashboard:u1")
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the store.

        Args:
            clock: Returns the current time in seconds; must be monotonic
        """
        self._clock = clock
        self._entries: dict[str, MemoryEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._live_entry(key)
            return entry.value if entry else None

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        async with self._lock:
            self._entries[key] = MemoryEntry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live_entry(key) is not None

    async def keys(self, pattern: str) -> list[str]:
        """
        Return live keys matching the glob pattern.

        Expired entries are skipped but not deleted here; ``get`` or
        ``purge_expired`` removes them.
        """
        regex = compile_glob(pattern)
        prefix = literal_prefix(pattern)
        now = self._clock()

        async with self._lock:
            return [
                key
                for key, entry in self._entries.items()
                if key.startswith(prefix) and not entry.is_expired(now) and regex.fullmatch(key)
            ]

    async def purge_expired(self) -> int:
        """
        Delete every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        async with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    async def clear(self) -> None:
        """Remove all entries."""
        async with self._lock:
            self._entries.clear()

    @property
    def size(self) -> int:
        """Number of stored entries, including expired ones not yet purged."""
        return len(self._entries)

    def _live_entry(self, key: str) -> MemoryEntry | None:
        # Caller must hold self._lock
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry
