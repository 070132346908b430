#!/usr/bin/env python3
"""
Cache Service - Remote Store with Per-Call In-Process Fallback

Architecture:
    CacheService (Public API)
        ├── Remote store (RedisClient, optional)
        ├── Fallback store (MemoryStore)
        └── CacheMetrics (hit / miss / fallback counters)

Backend Selection:
    initialize() makes exactly one connection attempt at startup.
    - Success: the remote store is active. Each primitive still catches any
      failure of its remote call, logs a WARNING and repeats the identical
      call on the fallback store. The active backend does not flip.
    - Failure: memory mode. The mode is sticky; when
      CACHE_REMOTE_REPROBE_INTERVAL is positive, the first operation after
      each interval re-probes the remote store once and switches back to it
      on success.

Callers of get/set/delete/exists/keys never observe a transport error.

Serialization:
    Values are JSON text encoded with orjson. Decimal is written as a
    string, pydantic models via ``model_dump(mode="json")``, sets as lists;
    datetimes, dataclasses, UUIDs and enums are handled natively by orjson.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, TypeVar

import orjson
from pydantic import BaseModel

from invoice_cache.core.config.constants import CacheBackendKind, CacheTTL, Stage
from invoice_cache.core.config.settings import Settings, get_settings
from invoice_cache.core.exceptions import CacheSerializationError, InvalidTTLError
from invoice_cache.core.interfaces.cache import ConnectableStore, KeyValueStore
from invoice_cache.core.logging.logger import get_logger, log_stage
from invoice_cache.infrastructure.cache.memory_store import MemoryStore

logger = get_logger(__name__)

T = TypeVar("T")


def _json_default(value: Any) -> Any:
    """orjson fallback encoder for types it does not serialize natively."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def dumps(value: Any) -> str:
    """Encode a value as JSON text for storage."""
    return orjson.dumps(value, default=_json_default).decode("utf-8")


def validate_ttl(ttl: int | None) -> CacheTTL | None:
    """
    Coerce a TTL to its CacheTTL class.

    Raises:
        InvalidTTLError: If ttl is not None and not a CacheTTL value
    """
    if ttl is None:
        return None
    try:
        return CacheTTL(ttl)
    except ValueError as e:
        raise InvalidTTLError(
            message=f"TTL {ttl!r} is not a cache TTL class",
            details={"ttl": ttl, "allowed": [member.value for member in CacheTTL]},
        ) from e


# =============================================================================
# METRICS
# =============================================================================


@dataclass
class CacheMetrics:
    """Counters for cache traffic since process start."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    fallbacks: int = 0

    def snapshot(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            **asdict(self),
            "hit_rate": round(self.hits / lookups, 3) if lookups else 0.0,
        }


# =============================================================================
# PUBLIC API
# =============================================================================


class CacheService:
    """
    Unified cache interface over a remote store and an in-process fallback.

    Usage:
        service = CacheService(remote=RedisClient(), fallback=MemoryStore())
        await service.initialize()

        await service.set_json("dashboard:u1", {"revenue": "10.00"}, ttl=CacheTTL.MEDIUM)
        data = await service.get_json("dashboard:u1")

        removed = await service.clear_pattern("clients:u1:*")

        await service.shutdown()

    One instance is built at startup and injected wherever the cache is
    used; there is no module-level instance.
    """

    def __init__(
        self,
        remote: ConnectableStore | None = None,
        fallback: MemoryStore | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the service. No I/O happens until initialize().

        Args:
            remote: Remote store; None runs in memory mode only
            fallback: In-process store (a fresh MemoryStore by default)
            settings: Application settings
            clock: Monotonic clock used for the re-probe interval
        """
        self._settings = settings or get_settings()
        self._remote_enabled = self._settings.redis.REDIS_ENABLED
        self._reprobe_interval = self._settings.cache.CACHE_REMOTE_REPROBE_INTERVAL
        self._remote = remote
        self._fallback = fallback if fallback is not None else MemoryStore()
        self._clock = clock

        self._remote_active = False
        self._initialized = False
        self._last_probe_at: float | None = None
        self._probe_lock = asyncio.Lock()

        self._metrics = CacheMetrics()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> CacheBackendKind:
        """
        Attempt the remote connection once and select the backend.

        STAGE-CACHE.0: Backend selection

        Returns:
            The backend that will serve operations
        """
        if self._initialized:
            return self.backend

        self._initialized = True

        if self._remote is None or not self._remote_enabled:
            log_stage(
                logger,
                Stage.INITIALIZATION,
                "Remote cache disabled; using in-process store",
                level="warning",
            )
            return self.backend

        if await self._try_connect():
            log_stage(logger, Stage.INITIALIZATION, "Cache service using Redis")
        else:
            log_stage(
                logger,
                Stage.INITIALIZATION,
                "Redis unavailable at startup; using in-process store",
                level="warning",
                reprobe_interval=self._reprobe_interval,
            )
        return self.backend

    async def shutdown(self) -> None:
        """
        Close the remote connection.

        STAGE-CACHE.7: Shutdown
        """
        if self._remote is not None and self._remote_active:
            await self._remote.disconnect()
        self._remote_active = False
        self._initialized = False
        log_stage(logger, Stage.SHUTDOWN, "Cache service shut down")

    async def _try_connect(self) -> bool:
        self._last_probe_at = self._clock()
        try:
            await self._remote.connect()
        except Exception as e:
            logger.debug("Remote cache connection attempt failed", error=str(e))
            self._remote_active = False
            return False
        self._remote_active = True
        return True

    async def _maybe_reprobe(self) -> None:
        if (
            self._remote is None
            or not self._initialized
            or self._reprobe_interval <= 0
            or not self._remote_enabled
            or self._probe_lock.locked()
        ):
            return
        elapsed = self._clock() - (self._last_probe_at or 0.0)
        if self._last_probe_at is not None and elapsed < self._reprobe_interval:
            return

        async with self._probe_lock:
            if self._remote_active:
                return
            if await self._try_connect():
                log_stage(logger, Stage.FALLBACK, "Redis reachable again; leaving memory mode")

    # -------------------------------------------------------------------------
    # Backend dispatch
    # -------------------------------------------------------------------------

    @property
    def backend(self) -> CacheBackendKind:
        """The backend currently serving operations."""
        return CacheBackendKind.REMOTE if self._remote_active else CacheBackendKind.MEMORY

    @property
    def fallback_store(self) -> MemoryStore:
        return self._fallback

    async def _execute(
        self,
        operation: str,
        call: Callable[[KeyValueStore], Awaitable[T]],
        **context: Any,
    ) -> T:
        """
        Run ``call`` on the active store, repeating it on the fallback store
        if the remote call raises.
        """
        if not self._remote_active:
            await self._maybe_reprobe()

        if not self._remote_active:
            return await call(self._fallback)

        try:
            return await call(self._remote)
        except Exception as e:
            self._metrics.fallbacks += 1
            log_stage(
                logger,
                Stage.FALLBACK,
                "Redis operation failed; using in-process store",
                level="warning",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
                **context,
            )
            return await call(self._fallback)

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """
        Get raw JSON text.

        STAGE-CACHE.1: Lookup
        """
        value = await self._execute("get", lambda store: store.get(key), key=key)
        if value is None:
            self._metrics.misses += 1
            log_stage(logger, Stage.LOOKUP, "Cache miss", level="debug", key=key)
        else:
            self._metrics.hits += 1
            log_stage(logger, Stage.LOOKUP, "Cache hit", level="debug", key=key)
        return value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """
        Store raw JSON text.

        Raises:
            InvalidTTLError: If ttl is not a CacheTTL value
        """
        ttl_class = validate_ttl(ttl)
        seconds = int(ttl_class) if ttl_class is not None else None
        await self._execute("set", lambda store: store.set(key, value, seconds), key=key)
        self._metrics.sets += 1

    async def delete(self, key: str) -> None:
        await self._execute("delete", lambda store: store.delete(key), key=key)
        self._metrics.deletes += 1

    async def exists(self, key: str) -> bool:
        return await self._execute("exists", lambda store: store.exists(key), key=key)

    async def keys(self, pattern: str) -> list[str]:
        return await self._execute("keys", lambda store: store.keys(pattern), pattern=pattern)

    # -------------------------------------------------------------------------
    # JSON helpers
    # -------------------------------------------------------------------------

    async def get_json(self, key: str) -> Any | None:
        """
        Get and decode a JSON value.

        Returns:
            Decoded value, or None if the key is missing or holds malformed JSON
        """
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("Malformed cached JSON treated as a miss", key=key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        """
        Encode a value as JSON and store it.

        Raises:
            CacheSerializationError: If the value cannot be encoded
            InvalidTTLError: If ttl is not a CacheTTL value
        """
        try:
            payload = dumps(value)
        except TypeError as e:
            raise CacheSerializationError.from_exception(
                e, message=f"Cannot serialize value for key {key}", key=key
            ) from e
        await self.set(key, payload, ttl)

    # -------------------------------------------------------------------------
    # Bulk operations
    # -------------------------------------------------------------------------

    async def clear_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        STAGE-CACHE.4: Pattern invalidation

        Returns:
            Number of keys deleted; 0 when nothing matched
        """
        matched = await self.keys(pattern)
        if not matched:
            return 0

        await asyncio.gather(*(self.delete(key) for key in matched))
        log_stage(
            logger, Stage.INVALIDATE, "Cleared keys by pattern", level="debug",
            pattern=pattern, count=len(matched),
        )
        return len(matched)

    async def cleanup_expired(self) -> int:
        """
        Purge expired entries from the in-process store.

        Redis expires keys natively, so only the fallback store needs this.
        """
        removed = await self._fallback.purge_expired()
        logger.info("Purged expired fallback entries", count=removed)
        return removed

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    def metrics(self) -> dict[str, Any]:
        """Hit, miss and fallback counters."""
        return self._metrics.snapshot()

    async def health_check(self) -> dict[str, Any]:
        """
        Report backend state for the health endpoint.

        Status is "degraded" while the in-process store is serving, since
        its contents are not shared with other instances.
        """
        health: dict[str, Any] = {
            "status": "healthy",
            "backend": self.backend.value,
            "remote": None,
            "fallback_entries": self._fallback.size,
            "metrics": self.metrics(),
        }

        if self._remote is None:
            health["remote"] = {"status": "disabled"}
        elif self._remote_active:
            remote_health = await self._remote.health_check()
            health["remote"] = remote_health
            if remote_health.get("status") != "healthy":
                health["status"] = "degraded"
        else:
            health["remote"] = {"status": "not_connected"}

        if self.backend is CacheBackendKind.MEMORY:
            health["status"] = "degraded"

        return health
