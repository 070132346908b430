"""
Read-Through Wrapper

``with_cache(key, compute_fn, ttl)`` returns the cached value for ``key``
or computes it, stores it and returns it.

Algorithm:
    1. get_json(key); any non-None value is a hit and compute_fn is not called
    2. On a miss, call compute_fn; its exceptions propagate unchanged and
       nothing is cached
    3. set_json(key, result, ttl) and return result

The cache is always allowed to fail: if the lookup raises, the result of
compute_fn is returned uncached; if storing raises (for instance an
unserializable result), the already computed result is returned.

Single-flight (CACHE_SINGLE_FLIGHT):
    Concurrent misses on one key within this process queue on a per-key
    asyncio.Lock. The first caller computes and populates; the others
    re-check the cache once they hold the lock and find the fresh entry.
    Instances in other processes still compute independently
    (last write wins).

A hit returns the decoded JSON, so types without a JSON equivalent
(Decimal, datetime) come back in their encoded form on later calls.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from invoice_cache.core.config.constants import CacheTTL, Stage
from invoice_cache.core.config.settings import Settings, get_settings
from invoice_cache.core.exceptions import InvalidTTLError
from invoice_cache.core.logging.logger import get_logger, log_stage
from invoice_cache.infrastructure.cache.cache_service import CacheService, validate_ttl

logger = get_logger(__name__)

ComputeFn = Callable[[], Awaitable[Any]] | Callable[[], Any]


async def _call(compute_fn: ComputeFn) -> Any:
    result = compute_fn()
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass
class _Flight:
    """Per-key lock plus the number of callers holding or awaiting it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    waiters: int = 0


class ReadThroughCache:
    """
    Read-through access to a CacheService.

    Usage:
        read_through = ReadThroughCache(cache_service)

        clients = await read_through.with_cache(
            CacheKeys.clients(owner_id, page=1),
            lambda: repository.list_clients(owner_id, page=1),
            CacheTTL.MEDIUM,
        )
    """

    def __init__(self, cache: CacheService, settings: Settings | None = None):
        self._cache = cache
        settings = settings or get_settings()
        self._enabled = settings.cache.CACHE_ENABLED
        self._single_flight = settings.cache.CACHE_SINGLE_FLIGHT
        self._inflight: dict[str, _Flight] = {}

    @property
    def cache(self) -> CacheService:
        return self._cache

    async def with_cache(
        self, key: str, compute_fn: ComputeFn, ttl: CacheTTL | int = CacheTTL.MEDIUM
    ) -> Any:
        """
        Return the cached value for ``key`` or compute, store and return it.

        Args:
            key: Cache key from CacheKeys
            compute_fn: Zero-argument callable, sync or async
            ttl: TTL class of the stored value

        Raises:
            InvalidTTLError: If ttl is not a CacheTTL value
            Exception: Whatever compute_fn raises
        """
        if ttl is None:
            raise InvalidTTLError("Read-through values require a TTL class", details={"key": key})
        ttl_class = validate_ttl(ttl)

        if not self._enabled:
            return await _call(compute_fn)

        if not self._single_flight:
            return await self._read_through(key, compute_fn, ttl_class)

        flight = self._inflight.get(key)
        if flight is None:
            flight = self._inflight[key] = _Flight()
        flight.waiters += 1
        try:
            async with flight.lock:
                return await self._read_through(key, compute_fn, ttl_class)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0:
                self._inflight.pop(key, None)

    async def _read_through(self, key: str, compute_fn: ComputeFn, ttl: CacheTTL) -> Any:
        try:
            cached = await self._cache.get_json(key)
        except Exception as e:
            log_stage(
                logger, Stage.LOOKUP, "Cache lookup failed; computing without cache",
                level="error", key=key, error=str(e),
            )
            return await _call(compute_fn)

        if cached is not None:
            return cached

        log_stage(logger, Stage.COMPUTE, "Computing value for cache miss", level="debug", key=key)
        result = await _call(compute_fn)

        try:
            await self._cache.set_json(key, result, ttl)
        except Exception as e:
            log_stage(
                logger, Stage.POPULATE, "Cache populate failed; returning uncached result",
                level="error", key=key, error=str(e), error_type=type(e).__name__,
            )
            return result

        log_stage(
            logger, Stage.POPULATE, "Cached computed value", level="debug",
            key=key, ttl=int(ttl),
        )
        return result

    @property
    def inflight_keys(self) -> int:
        """Number of keys with a computation running or queued."""
        return len(self._inflight)
