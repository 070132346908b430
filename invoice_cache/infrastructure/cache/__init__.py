"""
Cache Module

Read-through caching over Redis with an in-process fallback store.

build_cache_layer() wires one instance of every component; the application
builds it once at startup and shares it.
"""

from dataclasses import dataclass

from invoice_cache.core.config.settings import Settings, get_settings
from invoice_cache.infrastructure.cache.bulk import BulkCache, CacheStats, SessionCache, WarmupLoader
from invoice_cache.infrastructure.cache.cache_service import CacheService
from invoice_cache.infrastructure.cache.invalidator import CacheInvalidator, InvalidationEvent
from invoice_cache.infrastructure.cache.keys import CacheKeys
from invoice_cache.infrastructure.cache.memory_store import MemoryStore
from invoice_cache.infrastructure.cache.read_through import ReadThroughCache
from invoice_cache.infrastructure.cache.redis_client import RedisClient


@dataclass
class CacheLayer:
    """All cache components sharing one CacheService."""

    service: CacheService
    read_through: ReadThroughCache
    invalidator: CacheInvalidator
    stats: CacheStats
    bulk: BulkCache
    sessions: SessionCache

    async def initialize(self) -> None:
        await self.service.initialize()

    async def shutdown(self) -> None:
        await self.service.shutdown()


def build_cache_layer(
    settings: Settings | None = None,
    remote: RedisClient | None = None,
    fallback: MemoryStore | None = None,
    dashboard_loader: WarmupLoader | None = None,
    settings_loader: WarmupLoader | None = None,
) -> CacheLayer:
    """
    Construct the cache components. No connection is made here.

    Args:
        settings: Application settings (defaults to the global settings)
        remote: Remote store; a RedisClient is built when REDIS_ENABLED
        fallback: In-process store
        dashboard_loader: Pre-warm computation for dashboard:{owner}
        settings_loader: Pre-warm computation for settings:{owner}
    """
    settings = settings or get_settings()
    if remote is None and settings.redis.REDIS_ENABLED:
        remote = RedisClient(settings)

    service = CacheService(remote=remote, fallback=fallback, settings=settings)
    read_through = ReadThroughCache(service, settings)

    return CacheLayer(
        service=service,
        read_through=read_through,
        invalidator=CacheInvalidator(service),
        stats=CacheStats(service),
        bulk=BulkCache(
            service,
            read_through,
            dashboard_loader=dashboard_loader,
            settings_loader=settings_loader,
        ),
        sessions=SessionCache(service),
    )


__all__ = [
    "BulkCache",
    "CacheInvalidator",
    "CacheKeys",
    "CacheLayer",
    "CacheService",
    "CacheStats",
    "InvalidationEvent",
    "MemoryStore",
    "ReadThroughCache",
    "RedisClient",
    "SessionCache",
    "build_cache_layer",
]
