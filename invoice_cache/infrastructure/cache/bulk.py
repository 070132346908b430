"""
Stats, Bulk and Session Operations

Operator-facing helpers built on CacheService:

- CacheStats: key counts per family and expired-entry cleanup
- BulkCache: pre-warm an owner's hot keys, clear everything for an owner
- SessionCache: session payloads under ``session:{token}``
"""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from invoice_cache.core.config.constants import KEY_SEPARATOR, CacheTTL, EntityFamily, Stage
from invoice_cache.core.logging.logger import get_logger, log_stage
from invoice_cache.infrastructure.cache.cache_service import CacheService
from invoice_cache.infrastructure.cache.keys import CacheKeys
from invoice_cache.infrastructure.cache.read_through import ReadThroughCache

logger = get_logger(__name__)

WarmupLoader = Callable[[str], Awaitable[Any]]


# =============================================================================
# STATS
# =============================================================================


class CacheStats:
    """Key enumeration and housekeeping."""

    def __init__(self, cache: CacheService):
        self._cache = cache

    async def get_stats(self) -> dict[str, Any]:
        """
        Count keys by family.

        The family is the substring before the first ``:``. An empty cache
        yields ``total_keys == 0`` and an empty ``keys_by_type``.

        Returns:
            Dict with total_keys, keys_by_type and an ISO-8601 UTC timestamp
        """
        keys = await self._cache.keys("*")
        by_type = Counter(key.split(KEY_SEPARATOR, 1)[0] for key in keys)

        return {
            "total_keys": len(keys),
            "keys_by_type": dict(by_type),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def clear_expired_keys(self) -> int:
        """
        Purge expired entries from the in-process store.

        Redis expires keys on its own; this only matters for entries written
        while the fallback store was serving.

        Returns:
            Number of entries purged
        """
        return await self._cache.cleanup_expired()


# =============================================================================
# BULK
# =============================================================================


class BulkCache:
    """
    Pre-warm and clear an owner's cache.

    Loaders are injected because the computations (dashboard aggregation,
    settings lookup) belong to the application, not the cache layer. Each
    loader receives the owner id.

    Usage:
        bulk = BulkCache(cache, read_through, dashboard_loader=load_dashboard,
                         settings_loader=load_settings)
        await bulk.pre_warm_user_cache(owner_id)
    """

    def __init__(
        self,
        cache: CacheService,
        read_through: ReadThroughCache,
        dashboard_loader: WarmupLoader | None = None,
        settings_loader: WarmupLoader | None = None,
    ):
        self._cache = cache
        self._read_through = read_through
        self._warmups: list[tuple[EntityFamily, Callable[[str], str], WarmupLoader | None, CacheTTL]] = [
            (EntityFamily.DASHBOARD, CacheKeys.dashboard, dashboard_loader, CacheTTL.MEDIUM),
            (EntityFamily.SETTINGS, CacheKeys.settings, settings_loader, CacheTTL.LONG),
        ]

    async def pre_warm_user_cache(self, owner_id: str) -> dict[str, bool]:
        """
        Populate the owner's dashboard and settings entries.

        Goes through the normal read-through path, so an entry that is
        already cached is left alone. Never raises: a failing loader is
        logged and the next one still runs.

        Returns:
            Family name -> whether that entry is now warm
        """
        warmed: dict[str, bool] = {}

        for family, key_for, loader, ttl in self._warmups:
            if loader is None:
                logger.debug("No warm-up loader registered", family=family.value)
                continue
            try:
                await self._read_through.with_cache(
                    key_for(owner_id), lambda load=loader: load(owner_id), ttl
                )
                warmed[family.value] = True
            except Exception as e:
                warmed[family.value] = False
                log_stage(
                    logger, Stage.BULK, "Cache pre-warm failed", level="error",
                    family=family.value, owner_id=owner_id, error=str(e),
                )

        log_stage(logger, Stage.BULK, "Pre-warmed cache for user", owner_id=owner_id, warmed=warmed)
        return warmed

    async def clear_user_cache(self, owner_id: str) -> int:
        """
        Remove every cached entry of an owner, issuing all deletes concurrently.

        Same effect as CacheInvalidator.invalidate_user.

        Returns:
            Number of pattern-matched keys removed (explicit singleton
            deletes are not counted)
        """
        cleared, *_ = await asyncio.gather(
            self._cache.clear_pattern(CacheKeys.owner_pattern(owner_id)),
            self._cache.delete(CacheKeys.user(owner_id)),
            self._cache.delete(CacheKeys.dashboard(owner_id)),
            self._cache.delete(CacheKeys.settings(owner_id)),
        )
        log_stage(logger, Stage.BULK, "Cleared all cache for user", owner_id=owner_id, cleared=cleared)
        return cleared


# =============================================================================
# SESSIONS
# =============================================================================


class SessionCache:
    """Session payload storage keyed by session token."""

    def __init__(self, cache: CacheService):
        self._cache = cache

    async def get_session(self, session_token: str) -> dict[str, Any] | None:
        return await self._cache.get_json(CacheKeys.session(session_token))

    async def set_session(
        self,
        session_token: str,
        session_data: dict[str, Any],
        ttl: CacheTTL | int = CacheTTL.SESSION,
    ) -> None:
        await self._cache.set_json(CacheKeys.session(session_token), session_data, ttl)

    async def delete_session(self, session_token: str) -> None:
        await self._cache.delete(CacheKeys.session(session_token))
