"""
Cache Invalidator

Deletes the key families affected by a mutation. Called after the mutation
has been committed, as a separate step with its own failure mode:

- A failed invalidation is logged at ERROR and reported as ``False``; it is
  never raised and never rolls the mutation back.
- The worst case is a stale entry served until its TTL class elapses, so
  every cached family's staleness is bounded by its TTL.

Every call emits an InvalidationEvent to registered listeners, successful
or not. A listener can feed an outbox or retry queue without any change to
the invalidate_* signatures.

Families touched:
    invalidate_clients(owner, id?)   clients:{owner}:*, client:{owner}:{id}, dashboard
    invalidate_products(owner, id?)  products:{owner}:*, product:{owner}:{id}, dashboard
    invalidate_invoices(owner, id?)  invoices:{owner}:*, invoice:{owner}:{id}, dashboard
    invalidate_settings(owner)       settings:{owner}
    invalidate_dashboard(owner)      dashboard:{owner}
    invalidate_session(token)        session:{token}
    invalidate_user(owner)           *:{owner}:*, user, dashboard, settings
"""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from invoice_cache.core.config.constants import EntityFamily, Stage
from invoice_cache.core.logging.logger import get_logger, log_stage
from invoice_cache.infrastructure.cache.cache_service import CacheService
from invoice_cache.infrastructure.cache.keys import CacheKeys

logger = get_logger(__name__)


@dataclass(frozen=True)
class InvalidationEvent:
    """Outcome of one invalidate_* call."""

    family: EntityFamily
    owner_id: str
    entity_id: str | None = None
    patterns: tuple[str, ...] = ()
    keys: tuple[str, ...] = ()
    error: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.error is None


InvalidationListener = Callable[[InvalidationEvent], Awaitable[None] | None]


class CacheInvalidator:
    """
    Pattern and key invalidation after writes.

    Usage:
        invalidator = CacheInvalidator(cache_service)
        await repository.create_client(owner_id, payload)
        await invalidator.invalidate_clients(owner_id)
    """

    def __init__(self, cache: CacheService):
        self._cache = cache
        self._listeners: list[InvalidationListener] = []

    def add_listener(self, listener: InvalidationListener) -> None:
        """Register a callback (sync or async) receiving every InvalidationEvent."""
        self._listeners.append(listener)

    def remove_listener(self, listener: InvalidationListener) -> None:
        self._listeners.remove(listener)

    # -------------------------------------------------------------------------
    # Entity families
    # -------------------------------------------------------------------------

    async def invalidate_clients(self, owner_id: str, client_id: str | None = None) -> bool:
        return await self._invalidate_family(
            EntityFamily.CLIENTS, owner_id, client_id, CacheKeys.client
        )

    async def invalidate_products(self, owner_id: str, product_id: str | None = None) -> bool:
        return await self._invalidate_family(
            EntityFamily.PRODUCTS, owner_id, product_id, CacheKeys.product
        )

    async def invalidate_invoices(self, owner_id: str, invoice_id: str | None = None) -> bool:
        # Invoices feed the dashboard's revenue and status aggregates
        return await self._invalidate_family(
            EntityFamily.INVOICES, owner_id, invoice_id, CacheKeys.invoice
        )

    async def invalidate_settings(self, owner_id: str) -> bool:
        return await self._run(
            EntityFamily.SETTINGS, owner_id, keys=(CacheKeys.settings(owner_id),)
        )

    async def invalidate_dashboard(self, owner_id: str) -> bool:
        return await self._run(
            EntityFamily.DASHBOARD, owner_id, keys=(CacheKeys.dashboard(owner_id),)
        )

    async def invalidate_session(self, session_token: str) -> bool:
        return await self._run(
            EntityFamily.SESSION, session_token, keys=(CacheKeys.session(session_token),)
        )

    async def invalidate_user(self, owner_id: str) -> bool:
        """Full-account reset: every qualified key plus the owner's singletons."""
        return await self._run(
            EntityFamily.USER,
            owner_id,
            patterns=(CacheKeys.owner_pattern(owner_id),),
            keys=(
                CacheKeys.user(owner_id),
                CacheKeys.dashboard(owner_id),
                CacheKeys.settings(owner_id),
            ),
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _invalidate_family(
        self,
        family: EntityFamily,
        owner_id: str,
        entity_id: str | None,
        singleton_key: Callable[[str, str], str],
    ) -> bool:
        keys = [CacheKeys.dashboard(owner_id)]
        if entity_id:
            keys.insert(0, singleton_key(owner_id, entity_id))

        return await self._run(
            family,
            owner_id,
            entity_id=entity_id,
            patterns=(CacheKeys.list_pattern(family, owner_id),),
            keys=tuple(keys),
        )

    async def _run(
        self,
        family: EntityFamily,
        owner_id: str,
        entity_id: str | None = None,
        patterns: tuple[str, ...] = (),
        keys: tuple[str, ...] = (),
    ) -> bool:
        error: str | None = None
        cleared = 0
        try:
            for pattern in patterns:
                cleared += await self._cache.clear_pattern(pattern)
            for key in keys:
                await self._cache.delete(key)
        except Exception as e:
            error = str(e) or type(e).__name__
            log_stage(
                logger, Stage.INVALIDATE, "Cache invalidation failed; entries stale until TTL",
                level="error", family=family.value, owner_id=owner_id, entity_id=entity_id,
                error=error,
            )
        else:
            log_stage(
                logger, Stage.INVALIDATE, "Cache invalidated", level="debug",
                family=family.value, owner_id=owner_id, entity_id=entity_id,
                pattern_matches=cleared, keys=len(keys),
            )

        await self._notify(
            InvalidationEvent(
                family=family,
                owner_id=owner_id,
                entity_id=entity_id,
                patterns=patterns,
                keys=keys,
                error=error,
            )
        )
        return error is None

    async def _notify(self, event: InvalidationEvent) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(
                    "Invalidation listener failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    family=event.family.value,
                    error=str(e),
                )
