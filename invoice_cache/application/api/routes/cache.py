"""
Cache Management Routes

Operational control plane for the cache:

    GET  {API_BASE_PATH}/cache   key counts per family, backend, counters
    POST {API_BASE_PATH}/cache   run an action: clear-user, prewarm, cleanup

Each action maps onto exactly one bulk operation. Per-user actions take the
owner from ``userId`` in the body, or from the X-User-ID header when the body
omits it.
"""

from fastapi import APIRouter, status

from invoice_cache.application.api.dependencies import CacheLayerDep, HeaderUserIdDep
from invoice_cache.application.api.models.cache import (
    CacheActionRequest,
    CacheActionResponse,
    CacheStatsResponse,
)
from invoice_cache.core.config.constants import HEADER_USER_ID, CacheAction
from invoice_cache.core.exceptions import InvalidInputError
from invoice_cache.core.logging.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/cache", tags=["Cache"])


@router.get("", response_model=CacheStatsResponse, status_code=status.HTTP_200_OK)
async def get_cache_stats(layer: CacheLayerDep) -> CacheStatsResponse:
    """
    Cache statistics.

    An empty cache reports ``totalKeys: 0`` and ``keysByType: {}``.
    """
    stats = await layer.stats.get_stats()
    return CacheStatsResponse(
        total_keys=stats["total_keys"],
        keys_by_type=stats["keys_by_type"],
        timestamp=stats["timestamp"],
        backend=layer.service.backend,
        metrics=layer.service.metrics(),
    )


@router.post("", response_model=CacheActionResponse, status_code=status.HTTP_200_OK)
async def manage_cache(
    body: CacheActionRequest,
    layer: CacheLayerDep,
    header_user_id: HeaderUserIdDep,
) -> CacheActionResponse:
    """
    Run a cache management action.

    Raises:
        InvalidInputError: clear-user or prewarm without an owner (HTTP 400)
    """
    if body.action is CacheAction.CLEANUP:
        purged = await layer.stats.clear_expired_keys()
        return CacheActionResponse(
            action=body.action,
            message="Expired cache keys cleaned up",
            result={"purged": purged},
        )

    owner_id = (body.user_id or "").strip() or header_user_id
    if not owner_id:
        raise InvalidInputError(
            f"userId or {HEADER_USER_ID} header is required for action '{body.action.value}'",
            details={"action": body.action.value},
        )

    logger.info("Cache management action", action=body.action.value, owner_id=owner_id)

    if body.action is CacheAction.CLEAR_USER:
        cleared = await layer.bulk.clear_user_cache(owner_id)
        return CacheActionResponse(
            action=body.action,
            message=f"Cache cleared for user: {owner_id}",
            user_id=owner_id,
            result={"cleared": cleared},
        )

    warmed = await layer.bulk.pre_warm_user_cache(owner_id)
    return CacheActionResponse(
        action=body.action,
        message=f"Cache pre-warmed for user: {owner_id}",
        user_id=owner_id,
        result={"warmed": warmed},
    )
