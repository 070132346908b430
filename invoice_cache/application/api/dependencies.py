"""
FastAPI Dependency Injection Module

Reusable dependencies for route handlers. The cache layer is built once in
the application lifespan and stored on ``app.state``; every request receives
that same instance.

Usage:
    @router.get("/cache")
    async def stats(layer: CacheLayerDep):
        return await layer.stats.get_stats()
"""

from typing import Annotated

from fastapi import Depends, Header, Request

from invoice_cache.core.config.constants import HEADER_USER_ID
from invoice_cache.core.exceptions import ConfigurationError
from invoice_cache.infrastructure.cache import CacheLayer

# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_cache_layer(request: Request) -> CacheLayer:
    """
    Retrieve the CacheLayer built during application startup.

    Raises:
        ConfigurationError: If the lifespan has not run (app used without
            its lifespan, e.g. a TestClient outside a ``with`` block)
    """
    layer = getattr(request.app.state, "cache_layer", None)
    if layer is None:
        raise ConfigurationError("Cache layer is not initialized; application startup has not run")
    return layer


def get_header_user_id(
    x_user_id: Annotated[str | None, Header(alias=HEADER_USER_ID)] = None,
) -> str | None:
    """
    Owner id supplied by the upstream authentication layer.

    Authentication itself happens before this service; the header is trusted.
    """
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


# ============================================================================
# TYPE ALIASES FOR CLEANER ROUTE SIGNATURES
# ============================================================================

CacheLayerDep = Annotated[CacheLayer, Depends(get_cache_layer)]

HeaderUserIdDep = Annotated[str | None, Depends(get_header_user_id)]
