"""
Cache API Models
================

Request and response models for the operational cache endpoints.

Field names are snake_case in Python and camelCase on the wire
(``totalKeys``, ``keysByType``, ``userId``). FastAPI serializes response
models by alias, and ``populate_by_name`` lets handlers build them with the
Python names.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from invoice_cache.core.config.constants import CacheAction, CacheBackendKind

# ============================================================================
# STATS
# ============================================================================


class CacheStatsResponse(BaseModel):
    """
    Key counts per family plus backend state.

    Example:
        {
            "totalKeys": 3,
            "keysByType": {"clients": 2, "dashboard": 1},
            "timestamp": "2025-01-01T00:00:00+00:00",
            "backend": "redis",
            "metrics": {"hits": 10, "misses": 2, ...}
        }
    """

    model_config = ConfigDict(populate_by_name=True)

    total_keys: int = Field(..., ge=0, alias="totalKeys", description="Number of live keys")
    keys_by_type: dict[str, int] = Field(
        default_factory=dict,
        alias="keysByType",
        description="Key count per family (segment before the first ':')",
    )
    timestamp: str = Field(..., description="ISO 8601 UTC time of the snapshot")
    backend: CacheBackendKind = Field(..., description="Store currently serving operations")
    metrics: dict[str, Any] = Field(
        default_factory=dict, description="Hit, miss and fallback counters"
    )


# ============================================================================
# MANAGEMENT
# ============================================================================


class CacheActionRequest(BaseModel):
    """
    Operator action on the cache.

    ``userId`` is optional; per-user actions fall back to the X-User-ID
    header when it is omitted.
    """

    model_config = ConfigDict(populate_by_name=True)

    action: CacheAction = Field(..., description="clear-user, prewarm or cleanup")
    user_id: str | None = Field(
        default=None,
        alias="userId",
        max_length=320,
        description="Owner whose cache the action targets",
    )


class CacheActionResponse(BaseModel):
    """Outcome of a management action."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True)
    action: CacheAction
    message: str
    user_id: str | None = Field(default=None, alias="userId")
    result: dict[str, Any] = Field(
        default_factory=dict, description="Action-specific counters"
    )


# ============================================================================
# HEALTH
# ============================================================================


class HealthResponse(BaseModel):
    """Health status with per-component detail."""

    status: str  # "healthy" or "degraded"
    timestamp: str
    components: dict[str, Any] | None = None
