"""
API Models Package

Pydantic models for API request/response validation.
"""

from invoice_cache.application.api.models.cache import (
    CacheActionRequest,
    CacheActionResponse,
    CacheStatsResponse,
    HealthResponse,
)

__all__ = [
    "CacheActionRequest",
    "CacheActionResponse",
    "CacheStatsResponse",
    "HealthResponse",
]
