"""
Health Check Routes

    GET {API_BASE_PATH}/health        cache backend health
    GET {API_BASE_PATH}/health/live   liveness (no dependency checks)

The cache degrades instead of failing, so /health always answers 200 and
reports "degraded" in the body while the in-process store is serving.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from invoice_cache.application.api.dependencies import CacheLayerDep
from invoice_cache.application.api.models.cache import HealthResponse

router = APIRouter(prefix="/health", tags=["Health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("", response_model=HealthResponse)
async def health_check(layer: CacheLayerDep) -> HealthResponse:
    """Cache health, including Redis ping latency when Redis is active."""
    cache_health = await layer.service.health_check()
    return HealthResponse(
        status=cache_health["status"],
        timestamp=_now(),
        components={"cache": cache_health},
    )


@router.get("/live")
async def liveness_probe() -> dict[str, str]:
    """The process is up and the event loop is responsive."""
    return {"status": "alive", "timestamp": _now()}
