"""API route modules."""

from invoice_cache.application.api.routes.cache import router as cache_router
from invoice_cache.application.api.routes.health import router as health_router

__all__ = ["cache_router", "health_router"]
