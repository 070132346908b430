#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Serves the operational cache endpoints (stats, management, health) and owns
the cache layer's lifecycle: the CacheLayer is built and connected once at
startup, stored on ``app.state`` and shut down on exit.

Run:
    python -m invoice_cache.application.app
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from invoice_cache.application.api.middleware.error_handler import register_error_handling
from invoice_cache.application.api.routes.cache import router as cache_router
from invoice_cache.application.api.routes.health import router as health_router
from invoice_cache.core.config.constants import HEADER_REQUEST_ID
from invoice_cache.core.config.settings import Settings, get_settings
from invoice_cache.core.logging.logger import (
    clear_request_id,
    get_logger,
    set_request_id,
    setup_logging,
)
from invoice_cache.infrastructure.cache import CacheLayer, WarmupLoader, build_cache_layer

logger = get_logger(__name__)


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    settings: Settings | None = None,
    cache_layer: CacheLayer | None = None,
    dashboard_loader: WarmupLoader | None = None,
    settings_loader: WarmupLoader | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to the global settings)
        cache_layer: Pre-built cache layer; built from settings at startup
            when omitted
        dashboard_loader: Pre-warm computation for dashboard entries
        settings_loader: Pre-warm computation for settings entries

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

        logger.info(
            "Starting invoicing cache service",
            environment=settings.app.ENVIRONMENT,
            version=settings.app.APP_VERSION,
        )

        layer = cache_layer or build_cache_layer(
            settings,
            dashboard_loader=dashboard_loader,
            settings_loader=settings_loader,
        )
        await layer.initialize()
        app.state.cache_layer = layer

        logger.info("Application startup complete", cache_backend=layer.service.backend.value)

        try:
            yield
        finally:
            logger.info("Shutting down application")
            await layer.shutdown()
            app.state.cache_layer = None
            logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Read-through cache layer for the invoicing backend",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Middleware runs in reverse registration order: the request-id
    # middleware registered below wraps error handling, so even unhandled
    # errors carry the request id header.
    register_error_handling(app, include_traceback=(settings.app.ENVIRONMENT == "development"))

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Correlate every log line of a request with one request id."""
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)
        try:
            response = await call_next(request)
            response.headers[HEADER_REQUEST_ID] = request_id
            return response
        finally:
            clear_request_id()

    base_path = settings.app.API_BASE_PATH
    app.include_router(health_router, prefix=base_path)
    app.include_router(cache_router, prefix=base_path)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": f"{base_path}/health",
        }

    return app


app = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "invoice_cache.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
