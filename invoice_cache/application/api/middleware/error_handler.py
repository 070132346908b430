"""
Error Handling
==============

Two layers:

1. Exception handlers for the package's own hierarchy:
   - ValidationError      -> 400 with ``to_dict()`` body
   - InvoiceCacheError    -> 500 with ``to_dict()`` body
2. ErrorHandlingMiddleware, the catch-all for anything else. It logs the
   full stack trace server-side and returns a generic 500 body; the
   traceback is only included in development.
"""

import traceback
from collections.abc import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from invoice_cache.core.config.constants import HEADER_REQUEST_ID
from invoice_cache.core.exceptions import InvoiceCacheError, ValidationError
from invoice_cache.core.logging.logger import get_logger, get_request_id

logger = get_logger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Last line of defense for exceptions no handler claimed.

    Clients get a stable error shape and no internal details (unless
    include_traceback is set for development).
    """

    def __init__(self, app, include_traceback: bool = False):
        """
        Args:
            app: The ASGI application
            include_traceback: Whether to include stack traces in error responses
        """
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                method=method,
                path=path,
                error_type=error_type,
                error_message=str(e),
                exc_info=True,
            )

            error_response = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred while processing your request",
                "error_type": error_type,
                "request_id": get_request_id(),
            }

            if self.include_traceback:
                error_response["traceback"] = traceback.format_exc()
                error_response["detail"] = str(e)

            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_response)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Caller errors (missing owner id and similar)."""
    exc.request_id = exc.request_id or get_request_id()
    logger.warning(f"Request rejected: {exc.message}", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=exc.to_dict(),
        headers={HEADER_REQUEST_ID: exc.request_id or ""},
    )


async def invoice_cache_error_handler(request: Request, exc: InvoiceCacheError) -> JSONResponse:
    """Internal errors raised by the cache layer."""
    exc.request_id = exc.request_id or get_request_id()
    logger.error(f"Cache layer error: {exc.message}", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=exc.to_dict(),
        headers={HEADER_REQUEST_ID: exc.request_id or ""},
    )


def register_error_handling(app: FastAPI, include_traceback: bool = False) -> None:
    """
    Install the exception handlers and the catch-all middleware.

    The more specific ValidationError handler wins over the base
    InvoiceCacheError handler because Starlette resolves handlers along
    the exception's MRO.
    """
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(InvoiceCacheError, invoice_cache_error_handler)
    app.add_middleware(ErrorHandlingMiddleware, include_traceback=include_traceback)
    logger.debug("Error handling registered", include_traceback=include_traceback)
