"""HTTP middleware and exception handlers."""

from invoice_cache.application.api.middleware.error_handler import (
    ErrorHandlingMiddleware,
    register_error_handling,
)

__all__ = ["ErrorHandlingMiddleware", "register_error_handling"]
