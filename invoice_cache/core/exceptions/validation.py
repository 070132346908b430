"""
Validation Exceptions

All exceptions related to request validation on the operational endpoints.
"""

from invoice_cache.core.exceptions.base import InvoiceCacheError


class ValidationError(InvoiceCacheError):
    """
    Raised when request validation fails.

    This is the base class for all validation-related errors.
    """
    pass


class InvalidInputError(ValidationError):
    """
    Raised when input validation fails.

    Common causes:
    - Missing owner id for a per-user action
    - Empty identifiers
    """
    pass
