"""
Exception Module

Structured exception hierarchy for the invoicing cache layer.

Module Structure:
-----------------
- **base.py**: InvoiceCacheError base class + ConfigurationError
- **cache.py**: Cache-related exceptions (Redis, serialization, TTL)
- **validation.py**: Request validation exceptions

Usage:
------
```python
from invoice_cache.core.exceptions import CacheConnectionError, InvalidInputError
```
"""

from invoice_cache.core.exceptions.base import ConfigurationError, InvoiceCacheError
from invoice_cache.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    InvalidTTLError,
)
from invoice_cache.core.exceptions.validation import InvalidInputError, ValidationError

__all__ = [
    # Base
    "InvoiceCacheError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    "InvalidTTLError",
    # Validation
    "ValidationError",
    "InvalidInputError",
]
