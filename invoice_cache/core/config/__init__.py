"""
Configuration Module

Centralized, type-safe configuration for the invoicing cache layer.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: TTL classes, key layout, enums and HTTP header names

Usage:
------
```python
from invoice_cache.core.config import get_settings
from invoice_cache.core.config.constants import CacheTTL

settings = get_settings()
prefix = settings.redis.REDIS_KEY_PREFIX
ttl = CacheTTL.MEDIUM  # 300 seconds
```
"""

from invoice_cache.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
