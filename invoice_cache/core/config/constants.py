"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the invoicing cache layer.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for TTL policy and key separators
- Type-safe enums for backend state and management actions
- Easy to update and track changes
"""

from enum import Enum, IntEnum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Cache processing stages used as the ``stage`` field of log entries.

    Format: {PREFIX}.{SEQUENCE}_{DESCRIPTIVE_NAME}
    """

    INITIALIZATION = "CACHE.0_INITIALIZATION"
    LOOKUP = "CACHE.1_LOOKUP"
    COMPUTE = "CACHE.2_COMPUTE"
    POPULATE = "CACHE.3_POPULATE"
    INVALIDATE = "CACHE.4_INVALIDATE"
    FALLBACK = "CACHE.5_FALLBACK"
    BULK = "CACHE.6_BULK"
    SHUTDOWN = "CACHE.7_SHUTDOWN"


# ============================================================================
# TTL Classes
# ============================================================================


class CacheTTL(IntEnum):
    """
    Closed set of cache lifetimes, in seconds.

    Every value written through the read-through path carries exactly one
    of these classes. The class is also the maximum staleness window of an
    entry if its invalidation fails.
    """

    SHORT = 60  # 1 minute
    MEDIUM = 300  # 5 minutes
    LONG = 900  # 15 minutes
    VERY_LONG = 3600  # 1 hour
    SESSION = 86400  # 24 hours


# ============================================================================
# Backend State
# ============================================================================


class CacheBackendKind(str, Enum):
    """
    Which store currently serves cache operations.

    REMOTE: Redis, shared across all application instances
    MEMORY: In-process fallback map, local to this process
    """

    REMOTE = "redis"
    MEMORY = "memory"


# ============================================================================
# Entity Families
# ============================================================================


class EntityFamily(str, Enum):
    """
    Cache key families. The value is the leading key segment.
    """

    USER = "user"
    CLIENTS = "clients"
    CLIENT = "client"
    PRODUCTS = "products"
    PRODUCT = "product"
    INVOICES = "invoices"
    INVOICE = "invoice"
    DASHBOARD = "dashboard"
    SETTINGS = "settings"
    SESSION = "session"


# ============================================================================
# Management Actions
# ============================================================================


class CacheAction(str, Enum):
    """
    Operator actions accepted by the cache management endpoint.
    """

    CLEAR_USER = "clear-user"
    PREWARM = "prewarm"
    CLEANUP = "cleanup"


# ============================================================================
# Key Layout
# ============================================================================

KEY_SEPARATOR = ":"
DEFAULT_KEY_PREFIX = "invoicing:"

# Default pagination used by list keys
DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 10

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
HEADER_USER_ID = "X-User-ID"
