"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API, implements ConnectableStore)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Namespaced command execution with error handling)
        └── HealthMonitor (Health checks and pool metrics)

Key Namespacing:
    Every key and every pattern is prefixed with REDIS_KEY_PREFIX here and
    nowhere else. Callers always work with bare keys such as
    ``dashboard:u1``; enumeration strips the prefix again before returning.
"""

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from invoice_cache.core.config.settings import Settings, get_settings
from invoice_cache.core.exceptions import CacheConnectionError, CacheKeyError
from invoice_cache.core.logging.logger import get_logger
from invoice_cache.infrastructure.cache.patterns import escape_glob

logger = get_logger(__name__)

_URL_SCHEMES = ("redis://", "rediss://")


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle and pooling
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Responsibility: Connection establishment, pooling, and cleanup.

    Pool Configuration (all from settings):
    - REDIS_URL, or REDIS_HOST / REDIS_PORT / REDIS_DB / REDIS_PASSWORD
    - Max connections, connect timeout and socket timeout
    - Retry with exponential backoff on connection errors and timeouts
    - decode_responses=True so values come back as str
    """

    def __init__(self, settings: Settings, client: redis.Redis | None = None):
        """
        Initialize connection manager.

        Args:
            settings: Application settings
            client: Pre-built client (tests pass a fakeredis instance)
        """
        self._settings = settings
        self._injected_client = client
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    def _build_pool(self) -> ConnectionPool:
        cfg = self._settings.redis
        options: dict[str, Any] = {
            "max_connections": cfg.REDIS_MAX_CONNECTIONS,
            "socket_connect_timeout": cfg.REDIS_SOCKET_CONNECT_TIMEOUT,
            "socket_timeout": cfg.REDIS_SOCKET_TIMEOUT,
            "retry": Retry(ExponentialBackoff(), cfg.REDIS_MAX_RETRIES),
            "retry_on_error": [ConnectionError, TimeoutError],
            "decode_responses": True,
        }

        if cfg.REDIS_URL.startswith(_URL_SCHEMES):
            return ConnectionPool.from_url(cfg.REDIS_URL, **options)

        return ConnectionPool(
            host=cfg.REDIS_HOST,
            port=cfg.REDIS_PORT,
            db=cfg.REDIS_DB,
            password=cfg.REDIS_PASSWORD,
            **options,
        )

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Returns:
            redis.Redis: Connected Redis client

        Raises:
            CacheConnectionError: If the server does not answer PING
        """
        if self._is_connected and self._client:
            return self._client

        if self._injected_client is not None:
            self._client = self._injected_client
        else:
            self._pool = self._build_pool()
            self._client = redis.Redis(connection_pool=self._pool)

        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            logger.warning("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            await self._release()
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details=self.describe_target(),
            ) from e

        self._is_connected = True

        logger.info(
            "Redis connected successfully",
            stage="REDIS.2",
            max_connections=self._settings.redis.REDIS_MAX_CONNECTIONS,
            **self.describe_target(),
        )

        return self._client

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        await self._release()
        logger.info("Redis disconnected", stage="REDIS.3")

    async def _release(self) -> None:
        if self._client is not None and self._injected_client is None:
            await self._client.aclose()

        if self._pool is not None:
            await self._pool.disconnect()

        self._client = None
        self._pool = None
        self._is_connected = False

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if healthy, False otherwise
        """
        if not (self._client and self._is_connected):
            return False
        try:
            await self._client.ping()
        except RedisError:
            return False
        return True

    def describe_target(self) -> dict[str, Any]:
        """Connection target for logs and health output, without credentials."""
        cfg = self._settings.redis
        if cfg.REDIS_URL.startswith(_URL_SCHEMES):
            return {"url_scheme": cfg.REDIS_URL.split("://", 1)[0]}
        return {"host": cfg.REDIS_HOST, "port": cfg.REDIS_PORT, "db": cfg.REDIS_DB}

    def get_client(self) -> redis.Redis | None:
        """Get the Redis client instance."""
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        """Get the connection pool instance."""
        return self._pool

    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# Executes namespaced Redis commands with error handling and logging
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Responsibility: Key namespacing, command execution, error wrapping.

    Error Handling Strategy:
    - Catch RedisError exceptions
    - Log with context (stage, key)
    - Raise CacheKeyError with details, chained to the original error
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str, scan_count: int):
        """
        Initialize operation executor.

        Args:
            redis_client: Connected Redis client
            key_prefix: Namespace prepended to every key
            scan_count: SCAN batch size hint
        """
        self._redis = redis_client
        self._prefix = key_prefix
        self._scan_count = scan_count

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _strip_prefix(self, key: str) -> str:
        return key[len(self._prefix):] if key.startswith(self._prefix) else key

    def _wrap(self, command: str, key: str, error: RedisError) -> CacheKeyError:
        logger.warning(
            f"Redis {command} failed", stage=f"REDIS.{command}", key=key, error=str(error)
        )
        return CacheKeyError(
            message=f"Redis {command} failed: {error}",
            details={"key": key, "command": command},
        )

    async def get(self, key: str) -> str | None:
        """
        Get value from Redis.

        STAGE-REDIS.GET: Redis GET operation
        """
        try:
            return await self._redis.get(self._full_key(key))
        except RedisError as e:
            raise self._wrap("GET", key, e) from e

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """
        Set value in Redis.

        STAGE-REDIS.SET: Redis SET operation

        A falsy ttl stores the key without expiry (plain SET); otherwise
        SET ... EX ttl.
        """
        try:
            await self._redis.set(self._full_key(key), value, ex=int(ttl) if ttl else None)
        except RedisError as e:
            raise self._wrap("SET", key, e) from e

    async def delete(self, key: str) -> None:
        """
        Delete a key from Redis.

        STAGE-REDIS.DEL: Redis DELETE operation
        """
        try:
            await self._redis.delete(self._full_key(key))
        except RedisError as e:
            raise self._wrap("DEL", key, e) from e

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._redis.exists(self._full_key(key)))
        except RedisError as e:
            raise self._wrap("EXISTS", key, e) from e

    async def keys(self, pattern: str) -> list[str]:
        """
        Enumerate keys matching a glob pattern.

        STAGE-REDIS.SCAN: Cursor-based SCAN MATCH, never the blocking KEYS

        SCAN may report a key more than once while the keyspace is being
        rehashed, so results are de-duplicated preserving first-seen order.
        """
        match = escape_glob(self._prefix) + pattern
        found: dict[str, None] = {}
        try:
            async for raw_key in self._redis.scan_iter(match=match, count=self._scan_count):
                found.setdefault(self._strip_prefix(raw_key), None)
        except RedisError as e:
            raise self._wrap("SCAN", pattern, e) from e
        return list(found)


# =============================================================================
# LAYER 3: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health and connection pool metrics.

    Metrics Tracked:
    - Connection status
    - Ping latency
    - Pool capacity (when the client owns its pool)
    """

    def __init__(self, connection_manager: ConnectionManager, settings: Settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        STAGE-REDIS.HEALTH: Redis health check

        Returns:
            Dict with health status and metrics
        """
        health: dict[str, Any] = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "key_prefix": self._settings.redis.REDIS_KEY_PREFIX,
            "ping_latency_ms": None,
            **self._conn_mgr.describe_target(),
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        pool = self._conn_mgr.get_pool()
        if pool is not None:
            health["pool_size"] = pool.max_connections

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class RedisClient:
    """
    Async Redis client implementing the ConnectableStore protocol.

    Usage:
        client = RedisClient()
        await client.connect()

        await client.set("dashboard:u1", payload, ttl=300)
        value = await client.get("dashboard:u1")
        keys = await client.keys("clients:u1:*")

        await client.disconnect()

    Every operation raises CacheKeyError on transport failure, and
    CacheConnectionError when called before connect().
    """

    def __init__(self, settings: Settings | None = None, client: redis.Redis | None = None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization

        Args:
            settings: Application settings (defaults to the global settings)
            client: Pre-built redis.asyncio client, mainly for tests
        """
        self._settings = settings or get_settings()
        self._conn_mgr = ConnectionManager(self._settings, client=client)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        Raises:
            CacheConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(
            client,
            key_prefix=self._settings.redis.REDIS_KEY_PREFIX,
            scan_count=self._settings.redis.REDIS_SCAN_COUNT,
        )

    async def disconnect(self) -> None:
        """Close Redis connection and pool."""
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        """Return True if the server answers PING."""
        return await self._conn_mgr.ping()

    @property
    def is_connected(self) -> bool:
        return self._conn_mgr.is_connected()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheConnectionError("Redis client is not connected")
        return self._executor

    # -------------------------------------------------------------------------
    # KeyValueStore operations, delegated to the executor
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """Get value from Redis."""
        return await self._require_executor().get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Set value in Redis."""
        await self._require_executor().set(key, value, ttl)

    async def delete(self, key: str) -> None:
        """Delete a key from Redis."""
        await self._require_executor().delete(key)

    async def exists(self, key: str) -> bool:
        """Check whether a key exists in Redis."""
        return await self._require_executor().exists(key)

    async def keys(self, pattern: str) -> list[str]:
        """List un-prefixed keys matching a glob pattern."""
        return await self._require_executor().keys(pattern)

    async def health_check(self) -> dict[str, Any]:
        """Perform health check on Redis connection."""
        return await self._health_monitor.health_check()
