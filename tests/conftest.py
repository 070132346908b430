"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys

import fakeredis
import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from invoice_cache.core.config.settings import Settings  # noqa: E402
from invoice_cache.infrastructure.cache import build_cache_layer  # noqa: E402
from invoice_cache.infrastructure.cache.cache_service import CacheService  # noqa: E402
from invoice_cache.infrastructure.cache.memory_store import MemoryStore  # noqa: E402
from invoice_cache.infrastructure.cache.read_through import ReadThroughCache  # noqa: E402
from invoice_cache.infrastructure.cache.redis_client import RedisClient  # noqa: E402
from tests.test_fixtures.cache_factory import CacheTestFactory, FakeClock  # noqa: E402

# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """
    Settings for memory-only tests.

    Built without the .env file so the developer's local configuration
    cannot leak into test runs.
    """
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        REDIS_ENABLED=False,
        CACHE_REMOTE_REPROBE_INTERVAL=0,
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
    )


@pytest.fixture
def redis_settings():
    """Settings for tests that exercise the Redis backend (fakeredis)."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        REDIS_ENABLED=True,
        REDIS_KEY_PREFIX="test:",
        REDIS_SCAN_COUNT=10,
        CACHE_REMOTE_REPROBE_INTERVAL=0,
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
    )


# ============================================================================
# Clock and Store Fixtures
# ============================================================================


@pytest.fixture
def fake_clock():
    """Manually advanced clock starting at t=1000s."""
    return FakeClock(start=1000.0)


@pytest.fixture
def memory_store(fake_clock):
    """In-process store driven by the fake clock."""
    return MemoryStore(clock=fake_clock)


@pytest.fixture
async def fake_redis():
    """
    In-process Redis server emulation.

    decode_responses=True matches the production connection pool.
    """
    server = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield server
    await server.flushall()
    await server.aclose()


@pytest.fixture
async def redis_client(fake_redis, redis_settings):
    """Connected RedisClient backed by fakeredis."""
    client = RedisClient(settings=redis_settings, client=fake_redis)
    await client.connect()
    yield client
    await client.disconnect()


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
async def cache_service(memory_store, test_settings):
    """CacheService in memory mode."""
    service = CacheService(remote=None, fallback=memory_store, settings=test_settings)
    await service.initialize()
    return service


@pytest.fixture
async def remote_cache_service(fake_redis, memory_store, redis_settings):
    """CacheService with Redis (fakeredis) active."""
    remote = RedisClient(settings=redis_settings, client=fake_redis)
    service = CacheService(remote=remote, fallback=memory_store, settings=redis_settings)
    await service.initialize()
    yield service
    await service.shutdown()


@pytest.fixture
async def failing_remote_service(memory_store, redis_settings):
    """
    CacheService whose remote store connects but then fails every call.
    """
    remote = CacheTestFactory.failing_store(connect_fails=False)
    service = CacheService(remote=remote, fallback=memory_store, settings=redis_settings)
    await service.initialize()
    return service


@pytest.fixture
def read_through(cache_service, test_settings):
    """ReadThroughCache over the memory-mode service."""
    return ReadThroughCache(cache_service, test_settings)


@pytest.fixture
async def cache_layer(memory_store, test_settings):
    """Fully wired cache layer in memory mode."""
    layer = build_cache_layer(test_settings, fallback=memory_store)
    await layer.initialize()
    yield layer
    await layer.shutdown()
