"""
Integration Tests for Cache Scenarios

End-to-end flows through the wired CacheLayer: read-through with expiry,
write then invalidate then recompute, an unreachable Redis, and the
stats/bulk operations. Each scenario runs against both backends where the
behaviour must be identical.
"""

import pytest

from invoice_cache.core.config.constants import CacheBackendKind, CacheTTL
from invoice_cache.infrastructure.cache import build_cache_layer
from invoice_cache.infrastructure.cache.keys import CacheKeys
from invoice_cache.infrastructure.cache.redis_client import RedisClient
from tests.test_fixtures import CacheTestFactory, CountingLoader

OWNER = "ann@example.com"


class ClientRepository:
    """Stand-in for the persistence layer the cache sits in front of."""

    def __init__(self):
        self.rows: list[dict] = []
        self.list_calls = 0

    async def list_clients(self, owner_id: str) -> list[dict]:
        self.list_calls += 1
        return [row for row in self.rows if row["owner"] == owner_id]

    async def create_client(self, owner_id: str, name: str) -> dict:
        row = {"id": str(len(self.rows) + 1), "owner": owner_id, "name": name}
        self.rows.append(row)
        return row


@pytest.fixture(params=["memory", "redis"])
async def layer(request, memory_store, fake_redis, test_settings, redis_settings):
    """The wired cache layer on each backend."""
    if request.param == "memory":
        cache_layer = build_cache_layer(test_settings, fallback=memory_store)
    else:
        cache_layer = build_cache_layer(
            redis_settings,
            remote=RedisClient(settings=redis_settings, client=fake_redis),
            fallback=memory_store,
        )
    await cache_layer.initialize()
    yield cache_layer
    await cache_layer.shutdown()


@pytest.mark.integration
class TestDashboardExpiry:
    """A dashboard entry lives exactly one MEDIUM TTL on the in-process store."""

    @pytest.mark.asyncio
    async def test_hit_before_ttl_and_recompute_after(self, cache_layer, fake_clock):
        loader = CountingLoader(value={"revenue": "500.00"})
        key = CacheKeys.dashboard(OWNER)

        await cache_layer.read_through.with_cache(key, lambda: loader(OWNER), CacheTTL.MEDIUM)

        fake_clock.advance(299)
        await cache_layer.read_through.with_cache(key, lambda: loader(OWNER), CacheTTL.MEDIUM)
        assert loader.calls == 1

        fake_clock.advance(2)
        await cache_layer.read_through.with_cache(key, lambda: loader(OWNER), CacheTTL.MEDIUM)
        assert loader.calls == 2


@pytest.mark.integration
class TestWriteThenInvalidate:
    """A committed write followed by invalidation is visible on the next read."""

    @pytest.mark.asyncio
    async def test_new_client_visible_after_invalidation(self, layer):
        repository = ClientRepository()
        key = CacheKeys.clients(OWNER)

        async def list_clients():
            return await layer.read_through.with_cache(
                key, lambda: repository.list_clients(OWNER), CacheTTL.MEDIUM
            )

        assert await list_clients() == []

        await repository.create_client(OWNER, "Acme")
        # Without invalidation the cached empty list is still served
        assert await list_clients() == []

        assert await layer.invalidator.invalidate_clients(OWNER) is True

        names = [row["name"] for row in await list_clients()]
        assert names == ["Acme"]
        assert repository.list_calls == 2

    @pytest.mark.asyncio
    async def test_invoice_change_refreshes_dashboard(self, layer):
        dashboard = CountingLoader(value={"outstanding": 1})
        key = CacheKeys.dashboard(OWNER)

        await layer.read_through.with_cache(key, dashboard, CacheTTL.MEDIUM)
        await layer.invalidator.invalidate_invoices(OWNER, "inv-1")
        await layer.read_through.with_cache(key, dashboard, CacheTTL.MEDIUM)

        assert dashboard.calls == 2


@pytest.mark.integration
class TestUnavailableRedis:
    """Callers keep working while every Redis call fails."""

    @pytest.mark.asyncio
    async def test_round_trip_through_fallback(self, memory_store, redis_settings):
        layer = build_cache_layer(
            redis_settings,
            remote=CacheTestFactory.failing_store(connect_fails=False),
            fallback=memory_store,
        )
        await layer.initialize()

        await layer.service.set_json(CacheKeys.settings(OWNER), {"currency": "EUR"}, CacheTTL.LONG)

        assert await layer.service.get_json(CacheKeys.settings(OWNER)) == {"currency": "EUR"}
        assert layer.service.backend is CacheBackendKind.REMOTE
        assert layer.service.metrics()["fallbacks"] == 2

    @pytest.mark.asyncio
    async def test_unreachable_at_startup_serves_from_memory(self, memory_store, redis_settings):
        layer = build_cache_layer(
            redis_settings,
            remote=CacheTestFactory.failing_store(connect_fails=True),
            fallback=memory_store,
        )
        await layer.initialize()
        loader = CountingLoader(value=[{"id": "1"}])

        await layer.read_through.with_cache(CacheKeys.clients(OWNER), loader, CacheTTL.MEDIUM)
        await layer.read_through.with_cache(CacheKeys.clients(OWNER), loader, CacheTTL.MEDIUM)

        assert layer.service.backend is CacheBackendKind.MEMORY
        assert loader.calls == 1


@pytest.mark.integration
class TestStatsAndBulk:
    """Stats and pattern clearing behave the same on both backends."""

    @pytest.mark.asyncio
    async def test_empty_stats(self, layer):
        stats = await layer.stats.get_stats()

        assert stats["total_keys"] == 0
        assert stats["keys_by_type"] == {}

    @pytest.mark.asyncio
    async def test_clear_pattern_spares_singleton(self, layer):
        service = layer.service
        await service.set_json("clients:U:p1:l10:s", [], CacheTTL.MEDIUM)
        await service.set_json("clients:U:p2:l10:sacme", [], CacheTTL.MEDIUM)
        await service.set_json("client:U:123", {"name": "Acme"}, CacheTTL.LONG)

        removed = await service.clear_pattern("clients:U:*")

        assert removed == 2
        assert await service.get_json("client:U:123") == {"name": "Acme"}
        assert (await layer.stats.get_stats())["keys_by_type"] == {"client": 1}

    @pytest.mark.asyncio
    async def test_clear_user_cache(self, layer):
        for key in (
            CacheKeys.clients(OWNER),
            CacheKeys.invoice(OWNER, "7"),
            CacheKeys.dashboard(OWNER),
            CacheKeys.dashboard("bob@example.com"),
        ):
            await layer.service.set_json(key, {}, CacheTTL.MEDIUM)

        await layer.bulk.clear_user_cache(OWNER)

        assert await layer.service.keys("*") == [CacheKeys.dashboard("bob@example.com")]

    @pytest.mark.asyncio
    async def test_session_round_trip(self, layer):
        await layer.sessions.set_session("tok-1", {"user_id": OWNER})

        assert await layer.sessions.get_session("tok-1") == {"user_id": OWNER}

        await layer.invalidator.invalidate_session("tok-1")

        assert await layer.sessions.get_session("tok-1") is None
