"""
Order service behaviour: creation protocol, cache degradation, delete outcomes.
"""
from datetime import datetime, timezone

import pytest

from table_orders.core.config import Settings
from table_orders.core.errors import ErrorKind, OrderServiceError
from table_orders.services.order_service import OrderService

NOW = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)
READY_EPOCH = int(datetime(2026, 3, 1, 18, 15, tzinfo=timezone.utc).timestamp())


class FailingCache:
    """Cache whose every call fails the given way."""

    def __init__(self, kind: ErrorKind, fail_get: bool = True, fail_set: bool = True):
        self.kind = kind
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.writes: list[str] = []

    make_key = staticmethod(lambda table_id, dish_id, token: f"{table_id}_{dish_id}_{token}")

    async def get(self, key):
        if self.fail_get:
            raise OrderServiceError(self.kind, "cache down")
        return None

    async def set_with_ttl(self, key, value, ttl):
        if self.fail_set:
            raise OrderServiceError(self.kind, "cache down")
        self.writes.append(key)


class UntouchableStore:
    async def insert(self, *args):
        raise AssertionError("store must not be used on a cache hit")


@pytest.fixture
def service(store, cache, settings) -> OrderService:
    return OrderService(store=store, cache=cache, settings=settings, clock=lambda: NOW)


@pytest.mark.asyncio
async def test_ready_time_is_fifteen_minutes_out(service):
    created = await service.create_order(1, 10)
    assert created.order.ready_time == READY_EPOCH
    assert created.replayed is False


@pytest.mark.asyncio
async def test_no_token_never_touches_cache(service, redis_client):
    await service.create_order(1, 10)
    await service.create_order(1, 10)
    assert await redis_client.keys("*") == []
    assert len(await service.list_orders(1)) == 2


@pytest.mark.asyncio
async def test_token_writes_cache_entry_with_ttl(service, redis_client, settings):
    created = await service.create_order(4, 10, "tok")

    raw = await redis_client.get("4_10_tok")
    assert raw == created.order.model_dump_json()
    assert 0 < await redis_client.ttl("4_10_tok") <= settings.IDEMPOTENCY_KEY_TTL_SECONDS


@pytest.mark.asyncio
async def test_cache_hit_replays_without_store_access(service):
    first = await service.create_order(2, 10, "tok")

    service.store = UntouchableStore()
    second = await service.create_order(2, 10, "tok")

    assert second.replayed is True
    assert second.order == first.order


@pytest.mark.asyncio
async def test_expired_entry_allows_new_creation(service, redis_client):
    first = await service.create_order(3, 10, "tok")
    await redis_client.delete("3_10_tok")  # what expiry does

    second = await service.create_order(3, 10, "tok")
    assert second.replayed is False
    assert second.order.id != first.order.id


@pytest.mark.asyncio
async def test_unreadable_cache_entry_is_a_miss(service, redis_client):
    await redis_client.set("5_10_tok", "not json")
    created = await service.create_order(5, 10, "tok")
    assert created.replayed is False
    assert await redis_client.get("5_10_tok") == created.order.model_dump_json()


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", [ErrorKind.CACHE_UNAVAILABLE, ErrorKind.CACHE_QUERY_FAILED])
async def test_cache_read_failure_degrades_to_miss(store, settings, kind):
    cache = FailingCache(kind, fail_get=True, fail_set=False)
    service = OrderService(store=store, cache=cache, settings=settings, clock=lambda: NOW)

    created = await service.create_order(1, 10, "tok")

    assert created.replayed is False
    assert cache.writes == ["1_10_tok"]
    assert await store.fetch_one(1, created.order.id) is not None


@pytest.mark.asyncio
async def test_cache_write_failure_is_swallowed(store, settings):
    cache = FailingCache(ErrorKind.CACHE_UNAVAILABLE, fail_get=False, fail_set=True)
    service = OrderService(store=store, cache=cache, settings=settings, clock=lambda: NOW)

    first = await service.create_order(1, 10, "tok")
    second = await service.create_order(1, 10, "tok")

    # Nothing was cached, so the retry is a second durable order
    assert first.order.id != second.order.id
    assert len(await service.list_orders(1)) == 2


@pytest.mark.asyncio
async def test_store_failure_propagates_unchanged(cache, settings):
    class DownStore:
        async def insert(self, *args):
            raise OrderServiceError(ErrorKind.STORE_UNAVAILABLE, "refused")

    service = OrderService(store=DownStore(), cache=cache, settings=settings)
    with pytest.raises(OrderServiceError) as excinfo:
        await service.create_order(1, 10, "tok")
    assert excinfo.value.kind is ErrorKind.STORE_UNAVAILABLE


@pytest.mark.asyncio
async def test_get_order_scoping(service):
    created = await service.create_order(6, 10)
    assert await service.get_order(6, created.order.id) == created.order
    assert await service.get_order(7, created.order.id) is None


@pytest.mark.asyncio
async def test_delete_outcomes(service):
    created = await service.create_order(8, 10)
    order_id = created.order.id

    assert await service.delete_order(8, order_id) is True
    assert await service.delete_order(8, order_id) is True
    assert await service.delete_order(9, order_id) is False
    assert await service.delete_order(8, order_id + 1000) is False
    assert await service.get_order(8, order_id) is None


@pytest.mark.asyncio
async def test_delete_touching_many_rows_is_inconsistency(cache, settings):
    class DuplicatingStore:
        async def mark_deleted(self, table_id, order_id):
            return 2

    service = OrderService(store=DuplicatingStore(), cache=cache, settings=settings)
    with pytest.raises(OrderServiceError) as excinfo:
        await service.delete_order(1, 1)
    assert excinfo.value.kind is ErrorKind.INTERNAL_INCONSISTENCY
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_max_page_size_caps_limit(store, cache):
    service = OrderService(store=store, cache=cache, settings=Settings(MAX_PAGE_SIZE=2))
    for dish in range(5):
        await service.create_order(11, dish)

    assert len(await service.list_orders(11)) == 2
    assert len(await service.list_orders(11, limit=10)) == 2
    assert len(await service.list_orders(11, limit=1)) == 1
