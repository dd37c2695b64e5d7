import pytest
import redis

from app.services import response_cache
from app.services.response_cache import INVOICE_REQUESTS, INVOICES, ResponseCache


class FakeRedisStore:
    def __init__(self):
        self.values = {}
        self.sets = {}

    async def get_json(self, key):
        return self.values.get(key)

    async def set_json(self, key, payload, ttl):
        self.values[key] = payload

    async def delete(self, *keys):
        for key in keys:
            self.values.pop(key, None)
            self.sets.pop(key, None)
        return len(keys)

    async def track(self, index_key, key, ttl):
        self.sets.setdefault(index_key, set()).add(key)

    async def tracked(self, index_key):
        return set(self.sets.get(index_key, set()))


@pytest.fixture
def store(monkeypatch):
    fake = FakeRedisStore()
    monkeypatch.setattr(response_cache, "redis_get_json", fake.get_json)
    monkeypatch.setattr(response_cache, "redis_set_json", fake.set_json)
    monkeypatch.setattr(response_cache, "redis_delete", fake.delete)
    monkeypatch.setattr(response_cache, "redis_track_key", fake.track)
    monkeypatch.setattr(response_cache, "redis_tracked_keys", fake.tracked)
    return fake


def test_key_depends_on_filters_and_pagination_only():
    a = ResponseCache.key(INVOICES, {"status": "UNPAID", "client_id": None}, {"limit": 50, "offset": 0})
    b = ResponseCache.key(INVOICES, {"client_id": None, "status": "UNPAID"}, {"offset": 0, "limit": 50})
    c = ResponseCache.key(INVOICES, {"status": "PAID", "client_id": None}, {"limit": 50, "offset": 0})
    assert a == b
    assert a != c
    assert a.startswith("cache:invoices:")


@pytest.mark.asyncio
async def test_set_then_get_returns_snapshot(store):
    cache = ResponseCache(ttl_seconds=30)
    await cache.set(INVOICES, {"status": None}, {"limit": 10, "offset": 0}, {"items": [], "total": 0})
    assert await cache.get(INVOICES, {"status": None}, {"limit": 10, "offset": 0}) == {"items": [], "total": 0}
    assert await cache.get(INVOICES, {"status": None}, {"limit": 10, "offset": 10}) is None


@pytest.mark.asyncio
async def test_invalidate_drops_only_named_namespaces(store):
    cache = ResponseCache(ttl_seconds=30)
    await cache.set(INVOICES, {}, {"limit": 10, "offset": 0}, {"total": 1})
    await cache.set(INVOICE_REQUESTS, {}, {"limit": 10, "offset": 0}, {"total": 2})

    await cache.invalidate(INVOICES)

    assert await cache.get(INVOICES, {}, {"limit": 10, "offset": 0}) is None
    assert await cache.get(INVOICE_REQUESTS, {}, {"limit": 10, "offset": 0}) == {"total": 2}


@pytest.mark.asyncio
async def test_redis_outage_degrades_to_miss(monkeypatch):
    async def broken(*args, **kwargs):
        raise redis.ConnectionError("down")

    for name in ("redis_get_json", "redis_set_json", "redis_tracked_keys"):
        monkeypatch.setattr(response_cache, name, broken)
    cache = ResponseCache(ttl_seconds=30)

    assert await cache.get(INVOICES, {}, {}) is None
    await cache.set(INVOICES, {}, {}, {"total": 0})
    await cache.invalidate(INVOICES, INVOICE_REQUESTS)
