"""Tests for the TTL response cache."""

import pytest

from b2client.cache import CacheClass, CacheKey, ResponseCache
from b2client.models import ErrorResponse
from b2client.types import ApiResult


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def cache(clock: _Clock) -> ResponseCache:
    return ResponseCache(clock=clock)


def _key(identity: str = "a", cache_class: CacheClass = CacheClass.LIST_BUCKETS) -> CacheKey:
    return CacheKey(cache_class, identity)


class TestResponseCache:
    def test_entries_expire(self, cache: ResponseCache, clock: _Clock) -> None:
        cache.set(_key(), "value", ttl=10)

        clock.now += 9.9
        assert cache.get(_key()) == "value"
        clock.now += 0.2
        assert cache.get(_key()) is None
        assert len(cache) == 0

    def test_non_positive_ttl_is_not_stored(self, cache: ResponseCache) -> None:
        cache.set(_key(), "value", ttl=0)
        cache.set(_key("b"), "value", ttl=-5)
        assert len(cache) == 0

    def test_invalidate_by_class(self, cache: ResponseCache) -> None:
        cache.set(_key("a"), 1, ttl=60)
        cache.set(_key("b"), 2, ttl=60)
        cache.set(_key("c", CacheClass.LIST_KEYS), 3, ttl=60)
        cache.set(_key("d", CacheClass.UPLOAD_URL), 4, ttl=60)

        cache.invalidate(CacheClass.LIST_BUCKETS, CacheClass.UPLOAD_URL)

        assert cache.keys() == [_key("c", CacheClass.LIST_KEYS)]

    def test_remove_and_clear(self, cache: ResponseCache) -> None:
        cache.set(_key("a"), 1, ttl=60)
        cache.set(_key("b"), 2, ttl=60)

        cache.remove(_key("a"))
        assert _key("a") not in cache
        assert _key("b") in cache

        cache.clear()
        assert len(cache) == 0


class TestGetOrCreate:
    @pytest.mark.asyncio
    async def test_success_is_cached(self, cache: ResponseCache) -> None:
        calls = 0

        async def factory() -> ApiResult[str]:
            nonlocal calls
            calls += 1
            return ApiResult.success("ok")

        first = await cache.get_or_create(_key(), factory, ttl=60)
        second = await cache.get_or_create(_key(), factory, ttl=60)

        assert first is second
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, cache: ResponseCache) -> None:
        calls = 0

        async def factory() -> ApiResult[str]:
            nonlocal calls
            calls += 1
            return ApiResult.failure(ErrorResponse(status=503, code="service_unavailable"))

        await cache.get_or_create(_key(), factory, ttl=60)
        result = await cache.get_or_create(_key(), factory, ttl=60)

        assert not result.is_success
        assert calls == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_zero_ttl_bypasses_cache(self, cache: ResponseCache) -> None:
        calls = 0

        async def factory() -> ApiResult[str]:
            nonlocal calls
            calls += 1
            return ApiResult.success("ok")

        await cache.get_or_create(_key(), factory, ttl=0)
        await cache.get_or_create(_key(), factory, ttl=0)

        assert calls == 2
        assert len(cache) == 0
