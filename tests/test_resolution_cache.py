"""
Tests for the cache backends and the resolution cache wrapper.
"""
import asyncio
import time

from redis.exceptions import ConnectionError as RedisConnectionError

from shortlink.cache.resolution import CachedUrl, ResolutionCache
from shortlink.cache.strategies import InMemoryCache, NullCache, RedisCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class DownRedis:
    """redis.asyncio client stand-in whose server is unreachable"""

    async def get(self, key):
        raise RedisConnectionError("Connection refused")

    async def setex(self, key, ttl, value):
        raise RedisConnectionError("Connection refused")

    async def ttl(self, key):
        raise RedisConnectionError("Connection refused")


class SlowCache(InMemoryCache):
    async def get(self, key):
        await asyncio.sleep(5)
        return await super().get(key)

    async def set(self, key, value, ttl=3600):
        await asyncio.sleep(5)
        return await super().set(key, value, ttl)


class BrokenCache(InMemoryCache):
    async def get(self, key):
        raise RuntimeError("boom")

    async def set(self, key, value, ttl=3600):
        raise RuntimeError("boom")


class TestInMemoryCache:

    def test_set_then_get(self):
        cache = InMemoryCache()

        async def run():
            await cache.set("aB3dE9kP", "value", ttl=60)
            return await cache.get("aB3dE9kP")

        assert asyncio.run(run()) == "value"

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        asyncio.run(cache.set("k", "v", ttl=3600))

        clock.now += 3599
        assert asyncio.run(cache.get("k")) == "v"
        assert asyncio.run(cache.ttl("k")) == 1

        clock.now += 1
        assert asyncio.run(cache.get("k")) is None
        assert asyncio.run(cache.ttl("k")) is None

    def test_set_drops_expired_entries(self):
        """Keys that are never read again do not pile up"""
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        asyncio.run(cache.set("stale", "v", ttl=10))
        clock.now += 10

        asyncio.run(cache.set("fresh", "v", ttl=10))

        assert "stale" not in cache._cache
        assert "fresh" in cache._cache

    def test_set_resets_ttl(self):
        clock = FakeClock()
        cache = InMemoryCache(clock=clock)
        asyncio.run(cache.set("k", "old", ttl=3600))
        clock.now += 3000

        asyncio.run(cache.set("k", "new", ttl=3600))

        assert asyncio.run(cache.get("k")) == "new"
        assert asyncio.run(cache.ttl("k")) == 3600


class TestNullCache:

    def test_always_misses(self):
        cache = NullCache()
        assert asyncio.run(cache.set("k", "v")) is True
        assert asyncio.run(cache.get("k")) is None


class TestRedisCache:
    """Backend errors turn into misses, never exceptions"""

    def test_get_on_unreachable_server_is_miss(self):
        cache = RedisCache(DownRedis())
        assert asyncio.run(cache.get("k")) is None

    def test_set_on_unreachable_server_reports_false(self):
        cache = RedisCache(DownRedis())
        assert asyncio.run(cache.set("k", "v")) is False

    def test_ttl_on_unreachable_server_is_none(self):
        cache = RedisCache(DownRedis())
        assert asyncio.run(cache.ttl("k")) is None


class TestResolutionCache:

    def test_stores_url_id_and_long_url(self):
        backend = InMemoryCache()
        cache = ResolutionCache(backend, ttl=3600)

        assert asyncio.run(cache.set("aB3dE9kP", 42, "https://example.com/page")) is True
        cached = asyncio.run(cache.get("aB3dE9kP"))

        assert cached == CachedUrl(url_id=42, long_url="https://example.com/page")

    def test_value_is_camel_case_json(self):
        backend = InMemoryCache()
        cache = ResolutionCache(backend)

        asyncio.run(cache.set("aB3dE9kP", 42, "https://example.com/page"))
        raw = asyncio.run(backend.get("aB3dE9kP"))

        assert raw == '{"urlId":42,"longUrl":"https://example.com/page"}'

    def test_ttl_is_applied(self):
        backend = InMemoryCache()
        cache = ResolutionCache(backend, ttl=3600)

        asyncio.run(cache.set("aB3dE9kP", 42, "https://example.com/page"))

        assert 3590 <= asyncio.run(backend.ttl("aB3dE9kP")) <= 3600

    def test_key_prefix(self):
        backend = InMemoryCache()
        cache = ResolutionCache(backend, key_prefix="short:")

        asyncio.run(cache.set("aB3dE9kP", 1, "https://example.com"))

        assert cache.key_for("aB3dE9kP") == "short:aB3dE9kP"
        assert asyncio.run(backend.get("short:aB3dE9kP")) is not None
        assert asyncio.run(backend.get("aB3dE9kP")) is None

    def test_absent_key_is_miss(self):
        cache = ResolutionCache(InMemoryCache())
        assert asyncio.run(cache.get("zzzzzzzz")) is None

    def test_unreadable_entry_is_miss(self):
        backend = InMemoryCache()
        asyncio.run(backend.set("aB3dE9kP", "https://example.com/page"))
        cache = ResolutionCache(backend)

        assert asyncio.run(cache.get("aB3dE9kP")) is None

    def test_slow_backend_is_bounded(self):
        cache = ResolutionCache(SlowCache(), timeout=0.05)

        started = time.perf_counter()
        assert asyncio.run(cache.get("aB3dE9kP")) is None
        assert asyncio.run(cache.set("aB3dE9kP", 1, "https://example.com")) is False
        elapsed = time.perf_counter() - started

        assert elapsed < 2

    def test_backend_exception_is_miss(self):
        cache = ResolutionCache(BrokenCache())

        assert asyncio.run(cache.get("aB3dE9kP")) is None
        assert asyncio.run(cache.set("aB3dE9kP", 1, "https://example.com")) is False

    def test_unreachable_redis_is_miss(self):
        cache = ResolutionCache(RedisCache(DownRedis()))

        assert asyncio.run(cache.get("aB3dE9kP")) is None
        assert asyncio.run(cache.set("aB3dE9kP", 1, "https://example.com")) is False
