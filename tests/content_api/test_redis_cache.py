"""Tests for the Redis-backed content cache."""

from unittest.mock import MagicMock, patch

import pytest
import redis

try:
    import fakeredis
    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False

from tiptap_content.cache import ContentCache, DistributedCache
from tiptap_content.config import CacheConfig, TiptapConfig
from tiptap_content.monitoring import get_monitor
from tiptap_content.service import TiptapService


@pytest.fixture
def fake_redis():
    """Provide a fake Redis instance for testing."""
    if not REDIS_AVAILABLE:
        pytest.skip("fakeredis not available")
    return fakeredis.FakeRedis(decode_responses=False)


@pytest.fixture
def cache(fake_redis):
    return DistributedCache(default_ttl=60, redis_client=fake_redis)


class TestDistributedCache:
    """Test cases for DistributedCache class."""

    def test_init_with_redis_available(self, fake_redis):
        """Test initialization when Redis is available."""
        with patch("redis.from_url", return_value=fake_redis):
            cache = DistributedCache(redis_url="redis://test:6379/0")

            assert cache._redis_available is True
            assert cache._redis is fake_redis
            assert cache.default_ttl == 3600.0
            assert cache.key_prefix == "tiptap:"

    def test_init_with_redis_unavailable(self):
        """Test initialization when Redis is unavailable."""
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("redis.from_url", return_value=client):
            cache = DistributedCache(redis_url="redis://nowhere:6379/0")

        assert cache._redis_available is False
        assert isinstance(cache.fallback_cache, ContentCache)

    def test_set_and_get_round_trip(self, cache, fake_redis):
        document = {"type": "doc", "content": [{"type": "paragraph"}]}
        cache.set("tiptap:html:abc:def", document)

        assert cache.get("tiptap:html:abc:def") == document
        assert fake_redis.exists("tiptap:html:abc:def")

    def test_keys_get_prefixed(self, cache, fake_redis):
        cache.set("plain", "value")
        assert fake_redis.exists("tiptap:plain")
        assert cache.get("plain") == "value"

    def test_ttl_is_applied(self, cache, fake_redis):
        cache.set("short", "value", ttl=5)
        ttl = fake_redis.ttl("tiptap:short")
        assert 0 < ttl <= 5

    def test_fractional_ttl_is_at_least_one_second(self, cache, fake_redis):
        cache.set("tiny", "value", ttl=0.2)
        assert 0 < fake_redis.pttl("tiptap:tiny") <= 1000

    def test_miss_returns_none_and_is_recorded(self, cache):
        assert cache.get("missing") is None
        assert get_monitor().get_cache_analytics()["usage"]["cache_misses"] == 1

    def test_remember(self, cache):
        calls = []

        def factory():
            calls.append(1)
            return "<p>Hi</p>"

        assert cache.remember("k", factory) == "<p>Hi</p>"
        assert cache.remember("k", factory) == "<p>Hi</p>"
        assert len(calls) == 1

    def test_invalidate(self, cache):
        cache.set("k", "v")
        cache.invalidate("k")
        assert cache.get("k") is None

    def test_clear_only_removes_prefixed_keys(self, cache, fake_redis):
        fake_redis.set("other:key", b"keep")
        cache.set("a", 1)
        cache.set("b", 2)

        cache.clear()

        assert cache.get("a") is None
        assert cache.get("b") is None
        assert fake_redis.get("other:key") == b"keep"

    def test_stats(self, cache):
        cache.set("a", 1)
        stats = cache.get_cache_stats()
        assert stats["backend"] == "redis"
        assert stats["redis_available"] is True
        assert stats["redis_key_count"] == 1

    def test_operation_failure_switches_to_fallback(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("gone")
        client.setex.side_effect = redis.ConnectionError("gone")
        cache = DistributedCache(redis_client=client)

        cache.set("k", "v")
        assert cache._redis_available is False
        assert cache.get("k") == "v"
        assert cache.get_cache_stats()["redis_available"] is False


def test_service_uses_redis_store(fake_redis, engine, simple_doc):
    """Conversions are cached in Redis when the redis store is configured."""
    with patch("redis.from_url", return_value=fake_redis):
        config = TiptapConfig(cache=CacheConfig(store="redis", prefix="app"))
        service = TiptapService(config, engine=engine)

    service.parse_json(simple_doc)
    service.parse_json(simple_doc)

    assert engine.to_html_calls == 1
    keys = [key.decode() for key in fake_redis.keys("app:*")]
    assert len(keys) == 1
    assert keys[0].startswith("app:json:")
