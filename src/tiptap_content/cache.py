"""Caching layer for converted rich-text content.

Provides:
    * In-memory dictionary cache with per-entry TTL.
    * Optional Redis-backed distributed cache with graceful local fallback.
    * Deterministic content keys shaped ``prefix:kind:contentHash:extensionsHash``.
    * Hit/miss counters fed into :mod:`tiptap_content.monitoring`.

Design goals:
    1. Deterministic keys: content is hashed from its canonical JSON (sorted
       keys) so equal documents share an entry regardless of key order; the
       extension set is hashed from its resolved description.
    2. Predictable invalidation: TTL expiry only; content keys change whenever
       the content or the extension set changes.
    3. Fail soft: Redis outages revert to the local cache.

Quick examples:

Local cache get/set::

    from tiptap_content.cache import ContentCache
    cache = ContentCache(default_ttl=5)
    cache.set("tiptap:json:abc:def", "<p>Hi</p>")
    cache.get("tiptap:json:abc:def")   # '<p>Hi</p>'

Compute-once helper::

    html = cache.remember(key, lambda: engine.to_html(doc, exts))

Distributed (Redis) with local fallback::

    from tiptap_content.cache import DistributedCache
    dist = DistributedCache(redis_url="redis://localhost:6379/0")
    dist.set("example", 123)
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import pickle
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import redis

from .config import CacheConfig
from .extensions import Extension
from .monitoring import get_monitor

logger = logging.getLogger(__name__)


def _md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def _canonical_parts(value: Any) -> Iterator[str]:
    """Yield compact sorted-key JSON fragments of ``value`` without recursing."""
    stack: List[Tuple[bool, Any]] = [(False, value)]
    while stack:
        literal, item = stack.pop()
        if literal:
            yield item
        elif isinstance(item, Mapping):
            stack.append((True, "}"))
            entries = sorted(item.items(), key=lambda kv: str(kv[0]))
            for index, (key, child) in reversed(list(enumerate(entries))):
                stack.append((False, child))
                prefix = "," if index else ""
                stack.append((True, f"{prefix}{json.dumps(str(key), ensure_ascii=False)}:"))
            stack.append((True, "{"))
        elif isinstance(item, (list, tuple)):
            stack.append((True, "]"))
            for index, child in reversed(list(enumerate(item))):
                stack.append((False, child))
                if index:
                    stack.append((True, ","))
            stack.append((True, "["))
        else:
            yield json.dumps(item, ensure_ascii=False, default=str)


def content_hash(content: Union[str, Mapping[str, Any]]) -> str:
    """Hash a document mapping (canonical JSON) or a raw string.

    Mappings are serialized iteratively, so documents nested deeper than the
    interpreter recursion limit still hash.
    """
    if isinstance(content, str):
        return _md5(content.encode("utf-8"))
    digest = hashlib.md5()
    for part in _canonical_parts(content):
        digest.update(part.encode("utf-8"))
    return digest.hexdigest()


def extensions_hash(extensions: Sequence[Extension]) -> str:
    described = [ext.describe() for ext in extensions]
    return _md5(json.dumps(described, sort_keys=True, default=str).encode("utf-8"))


def make_content_key(
    prefix: str,
    kind: str,
    content: Union[str, Mapping[str, Any]],
    extensions: Sequence[Extension],
) -> str:
    """Build ``prefix:kind:contentHash:extensionsHash``.

    Args:
        prefix: Namespace (``tiptap`` by default, from configuration).
        kind: Conversion kind, ``json`` (JSON -> HTML) or ``html`` (HTML -> JSON).
        content: The conversion input.
        extensions: Resolved extension set used for the conversion.
    """
    return f"{prefix}:{kind}:{content_hash(content)}:{extensions_hash(extensions)}"


@dataclass
class CacheEntry:
    """Cache entry with TTL."""

    data: Any
    timestamp: float = field(default_factory=time.time)
    ttl: float = 3600.0

    def is_expired(self) -> bool:
        return time.time() - self.timestamp > self.ttl


class ContentCache:
    """Simple in-memory cache.

    Notes:
        * Entries are evicted lazily: an expired entry is dropped on the next
          ``get`` for its key.
        * Values are stored as-is (no pickling), so callers must not mutate a
          returned object they want to keep cached unchanged.
    """

    def __init__(self, default_ttl: float = 3600.0, enable_monitoring: bool = True):
        self.default_ttl = default_ttl
        self.enable_monitoring = enable_monitoring
        self._cache: Dict[str, CacheEntry] = {}
        self._monitor = get_monitor() if enable_monitoring else None

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        start_time = time.time()
        entry = self._cache.get(key)

        if entry is None:
            if self._monitor:
                self._monitor.record_cache_miss(time.time() - start_time)
            return None

        if entry.is_expired():
            del self._cache[key]
            if self._monitor:
                self._monitor.record_cache_miss(time.time() - start_time)
                self._monitor.record_cache_eviction()
                self._monitor.update_cache_size(len(self._cache))
            return None

        if self._monitor:
            self._monitor.record_cache_hit(time.time() - start_time)
        return entry.data

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        """Insert or replace a value; ``ttl`` overrides the default (seconds)."""
        self._cache[key] = CacheEntry(data=data, ttl=ttl or self.default_ttl)
        if self._monitor:
            self._monitor.update_cache_size(len(self._cache))

    def remember(self, key: str, factory: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """Return the cached value for ``key``, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = factory()
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()
        if self._monitor:
            self._monitor.update_cache_size(0)

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "backend": "memory",
            "cache_size": len(self._cache),
            "default_ttl": self.default_ttl,
            "monitoring_enabled": self.enable_monitoring,
        }


class DistributedCache:
    """Redis-backed cache with transparent local fallback.

    When Redis cannot be reached at construction time, or an operation fails
    later, the instance switches to its ``fallback_cache`` and stays there.

    Environment variables:
        REDIS_URL    Connection URL when ``redis_url`` is not given
                     (default: redis://localhost:6379/0)
    """

    def __init__(
        self,
        default_ttl: float = 3600.0,
        redis_url: Optional[str] = None,
        key_prefix: str = "tiptap:",
        fallback_cache: Optional[ContentCache] = None,
        redis_client: Any | None = None,
        enable_monitoring: bool = True,
    ) -> None:
        self.default_ttl = default_ttl
        self.key_prefix = key_prefix
        self.fallback_cache = fallback_cache or ContentCache(
            default_ttl=default_ttl, enable_monitoring=enable_monitoring
        )
        self._monitor = get_monitor() if enable_monitoring else None
        self._redis: Any | None = None
        self._redis_available = False

        if redis_client is not None:
            self._redis = redis_client
            self._redis_available = True
        else:
            self._init_backend(redis_url)

    def _init_backend(self, redis_url: Optional[str]) -> None:
        url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        try:
            client = redis.from_url(url, decode_responses=False)
            client.ping()
        except redis.RedisError as e:
            logger.warning(f"Redis unavailable at {url}, using local cache: {e}")
            return
        self._redis = client
        self._redis_available = True

    def _disable(self, error: Exception) -> None:
        logger.warning(f"Redis operation failed, falling back to local cache: {error}")
        self._redis_available = False

    def _storage_key(self, key: str) -> str:
        return key if key.startswith(self.key_prefix) else f"{self.key_prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        if not self._redis_available:
            return self.fallback_cache.get(key)
        start = time.time()
        try:
            blob = self._redis.get(self._storage_key(key))
        except redis.RedisError as e:
            self._disable(e)
            return self.fallback_cache.get(key)
        if blob is None:
            if self._monitor:
                self._monitor.record_cache_miss(time.time() - start)
            return None
        if self._monitor:
            self._monitor.record_cache_hit(time.time() - start)
        return pickle.loads(blob)

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        effective_ttl = ttl or self.default_ttl
        if not self._redis_available:
            self.fallback_cache.set(key, data, effective_ttl)
            return
        try:
            self._redis.setex(self._storage_key(key), max(int(effective_ttl), 1), pickle.dumps(data))
        except redis.RedisError as e:
            self._disable(e)
            self.fallback_cache.set(key, data, effective_ttl)

    def remember(self, key: str, factory: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = factory()
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> None:
        if self._redis_available:
            try:
                self._redis.delete(self._storage_key(key))
            except redis.RedisError as e:
                self._disable(e)
        self.fallback_cache.invalidate(key)

    def clear(self) -> None:
        """Remove every key under ``key_prefix`` (other Redis data is untouched)."""
        self.fallback_cache.clear()
        if self._redis_available:
            try:
                keys = list(self._redis.scan_iter(match=f"{self.key_prefix}*"))
                if keys:
                    self._redis.delete(*keys)
            except redis.RedisError as e:
                self._disable(e)

    def get_cache_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "backend": "redis",
            "redis_available": self._redis_available,
            "default_ttl": self.default_ttl,
            "fallback_stats": self.fallback_cache.get_cache_stats(),
        }
        if self._redis_available:
            try:
                stats["redis_key_count"] = int(self._redis.dbsize())
            except redis.RedisError:
                stats["redis_key_count"] = None
        return stats


Cache = Union[ContentCache, DistributedCache]


def create_cache(config: CacheConfig) -> Cache:
    """Build the cache store named by ``config.store``.

    ``None``, ``"memory"`` and ``"local"`` select :class:`ContentCache`;
    ``"redis"`` selects :class:`DistributedCache`.

    Raises:
        ValueError: For any other store name.
    """
    store = (config.store or "memory").lower()
    if store in ("memory", "local"):
        return ContentCache(default_ttl=config.ttl)
    if store == "redis":
        return DistributedCache(
            default_ttl=config.ttl,
            redis_url=config.redis_url,
            key_prefix=f"{config.prefix}:",
        )
    raise ValueError(f"Unknown cache store: {config.store}")
