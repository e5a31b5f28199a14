"""
TTL key/value cache with pluggable backends.

One ``CacheClient`` is built per process (see ``build_cache``) and handed to
the components that need it. Values are JSON-encoded so both backends
return the same shapes. Backend failures never propagate: a broken remote
cache behaves like a cold one.
"""
import json
import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import redis

from bridgescope.config import settings

log = logging.getLogger(__name__)


class MemoryCacheBackend:
    """In-process map with per-key expiry."""

    def __init__(self):
        self._data: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._data[key] = (time.monotonic() + ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._data if k.startswith(prefix)]
            for k in doomed:
                del self._data[k]
            return len(doomed)


class RedisCacheBackend:
    def __init__(self, url: str):
        self.client = redis.Redis.from_url(
            url,
            socket_timeout=2,
            socket_connect_timeout=2,
            retry_on_timeout=True,
            decode_responses=True,
        )

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str, ttl: int) -> None:
        self.client.set(key, value, ex=ttl)

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def delete_prefix(self, prefix: str) -> int:
        removed = 0
        for key in self.client.scan_iter(match=f"{prefix}*", count=500):
            removed += self.client.delete(key)
        return removed


class CacheClient:
    def __init__(self, backend):
        self.backend = backend

    def get_json(self, key: str) -> Optional[Any]:
        try:
            raw = self.backend.get(key)
        except redis.RedisError as e:
            log.warning(f"cache get failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning(f"dropping undecodable cache entry {key}")
            self.delete(key)
            return None

    def set_json(self, key: str, value: Any, ttl: int) -> None:
        try:
            self.backend.set(key, json.dumps(value), ttl)
        except redis.RedisError as e:
            log.warning(f"cache set failed for {key}: {e}")

    def delete(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except redis.RedisError as e:
            log.warning(f"cache delete failed for {key}: {e}")

    def invalidate_prefix(self, prefix: str) -> int:
        try:
            return self.backend.delete_prefix(prefix)
        except redis.RedisError as e:
            log.warning(f"cache invalidation failed for {prefix}*: {e}")
            return 0


def build_cache(backend: str = None, redis_url: str = None) -> CacheClient:
    """Pick the backend from configuration: ``auto`` uses Redis when a URL is set."""
    backend = (backend or settings.CACHE_BACKEND).lower()
    redis_url = redis_url or settings.REDIS_URL

    if backend == "redis" or (backend == "auto" and redis_url):
        if not redis_url:
            raise ValueError("CACHE_BACKEND=redis requires REDIS_URL")
        log.info("Using Redis cache backend")
        return CacheClient(RedisCacheBackend(redis_url))
    if backend not in ("auto", "memory"):
        raise ValueError(f"Unknown cache backend: {backend}")

    log.info("Using in-process cache backend")
    return CacheClient(MemoryCacheBackend())
