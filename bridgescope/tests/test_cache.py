from unittest.mock import MagicMock

import pytest
import redis

from bridgescope.cache import keys
from bridgescope.cache.client import CacheClient, MemoryCacheBackend, build_cache


def test_memory_backend_expires_entries(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("bridgescope.cache.client.time.monotonic", lambda: now[0])
    cache = CacheClient(MemoryCacheBackend())

    cache.set_json("k", {"v": 1}, ttl=10)
    assert cache.get_json("k") == {"v": 1}

    now[0] += 10
    assert cache.get_json("k") is None


def test_invalidate_prefix_only_drops_matching_keys(cache):
    cache.set_json(keys.global_stats("24h"), 1, keys.GLOBAL_STATS_TTL)
    cache.set_json(keys.global_stats("7d"), 2, keys.GLOBAL_STATS_TTL)
    cache.set_json(keys.dapp_stats("zora", "24h"), 3, keys.DAPP_STATS_TTL)

    assert cache.invalidate_prefix(keys.GLOBAL_STATS_PREFIX) == 2
    assert cache.get_json(keys.global_stats("24h")) is None
    assert cache.get_json(keys.dapp_stats("zora", "24h")) == 3


def test_key_formats():
    assert keys.token_metadata("0xABC") == "token:meta:0xabc"
    assert keys.token_price("0xABC") == "token:price:0xabc:latest"
    assert keys.token_price("0xABC", 1700000000000) == "token:price:0xabc:1700000000000"
    assert keys.transfer_recent(20) == "transfers:recent:20:all"
    assert keys.transfer_recent(20, "LEDGER_TO_CONTRACT") == "transfers:recent:20:LEDGER_TO_CONTRACT"


def test_backend_errors_behave_like_a_cold_cache():
    backend = MagicMock()
    backend.get.side_effect = redis.ConnectionError("down")
    backend.set.side_effect = redis.ConnectionError("down")
    backend.delete_prefix.side_effect = redis.ConnectionError("down")
    cache = CacheClient(backend)

    assert cache.get_json("k") is None
    cache.set_json("k", 1, 10)
    assert cache.invalidate_prefix("k") == 0


def test_undecodable_entry_is_dropped():
    backend = MemoryCacheBackend()
    backend.set("k", "{not json", 60)
    cache = CacheClient(backend)

    assert cache.get_json("k") is None
    assert backend.get("k") is None


def test_build_cache_selects_backend():
    assert isinstance(build_cache("memory").backend, MemoryCacheBackend)
    assert isinstance(build_cache("auto", redis_url="").backend, MemoryCacheBackend)
    with pytest.raises(ValueError):
        build_cache("memcached")
