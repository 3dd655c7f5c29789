# tests/core/cache/test_memory_cache.py
"""
Testes do cache provider volátil.

Os testes asseguram que:
- leituras após o TTL são miss (lazy eviction)
- a capacidade remove a entrada inserida há mais tempo
- TTL <= 0 desabilita a expiração
- a varredura remove apenas entradas expiradas
"""

import time

import pytest

try:
    from costflow.core.cache.base import CacheProvider
    from costflow.core.cache.memory import InMemoryCacheProvider
except Exception as e:  # noqa: BLE001
    InMemoryCacheProvider = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing memory cache. Import error: {_IMPORT_ERR}")


def test_satisfies_cache_protocol(memory_cache):
    _require_imports()
    assert isinstance(memory_cache, CacheProvider)


def test_get_set_delete(memory_cache):
    _require_imports()
    assert memory_cache.get("missing") is None
    memory_cache.set("k", {"a": 1})
    assert memory_cache.get("k") == {"a": 1}
    memory_cache.delete("k")
    assert memory_cache.get("k") is None
    memory_cache.delete("k")


def test_ttl_expiry_with_real_clock():
    """TTL de 50 ms: a leitura após 60 ms é miss."""
    _require_imports()
    with InMemoryCacheProvider(default_ttl=0.05, sweep_interval=0) as cache:
        cache.set("short", "value")
        assert cache.get("short") == "value"
        time.sleep(0.06)
        assert cache.get("short") is None
        assert len(cache) == 0


def test_explicit_ttl_overrides_default(memory_cache, clock):
    _require_imports()
    memory_cache.set("k", 1, ttl=10)
    clock.advance(9.9)
    assert memory_cache.get("k") == 1
    clock.advance(0.1)
    assert memory_cache.get("k") is None


def test_non_positive_ttl_never_expires(memory_cache, clock):
    _require_imports()
    memory_cache.set("forever", 1, ttl=0)
    memory_cache.set("also-forever", 2, ttl=-5)
    clock.advance(10 ** 9)
    assert memory_cache.get("forever") == 1
    assert memory_cache.get("also-forever") == 2


def test_capacity_evicts_oldest_inserted(clock):
    _require_imports()
    cache = InMemoryCacheProvider(max_size=2, sweep_interval=0, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_overwrite_does_not_evict(clock):
    _require_imports()
    cache = InMemoryCacheProvider(max_size=2, sweep_interval=0, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_invalid_max_size():
    _require_imports()
    with pytest.raises(ValueError):
        InMemoryCacheProvider(max_size=0, sweep_interval=0)


def test_sweep_and_stats(memory_cache, clock):
    _require_imports()
    memory_cache.set("short", 1, ttl=1)
    memory_cache.set("long", 2, ttl=100)
    clock.advance(5)

    stats = memory_cache.get_stats()
    assert stats == {"total_entries": 2, "active_entries": 1, "expired_entries": 1, "max_size": 1000}

    assert memory_cache.sweep() == 1
    assert memory_cache.get_stats()["total_entries"] == 1
    assert memory_cache.get("long") == 2


def test_background_sweeper_stops_on_close():
    _require_imports()
    cache = InMemoryCacheProvider(sweep_interval=0.01)
    cache.set("k", 1)
    cache.close()
    assert len(cache) == 0
    assert cache._sweeper is not None
    assert not cache._sweeper.is_alive()
