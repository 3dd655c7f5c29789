# tests/core/cache/test_durable_cache.py
"""
Testes do cache provider durável (SQLite).

Os testes asseguram que:
- valores JSON sobrevivem à reabertura do arquivo
- datas são gravadas como texto ISO 8601
- expiração é verificada na leitura e por `cleanup`
- categorias podem ser invalidadas em bloco
- armazenamento indisponível degrada para no-op sem exceção
"""

from datetime import date, datetime

import pytest

try:
    from costflow.core.cache.durable import DurableCacheProvider
except Exception as e:  # noqa: BLE001
    DurableCacheProvider = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing durable cache. Import error: {_IMPORT_ERR}")


@pytest.fixture
def durable(tmp_path, clock):
    cache = DurableCacheProvider(tmp_path / "cache.sqlite3", clock=clock)
    yield cache
    cache.close()


def test_set_get_json_values(durable):
    _require_imports()
    assert durable.available is True
    durable.set("k", {"cost": 1.5, "tags": ["a", "b"]})
    assert durable.get("k") == {"cost": 1.5, "tags": ["a", "b"]}
    assert durable.get("missing") is None


def test_dates_are_serialized_as_iso_text(durable):
    _require_imports()
    durable.set("d", {"day": date(2024, 3, 1), "at": datetime(2024, 3, 1, 8, 0, 5)})
    assert durable.get("d") == {"day": "2024-03-01", "at": "2024-03-01T08:00:05"}


def test_values_survive_reopen(tmp_path, clock):
    _require_imports()
    path = tmp_path / "nested" / "cache.sqlite3"
    with DurableCacheProvider(path, clock=clock) as first:
        first.set("kpi:latest", {"total": 10})
    with DurableCacheProvider(path, clock=clock) as second:
        assert second.get("kpi:latest") == {"total": 10}


def test_expired_entry_is_miss_and_removed(durable, clock):
    _require_imports()
    durable.set("k", 1, ttl=60)
    clock.advance(60)
    assert durable.get("k") is None
    assert durable.get_stats()["total_entries"] == 0


def test_delete_and_clear(durable):
    _require_imports()
    durable.set("a", 1)
    durable.set("b", 2)
    durable.delete("a")
    assert durable.get("a") is None
    durable.clear()
    assert durable.get("b") is None


def test_clear_by_type(durable):
    _require_imports()
    durable.set("d1", 1, category="daily_costs")
    durable.set("d2", 2, category="daily_costs")
    durable.set("k", 3, category="kpi")

    assert durable.clear_by_type("daily_costs") == 2
    assert durable.get("d1") is None
    assert durable.get("k") == 3
    assert durable.clear_by_type("daily_costs") == 0


def test_cleanup_removes_only_expired(durable, clock):
    _require_imports()
    durable.set("short", 1, ttl=10)
    durable.set("long", 2, ttl=1000)
    durable.set("forever", 3, ttl=0)
    clock.advance(11)

    assert durable.cleanup() == 1
    assert durable.get("long") == 2
    assert durable.get("forever") == 3


def test_stats(durable, clock):
    _require_imports()
    durable.set("a", "x", category="kpi")
    clock.advance(1)
    durable.set("b", "yy", category="anomalies")
    durable.set("c", "zzz", category="anomalies")

    stats = durable.get_stats()
    assert stats["total_entries"] == 3
    assert stats["total_size"] == len('"x"') + len('"yy"') + len('"zzz"')
    assert stats["entries_by_type"] == {"kpi": 1, "anomalies": 2}
    assert stats["oldest_entry"] < stats["newest_entry"]


def test_unavailable_storage_is_noop(tmp_path):
    """Um diretório no lugar do arquivo: o provider vira no-op."""
    _require_imports()
    cache = DurableCacheProvider(tmp_path)
    assert cache.available is False

    cache.set("k", 1)
    assert cache.get("k") is None
    assert cache.clear_by_type("kpi") == 0
    assert cache.cleanup() == 0
    assert cache.get_stats()["total_entries"] == 0
    cache.delete("k")
    cache.clear()
    cache.close()
