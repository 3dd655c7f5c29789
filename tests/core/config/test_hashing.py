# tests/core/config/test_hashing.py
"""
Testes do hash canônico de configuração.
"""

import pytest

try:
    from costflow.core.config.hashing import compute_config_hash
except Exception as e:  # noqa: BLE001
    compute_config_hash = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing config hashing. Import error: {_IMPORT_ERR}")


def test_hash_ignores_key_order():
    _require_imports()
    a = {"engine": {"continue_on_error": True, "timeout_ms": 10}, "steps": {}}
    b = {"steps": {}, "engine": {"timeout_ms": 10, "continue_on_error": True}}
    assert compute_config_hash(a) == compute_config_hash(b)


def test_hash_changes_with_values():
    _require_imports()
    assert compute_config_hash({"a": 1}) != compute_config_hash({"a": 2})


def test_hash_is_sha256_hex():
    _require_imports()
    digest = compute_config_hash({})
    assert len(digest) == 64
    int(digest, 16)


def test_hash_requires_dict():
    _require_imports()
    with pytest.raises(TypeError):
        compute_config_hash(["not", "a", "dict"])
