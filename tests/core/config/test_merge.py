# tests/core/config/test_merge.py
"""
Testes do deep-merge de configuração.

Os testes asseguram que:
- escalares são sobrescritos e dicts são mesclados recursivamente
- listas são sobrescritas integralmente
- `null` é compatível com qualquer tipo
- conflitos de tipo falham indicando o caminho da chave
- nenhum input é mutado
"""

import pytest

try:
    from costflow.core.config.errors import ConfigTypeConflictError
    from costflow.core.config.merge import deep_merge
except Exception as e:  # noqa: BLE001
    deep_merge = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing config merge modules. Implement:\n"
            "- src/costflow/core/config/merge.py (deep_merge)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_merge_simple_override():
    _require_imports()
    base = {"a": 1, "b": 2}
    override = {"b": 99}
    out = deep_merge(base, override)
    assert out == {"a": 1, "b": 99}
    assert base == {"a": 1, "b": 2}
    assert override == {"b": 99}


def test_merge_nested_dict():
    """Dicts aninhados: apenas as chaves do override mudam."""
    _require_imports()
    base = {"engine": {"continue_on_error": False, "timeout_ms": 1000}}
    override = {"engine": {"timeout_ms": 5000}}
    assert deep_merge(base, override) == {"engine": {"continue_on_error": False, "timeout_ms": 5000}}


def test_merge_list_override_total():
    _require_imports()
    base = {"cache": {"categories": ["kpi", "anomalies"]}}
    override = {"cache": {"categories": ["kpi"]}}
    assert deep_merge(base, override) == {"cache": {"categories": ["kpi"]}}


def test_null_is_compatible_both_ways():
    _require_imports()
    assert deep_merge({"engine": {"timeout_ms": None}}, {"engine": {"timeout_ms": 250}}) == {
        "engine": {"timeout_ms": 250}
    }
    assert deep_merge({"engine": {"timeout_ms": 250}}, {"engine": {"timeout_ms": None}}) == {
        "engine": {"timeout_ms": None}
    }


def test_int_and_float_are_compatible():
    _require_imports()
    assert deep_merge({"ttl": 300}, {"ttl": 1.5}) == {"ttl": 1.5}


def test_bool_and_int_conflict():
    _require_imports()
    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"engine": {"continue_on_error": False}}, {"engine": {"continue_on_error": 1}})


def test_merge_type_conflict_reports_path():
    _require_imports()
    with pytest.raises(ConfigTypeConflictError) as exc_info:
        deep_merge({"engine": {"limits": {"rows": 10}}}, {"engine": {"limits": "many"}})
    assert "engine.limits" in str(exc_info.value)
