# tests/core/config/test_loader.py
"""
Testes do loader de configuração (defaults + override local).
"""

import json
from pathlib import Path

import pytest

try:
    from costflow.core.config.errors import (
        ConfigTypeConflictError,
        DefaultsNotFoundError,
        InvalidConfigRootTypeError,
        UnsupportedConfigFormatError,
    )
    from costflow.core.config.loader import load_config, load_document
except Exception as e:  # noqa: BLE001
    load_config = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing config loader. Import error: {_IMPORT_ERR}")


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_only(tmp_path):
    _require_imports()
    defaults = _write(tmp_path / "defaults.yaml", "engine:\n  continue_on_error: false\n")
    assert load_config(defaults_path=defaults) == {"engine": {"continue_on_error": False}}


def test_local_override_is_applied(tmp_path):
    _require_imports()
    defaults = _write(
        tmp_path / "defaults.yaml",
        "engine:\n  continue_on_error: false\n  timeout_ms: null\nsteps: {}\n",
    )
    local = _write(tmp_path / "local.json", json.dumps({"engine": {"timeout_ms": 2000}}))

    cfg = load_config(defaults_path=defaults, local_path=local)
    assert cfg["engine"] == {"continue_on_error": False, "timeout_ms": 2000}
    assert cfg["steps"] == {}


def test_missing_local_file_is_ignored(tmp_path):
    _require_imports()
    defaults = _write(tmp_path / "defaults.yml", "cache:\n  max_size: 10\n")
    cfg = load_config(defaults_path=defaults, local_path=tmp_path / "absent.yaml")
    assert cfg == {"cache": {"max_size": 10}}


def test_missing_defaults_raise(tmp_path):
    _require_imports()
    with pytest.raises(DefaultsNotFoundError):
        load_config(defaults_path=tmp_path / "nope.yaml")


def test_unsupported_extension(tmp_path):
    _require_imports()
    path = _write(tmp_path / "defaults.toml", "a = 1\n")
    with pytest.raises(UnsupportedConfigFormatError):
        load_config(defaults_path=path)


def test_list_root_is_rejected_for_config(tmp_path):
    _require_imports()
    path = _write(tmp_path / "defaults.yaml", "- a\n- b\n")
    with pytest.raises(InvalidConfigRootTypeError):
        load_config(defaults_path=path)


def test_document_with_list_root(tmp_path):
    """Tabelas de regras usam o mesmo leitor com raiz em lista."""
    _require_imports()
    path = _write(tmp_path / "rules.yaml", "- id: r1\n- id: r2\n")
    assert load_document(path, root=list) == [{"id": "r1"}, {"id": "r2"}]


def test_empty_document_is_empty_root(tmp_path):
    _require_imports()
    path = _write(tmp_path / "empty.yaml", "")
    assert load_document(path) == {}
    assert load_document(path, root=list) == []


def test_type_conflict_in_override(tmp_path):
    _require_imports()
    defaults = _write(tmp_path / "defaults.yaml", "engine:\n  continue_on_error: false\n")
    local = _write(tmp_path / "local.yaml", "engine: strict\n")
    with pytest.raises(ConfigTypeConflictError):
        load_config(defaults_path=defaults, local_path=local)


def test_shipped_defaults_load():
    _require_imports()
    root = Path(__file__).resolve().parents[3]
    cfg = load_config(defaults_path=root / "config" / "costflow.defaults.yaml")
    assert "engine" in cfg
    assert "steps" in cfg
