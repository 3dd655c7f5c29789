# tests/core/engine/test_planner_invalid_graph.py
"""
Testes de grafos inválidos no planner e no build do Engine.

Os testes asseguram que:
- dependências inexistentes geram `UnknownDependencyError` nomeando a ausência
- ciclos geram `CycleDetectedError` sem produzir ordem parcial
- ambos são `DependencyError`
"""

import pytest

try:
    from costflow.core.engine.engine import Engine
    from costflow.core.engine.planner import plan_execution
    from costflow.core.exceptions import CycleDetectedError, DependencyError, UnknownDependencyError
except Exception as e:
    plan_execution = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing planner/exceptions. Import error: {_IMPORT_ERR}")


def test_unknown_dependency_names_missing_step(DummyStep):
    """Uma dependência `ghost` não registrada é reportada pelo nome."""
    _require_imports()
    steps = [DummyStep("a", ["ghost"])]
    with pytest.raises(UnknownDependencyError) as exc_info:
        plan_execution(steps)

    err = exc_info.value
    assert isinstance(err, DependencyError)
    assert "ghost" in str(err)
    assert err.missing == ["ghost"]
    assert err.details["step"] == "a"


def test_two_step_cycle_is_detected(DummyStep):
    """A → B e B → A: o build falha antes de qualquer execução."""
    _require_imports()
    steps = [DummyStep("A", ["B"]), DummyStep("B", ["A"])]
    with pytest.raises(CycleDetectedError) as exc_info:
        plan_execution(steps)

    err = exc_info.value
    assert isinstance(err, DependencyError)
    assert err.details["step"] in {"A", "B"}
    assert err.details["cycle"][0] == err.details["cycle"][-1]


def test_self_dependency_is_a_cycle(DummyStep):
    _require_imports()
    with pytest.raises(CycleDetectedError):
        plan_execution([DummyStep("loop", ["loop"])])


def test_long_cycle_reports_path(DummyStep):
    _require_imports()
    steps = [
        DummyStep("entry"),
        DummyStep("a", ["entry", "c"]),
        DummyStep("b", ["a"]),
        DummyStep("c", ["b"]),
    ]
    with pytest.raises(CycleDetectedError) as exc_info:
        plan_execution(steps)
    assert exc_info.value.details["cycle"] == ["a", "c", "b", "a"]


def test_engine_build_raises_dependency_error(DummyStep):
    """`Engine.build` propaga o erro estrutural e não memoriza ordem parcial."""
    _require_imports()
    engine = Engine(steps=[DummyStep("A", ["B"]), DummyStep("B", ["A"])])
    with pytest.raises(DependencyError):
        engine.build()
    with pytest.raises(DependencyError):
        engine.build()
