# src/costflow/core/exceptions.py
"""
CostFlow — Canonical Exceptions (v1)

Este módulo define as exceções tipadas do core do CostFlow.

Objetivo:
- Permitir que o Engine e os Steps levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Taxonomia:
- DependencyError       → grafo de dependências inválido (fatal, nunca re-tentado)
    - UnknownDependencyError → Step depende de nome não registrado
    - CycleDetectedError     → ciclo no grafo de dependências
- ValidationError       → `validate` do Step rejeitou a própria saída
- StepExecutionError    → qualquer outra exceção dentro de `execute`
- StepInputError        → inputs tipados exigidos pelo Step ausentes na run
- PipelineTimeoutError  → deadline da run excedido
- DuplicateStepNameError → nomes duplicados na declaração do pipeline

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- A mensagem é curta e humana; a causa original vive em `__cause__`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, eq=False)
class PipelineError(Exception):
    """Base class para exceções do CostFlow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message

    @property
    def step(self) -> Optional[str]:
        value = self.details.get("step")
        return value if isinstance(value, str) else None


# ---------------------------------------------------------------------------
# Planejamento (DAG)
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class DependencyError(PipelineError):
    """Grafo de dependências inválido; levantada em `build()`, antes de qualquer Step."""

    @property
    def missing(self) -> List[str]:
        return list(self.details.get("missing", []) or [])


@dataclass(frozen=True, eq=False)
class UnknownDependencyError(DependencyError):
    """Um Step declarou dependência de um nome não registrado."""


@dataclass(frozen=True, eq=False)
class CycleDetectedError(DependencyError):
    """O grafo de dependências contém um ciclo."""


@dataclass(frozen=True, eq=False)
class DuplicateStepNameError(PipelineError, ValueError):
    """Dois Steps com o mesmo nome na mesma declaração de pipeline."""


# ---------------------------------------------------------------------------
# Execução
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ValidationError(PipelineError):
    """O validador do próprio Step rejeitou a saída produzida."""


@dataclass(frozen=True, eq=False)
class StepExecutionError(PipelineError):
    """Erro inesperado dentro de `execute` (encapsulado com nome do Step)."""


@dataclass(frozen=True, eq=False)
class StepInputError(PipelineError):
    """Inputs tipados declarados pelo Step não foram fornecidos na run."""


@dataclass(frozen=True, eq=False)
class PipelineTimeoutError(PipelineError):
    """Deadline configurado para a run foi excedido antes do próximo Step."""


# ---------------------------------------------------------------------------
# Fábricas
# ---------------------------------------------------------------------------

def unknown_dependency(*, step: str, dependency: str) -> UnknownDependencyError:
    return UnknownDependencyError(
        message=f"Missing dependencies for {step}: {dependency}",
        details={"step": step, "missing": [dependency]},
        hint="Registre o Step ausente ou remova a dependência declarada.",
    )


def cycle_detected(*, step: str, path: List[str]) -> CycleDetectedError:
    return CycleDetectedError(
        message=f"Circular dependency detected at step '{step}': {' -> '.join(path)}",
        details={"step": step, "cycle": list(path)},
        hint="Remova uma das arestas do ciclo; o pipeline deve formar um DAG.",
    )


def validation_failed(*, step: str) -> ValidationError:
    return ValidationError(
        message=f"Validation failed in {step}: output validation failed",
        details={"step": step},
        hint="O Step deve anexar sua coleção de enriquecimento como tupla.",
    )


def step_execution_failed(*, step: str, exc: BaseException) -> StepExecutionError:
    err = StepExecutionError(
        message=str(exc) or exc.__class__.__name__,
        details={"step": step, "exception_class": exc.__class__.__name__},
        hint="Verifique o event log da run para diagnosticar a falha.",
    )
    # dataclass frozen bloqueia setattr; a causa é anexada como em `raise ... from exc`
    object.__setattr__(err, "__cause__", exc)
    return err


def step_inputs_missing(*, step: str, missing: List[str]) -> StepInputError:
    return StepInputError(
        message=f"Missing run inputs for {step}: {', '.join(missing)}",
        details={"step": step, "missing": list(missing)},
        hint="Informe os campos ausentes em RunInputs ao criar o RunContext.",
    )


def pipeline_timeout(*, step: str, timeout_ms: float, elapsed_ms: float) -> PipelineTimeoutError:
    return PipelineTimeoutError(
        message=f"Pipeline timed out before step {step}: {elapsed_ms:.0f} ms elapsed, limit {timeout_ms:g} ms",
        details={"step": step, "timeout_ms": timeout_ms, "elapsed_ms": elapsed_ms},
        hint="Aumente engine.timeout_ms ou reduza o volume de dados da run.",
    )
