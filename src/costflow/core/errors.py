# src/costflow/core/errors.py
"""
CostFlow — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros reportados pelo CostFlow.
Erros fazem parte do contrato operacional do sistema (PipelineResult e
StepOutcome), devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhuma decisão implícita é permitida.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from .exceptions import (
    DependencyError,
    PipelineError,
    PipelineTimeoutError,
    StepInputError,
    ValidationError,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do CostFlow.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

DEPENDENCY_ERROR = "DEPENDENCY_ERROR"
VALIDATION_ERROR = "VALIDATION_ERROR"
STEP_EXECUTION_ERROR = "STEP_EXECUTION_ERROR"
STEP_INPUT_ERROR = "STEP_INPUT_ERROR"
PIPELINE_TIMEOUT = "PIPELINE_TIMEOUT"


def error_type_for(exc: BaseException) -> str:
    """Mapeia uma exceção para o código estável do catálogo."""
    if isinstance(exc, DependencyError):
        return DEPENDENCY_ERROR
    if isinstance(exc, ValidationError):
        return VALIDATION_ERROR
    if isinstance(exc, StepInputError):
        return STEP_INPUT_ERROR
    if isinstance(exc, PipelineTimeoutError):
        return PIPELINE_TIMEOUT
    return STEP_EXECUTION_ERROR


def payload_from_exception(exc: BaseException) -> ErrorPayload:
    """Converte exceções em ErrorPayload (serializável, acionável).

    Regras:
    - PipelineError: já vem com message/details/hint.
    - Outras exceções: encapsular como STEP_EXECUTION_ERROR sem expor stack trace.
    """
    if isinstance(exc, PipelineError):
        return ErrorPayload(
            type=error_type_for(exc),
            message=exc.message or "Erro de execução",
            details=dict(exc.details or {}),
            hint=exc.hint,
        )

    return ErrorPayload(
        type=STEP_EXECUTION_ERROR,
        message=str(exc) or "Erro inesperado durante execução",
        details={"exception_class": exc.__class__.__name__},
        hint="Verifique o event log da run e a configuração do pipeline",
    )

