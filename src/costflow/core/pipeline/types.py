# src/costflow/core/pipeline/types.py
"""
Tipos canônicos do pipeline do CostFlow.

Este módulo define as estruturas e enums fundamentais que padronizam
a comunicação entre Steps, Engine e consumidores do resultado.

Os tipos aqui definidos representam:
    - estados finais de execução de Steps
    - classificação semântica de Steps
    - resultado explícito da execução de um Step (StepOutcome)
    - resultado agregado de uma run (PipelineResult)

Componentes principais:
    - StepStatus        → enum de estados finais (SUCCESS, SKIPPED, FAILED)
    - StepKind          → enum de classificação semântica de Steps
    - StepOutcome       → `ok`/`error` explícito por Step (sem controle por exceção)
    - ExecutionMetadata → metadados da run (duração, partição executados/pulados)
    - PipelineResult    → único valor de retorno observado pelos consumidores

Invariantes:
    - Enums possuem valores textuais canônicos
    - StepOutcome e PipelineResult são imutáveis
    - `steps_executed` e `steps_skipped` particionam a ordem construída

Limites explícitos:
    - Não executa Steps
    - Não planeja pipelines
    - Não decide políticas de execução

Este módulo existe para garantir consistência,
interoperabilidade e clareza semântica no pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from costflow.core.errors import ErrorPayload


class StepKind(str, Enum):
    """
    Tipos semânticos de Steps no pipeline.

    Tipos definidos:
        - ENRICHMENT: anexa coleções derivadas ao dataset (tags, CO2, classificação)
        - TRANSFORM: transformações estruturais do dataset
        - DIAGNOSTIC: inspeções e validações sem efeito no dataset

    Decisões arquiteturais:
        - O tipo é puramente informativo e semântico
        - O Engine não utiliza `StepKind` para decidir execução
    """
    ENRICHMENT = "enrichment"
    TRANSFORM = "transform"
    DIAGNOSTIC = "diagnostic"


class StepStatus(str, Enum):
    """
    Estados finais possíveis da execução de um Step.

    Estados definidos:
        - SUCCESS: execução concluída com sucesso
        - SKIPPED: Step não executado (config, abort ou deadline)
        - FAILED: execução interrompida por erro

    Invariantes:
        - O status final de um Step é exatamente um dos valores definidos
        - FAILED e SKIPPED contam ambos como "pulados" na partição da run
    """
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    """
    Resultado explícito da execução de um Step.

    Substitui o controle de fluxo por exceções: o Engine converte a
    execução de cada Step em um `StepOutcome` num único ponto, e a política
    fail-fast / continue-on-error passa a ser uma transformação de dados
    sobre a sequência de outcomes.

    Campos:
        - step_name: nome do Step
        - status: estado final
        - value: saída do Step (apenas quando `ok`)
        - error: payload de erro (apenas quando FAILED)
        - summary: resumo textual
        - duration_ms: duração medida pelo Engine
    """
    step_name: str
    status: StepStatus
    value: Any = None
    error: Optional[ErrorPayload] = None
    summary: str = ""
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCESS

    @classmethod
    def success(cls, step_name: str, value: Any, *, duration_ms: float = 0.0) -> "StepOutcome":
        return cls(
            step_name=step_name,
            status=StepStatus.SUCCESS,
            value=value,
            summary="ok",
            duration_ms=duration_ms,
        )

    @classmethod
    def failure(cls, step_name: str, error: ErrorPayload, *, duration_ms: float = 0.0) -> "StepOutcome":
        return cls(
            step_name=step_name,
            status=StepStatus.FAILED,
            error=error,
            summary=error.message,
            duration_ms=duration_ms,
        )

    @classmethod
    def skipped(cls, step_name: str, summary: str) -> "StepOutcome":
        return cls(step_name=step_name, status=StepStatus.SKIPPED, summary=summary)


@dataclass(frozen=True)
class ExecutionMetadata:
    """Metadados de execução de uma run (sempre presentes, inclusive em falha)."""

    run_id: str
    duration_ms: float
    steps_executed: List[str] = field(default_factory=list)
    steps_skipped: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    config_hash: Optional[str] = None


@dataclass(frozen=True)
class PipelineResult:
    """
    Resultado agregado de uma run do pipeline.

    Partial success sob continue-on-error é reportado como `success=True`
    com `steps_skipped`/`warnings` não vazios; consumidores devem checar
    ambos.
    """

    success: bool
    metadata: ExecutionMetadata
    data: Any = None
    error: Optional[str] = None
    error_details: Optional[ErrorPayload] = None
    outcomes: Dict[str, StepOutcome] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "error_details": self.error_details.to_dict() if self.error_details else None,
            "metadata": {
                "run_id": self.metadata.run_id,
                "duration_ms": self.metadata.duration_ms,
                "steps_executed": list(self.metadata.steps_executed),
                "steps_skipped": list(self.metadata.steps_skipped),
                "warnings": list(self.metadata.warnings),
                "config_hash": self.metadata.config_hash,
            },
            "outcomes": {
                name: {
                    "status": o.status.value,
                    "summary": o.summary,
                    "duration_ms": o.duration_ms,
                    "error": o.error.to_dict() if o.error else None,
                }
                for name, o in self.outcomes.items()
            },
        }
