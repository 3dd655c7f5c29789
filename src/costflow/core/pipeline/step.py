# src/costflow/core/pipeline/step.py
"""
Contrato canônico de Step (EnrichmentStep) do CostFlow.

Este módulo define o protocolo formal que qualquer Step deve satisfazer
para ser executável pelo Engine. É o ponto público de extensão: Steps de
terceiros registram os mesmos membros e são opacos para o Engine.

Membros do contrato:
    - name: identificador único e estável do Step
    - dependencies: nomes dos Steps que devem rodar antes
    - execute(data, ctx): produz o novo "current data"
    - validate(output) -> bool: opcional, valida apenas a própria saída

Membros opcionais reconhecidos pelo Engine (via getattr):
    - description: texto humano para estatísticas
    - kind: classificação semântica (`StepKind`)
    - required_inputs: campos de `RunInputs` exigidos pelo Step
    - config: configuração opaca do Step

Princípios fundamentais:
    - Steps não conhecem o Engine nem o planner
    - Steps não controlam ordem de execução
    - Conformidade é garantida por duck typing (@runtime_checkable)

Invariantes:
    - `execute` é chamado no máximo uma vez por run
    - Steps não retêm referência ao dataset após `execute`

Este módulo existe para garantir desacoplamento,
clareza contratual e testabilidade dos Steps.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Protocol, runtime_checkable

from .context import RunContext


@runtime_checkable
class EnrichmentStep(Protocol):
    """
    Contrato mínimo de um Step do CostFlow.

    Decisões arquiteturais:
        - O protocolo não impõe herança, apenas conformidade estrutural
        - `validate` é opcional e por isso não faz parte do Protocol;
          o Engine o descobre com `getattr`
        - Falhas são sinalizadas por exceção dentro de `execute`; o Engine
          as converte em `StepOutcome` num único ponto

    Limites explícitos:
        - Não define lógica de retry
        - Não decide políticas de execução (fail-fast, continue-on-error)
    """
    name: str
    dependencies: List[str]

    def execute(self, data: Any, ctx: RunContext) -> Any:
        """Executa o Step sobre o dataset corrente e retorna o novo dataset."""
        ...


def get_validator(step: Any) -> Optional[Callable[[Any], bool]]:
    validator = getattr(step, "validate", None)
    return validator if callable(validator) else None


def get_dependencies(step: Any) -> List[str]:
    return list(getattr(step, "dependencies", None) or [])
