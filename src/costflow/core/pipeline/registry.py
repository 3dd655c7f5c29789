# src/costflow/core/pipeline/registry.py
"""
Registro estrutural de Steps do pipeline.

Este módulo define o `StepRegistry`, responsável por registrar Steps
por nome e preservar a ordem de registro, que é a ordem em que o
planner inicia a travessia do grafo.

Duas formas de registro:
    - `add`: declaração estrita; nome duplicado é erro de configuração
    - `put`: registro explícito com sobrescrita (usado por `Engine.register`)

Invariantes:
    - Cada nome aparece no máximo uma vez
    - A lista de Steps reflete a ordem do primeiro registro de cada nome
    - Sobrescrever um nome mantém a posição original

Limites explícitos:
    - Não planeja execução (não é DAG planner)
    - Não executa pipeline
    - Não resolve dependências

Este módulo existe para garantir integridade estrutural,
previsibilidade e segurança na definição do pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from costflow.core.exceptions import DuplicateStepNameError


def _step_name(step: Any) -> str:
    name = getattr(step, "name", None)
    if not isinstance(name, str) or not name.strip():
        raise ValueError("step.name must be a non-empty string")
    return name


@dataclass
class StepRegistry:
    """Registro de Steps indexado por nome, com ordem de registro preservada."""

    _steps: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, step: Any) -> None:
        name = _step_name(step)
        if name in self._steps:
            raise DuplicateStepNameError(
                message=f"Duplicate step name: {name}",
                details={"step": name},
                hint="Cada Step deve ter um nome único na declaração do pipeline.",
            )
        self._steps[name] = step
        self._order.append(name)

    def put(self, step: Any) -> bool:
        """Registra ou sobrescreve; retorna True se o nome já existia."""
        name = _step_name(step)
        existed = name in self._steps
        self._steps[name] = step
        if not existed:
            self._order.append(name)
        return existed

    def get(self, name: str) -> Any:
        return self._steps[name]

    def __contains__(self, name: object) -> bool:
        return name in self._steps

    def __len__(self) -> int:
        return len(self._order)

    def names(self) -> List[str]:
        return list(self._order)

    def list(self) -> List[Any]:
        return [self._steps[n] for n in self._order]
