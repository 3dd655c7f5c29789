# src/costflow/core/pipeline/context.py
"""
Contexto de execução compartilhado do pipeline.

Este módulo define o `RunContext`, a estrutura passada a todos os Steps
durante uma run, e `RunInputs`, a configuração tipada da run que
substitui o antigo "saco" de metadados sem tipo.

O RunContext reúne:
    - identidade da execução (run_id, created_at, caller_id, org_id)
    - colaboradores externos (query handle e cache provider)
    - inputs tipados da run (`RunInputs`)
    - log estruturado de eventos e warnings não fatais por Step

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Colaboradores são injetados; não existe estado global
    - Steps tratam o contexto como somente leitura, exceto pelo log
      de eventos e pela coleta de warnings

Invariantes:
    - Logs sempre incluem `run_id` e `step_id`
    - Warnings são agrupados por `step_id`

Limites explícitos:
    - Não executa Steps
    - Não persiste eventos (a run os devolve em memória)

Este módulo existe para garantir isolamento,
clareza e rastreabilidade na execução de pipelines.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from costflow.core.cache.base import CacheProvider


class QueryHandle(Protocol):
    """Colaborador externo: engine analítico acessado por texto SQL."""

    def query(self, text: str) -> List[Dict[str, Any]]:
        ...


@dataclass(frozen=True)
class RunInputs:
    """
    Inputs tipados de uma run.

    Steps declaram em `required_inputs` quais campos precisam; o Engine
    verifica a presença antes de chamar `execute`.
    """
    source_id: Optional[str] = None
    file_name: Optional[str] = None
    billing_period: Optional[str] = None

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def missing(self, required: Sequence[str]) -> List[str]:
        unknown = [name for name in required if name not in self.field_names()]
        if unknown:
            raise ValueError(f"Unknown run inputs: {', '.join(unknown)}")
        return [name for name in required if getattr(self, name) in (None, "")]


def generate_run_id() -> str:
    """Gera um identificador de run no formato `run_<epoch-ms>_<7 chars>`."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"run_{int(time.time() * 1000)}_{suffix}"


@dataclass
class RunContext:
    """
    Contexto de execução compartilhado de uma run do pipeline.

    Campos canônicos:
    - run_id: identificador único da execução
    - query: handle do engine analítico (`QueryHandle`)
    - cache: cache provider compartilhado entre Steps e entre runs
    - inputs: inputs tipados da run
    - caller_id / org_id: identidade do chamador e da organização
    - created_at: timestamp UTC de criação do contexto
    - events: log estruturado de eventos
    - warnings: warnings não fatais por step_id
    """
    run_id: str
    query: QueryHandle
    cache: CacheProvider
    inputs: RunInputs = field(default_factory=RunInputs)
    caller_id: str = "anonymous"
    org_id: str = "default"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, step_id: str, message: str) -> None:
        if step_id not in self.warnings:
            self.warnings[step_id] = []
        self.warnings[step_id].append(message)

    def warnings_for(self, step_id: str) -> List[str]:
        return list(self.warnings.get(step_id, []) or [])
