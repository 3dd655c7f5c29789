# src/costflow/core/engine/planner.py
"""
Planejador de execução do pipeline (DAG).

Produz uma ordem topológica dos Steps registrados por busca em
profundidade com marcadores "visiting"/"visited", iniciando a travessia
por cada Step na ordem de registro.

Decisões arquiteturais:
    - Dependências são visitadas na ordem em que foram declaradas
    - A travessia é iterativa (pilha explícita), sem limite de recursão
    - Erros estruturais são fatais e levantados antes de qualquer execução

Invariantes:
    - Nenhum Step aparece antes de suas dependências
    - Cada Step aparece exatamente uma vez
    - A mesma sequência de registro produz sempre a mesma ordem

Limites explícitos:
    - Não executa Steps
    - Não interage com RunContext
    - Não valida unicidade de nomes (responsabilidade do StepRegistry)
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Set

from costflow.core.exceptions import cycle_detected, unknown_dependency
from costflow.core.pipeline.step import get_dependencies


def plan_execution(steps: Iterable[Any]) -> List[Any]:
    """
    Retorna os Steps em ordem topológica.

    Raises:
        UnknownDependencyError: um Step depende de um nome não registrado.
        CycleDetectedError: o grafo contém um ciclo; `details["step"]` é o
            Step revisitado enquanto ainda estava em "visiting".
    """
    by_name: Dict[str, Any] = {}
    for step in steps:
        by_name[step.name] = step

    visiting: Set[str] = set()
    visited: Set[str] = set()
    order: List[Any] = []

    for root in by_name:
        if root in visited:
            continue

        # cada frame: (nome, dependências ainda não visitadas)
        stack = [(root, iter(get_dependencies(by_name[root])))]
        path = [root]
        visiting.add(root)

        while stack:
            name, pending = stack[-1]
            dep = next(pending, None)

            if dep is None:
                stack.pop()
                path.pop()
                visiting.discard(name)
                visited.add(name)
                order.append(by_name[name])
                continue

            if dep not in by_name:
                raise unknown_dependency(step=name, dependency=dep)
            if dep in visiting:
                cycle = path[path.index(dep):] + [dep]
                raise cycle_detected(step=dep, path=cycle)
            if dep in visited:
                continue

            visiting.add(dep)
            path.append(dep)
            stack.append((dep, iter(get_dependencies(by_name[dep]))))

    return order
