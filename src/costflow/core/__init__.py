# src/costflow/core/__init__.py
"""
Core do CostFlow.

Componentes principais:
    - config    → resolução de configuração (merge, validação estrutural, hashing)
    - pipeline  → contrato de Step, contexto de execução, datasets e registry
    - engine    → planejamento (DAG) e execução controlada do pipeline
    - cache     → cache providers compartilhados entre Steps e runs
    - query     → acesso ao engine analítico por texto SQL

O core não contém regras de domínio; Steps concretos vivem em `costflow.steps`.
"""
