# src/costflow/__init__.py
"""
CostFlow — pipeline de enriquecimento de dados de billing em nuvem.

Registros tabulares de billing/uso atravessam um pipeline de Steps
independentes e componíveis (tags virtuais, estimativa de CO2,
classificação de workloads de IA) antes de serem consumidos por
camadas de relatório.

Arquitetura em alto nível:
    - core.config    → carregamento, merge e hashing de configuração
    - core.pipeline  → contrato de Step, contexto de execução, datasets e registry
    - core.engine    → planejamento (DAG) e execução do pipeline
    - core.cache     → cache providers (volátil e durável)
    - core.query     → query handle SQLite e codificação de literais
    - steps          → Steps de enriquecimento baseados em regras
    - services       → serviços sobre o cache durável (agregações)
    - standard       → fábrica do pipeline completo

Limites explícitos:
    - Não realiza ingestão de arquivos nem persiste resultados de negócio
    - Não executa pipelines automaticamente
"""

__version__ = "0.1.0"
