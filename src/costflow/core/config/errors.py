# src/costflow/core/config/errors.py
"""
Exceções da camada de configuração do CostFlow.

Hierarquia:
    ConfigError
    ├── DefaultsNotFoundError         → arquivo base ausente
    ├── UnsupportedConfigFormatError  → extensão fora de YAML/JSON
    ├── InvalidConfigRootTypeError    → raiz do documento não é o tipo esperado
    ├── ConfigTypeConflictError       → tipos incompatíveis no deep-merge
    └── InvalidEngineConfigError      → seção `engine`/`steps`/`cache` malformada

Todas são fatais: a configuração não é resolvida parcialmente.
"""


class ConfigError(Exception):
    """Base para erros de carregamento e resolução de configuração."""


class DefaultsNotFoundError(ConfigError):
    """O arquivo de configuração base não existe no caminho informado."""


class UnsupportedConfigFormatError(ConfigError):
    """Formatos aceitos: `.yaml`, `.yml` e `.json`."""


class InvalidConfigRootTypeError(ConfigError):
    """O documento carregado não tem o tipo raiz esperado (dict ou lista)."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos entre base e override durante o deep-merge.

    Exemplo:
        - base:     {"engine": {"continue_on_error": false}}
        - override: {"engine": "strict"}
    """


class InvalidEngineConfigError(ConfigError):
    """Valor inválido nas seções consumidas pelo Engine (ex.: timeout negativo)."""
