"""
Camada de configuração do CostFlow.

Responsabilidades:
    - Carregar arquivos YAML/JSON (defaults + overrides locais)
    - Resolver a configuração final via deep-merge determinístico
    - Gerar o hash canônico da configuração efetiva

A configuração não contém lógica de domínio; quem a interpreta é
`PipelineConfig` (Engine) e a fábrica do pipeline padrão.
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidEngineConfigError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import load_config, load_document
from .merge import deep_merge

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "InvalidEngineConfigError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "deep_merge",
    "load_config",
    "load_document",
]
