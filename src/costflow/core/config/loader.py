# src/costflow/core/config/loader.py
"""
Loader de configuração do CostFlow.

A configuração efetiva é resolvida a partir de:
    - um arquivo de defaults (obrigatório)
    - um arquivo local de overrides (opcional; ignorado se não existir)

O mesmo leitor de documentos (`load_document`) é usado pelos loaders de
tabelas de regras e coeficientes dos Steps, que aceitam listas na raiz.

Invariantes:
    - O resultado de `load_config` é sempre um dict novo
    - Overrides nunca mutam os defaults
    - Arquivos vazios equivalem a documento vazio
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, Union

import yaml  # PyYAML

from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge

PathLike = Union[str, Path]


def load_document(path: PathLike, *, root: Union[Type, Tuple[Type, ...]] = dict) -> Any:
    """
    Lê um documento YAML ou JSON e valida o tipo da raiz.

    Raises:
        DefaultsNotFoundError: arquivo inexistente.
        UnsupportedConfigFormatError: extensão não suportada.
        InvalidConfigRootTypeError: raiz com tipo diferente de `root`.
    """
    path = Path(path)
    if not path.exists():
        raise DefaultsNotFoundError(f"Config file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        raise UnsupportedConfigFormatError(f"Unsupported format: {path.suffix}")

    if data is None:
        expected = root[0] if isinstance(root, tuple) else root
        data = expected()

    if not isinstance(data, root):
        raise InvalidConfigRootTypeError(
            f"Unexpected config root type in {path.name}: {type(data).__name__}"
        )
    return data


def load_config(
    *,
    defaults_path: PathLike,
    local_path: Optional[PathLike] = None,
) -> Dict[str, Any]:
    """
    Carrega os defaults e aplica o override local, se existir.

    Raises:
        DefaultsNotFoundError, UnsupportedConfigFormatError,
        InvalidConfigRootTypeError, ConfigTypeConflictError
    """
    effective: Dict[str, Any] = load_document(defaults_path)

    if local_path is not None and Path(local_path).exists():
        effective = deep_merge(effective, load_document(local_path))

    return effective
