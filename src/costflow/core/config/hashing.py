# src/costflow/core/config/hashing.py
"""
Hash canônico da configuração efetiva.

SHA-256 sobre JSON canônico (chaves ordenadas, separadores compactos,
UTF-8). O valor é gravado em `ExecutionMetadata.config_hash` para que
runs possam ser correlacionadas com a configuração que as produziu.
"""

import hashlib
import json
from typing import Any, Dict


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Retorna o hash hexadecimal (64 caracteres) de `config`.

    Configurações estruturalmente equivalentes produzem o mesmo hash,
    independentemente da ordem original das chaves. Valores não
    serializáveis em JSON entram pela sua representação `str`.

    Raises:
        TypeError: se `config` não for dict.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config to hash must be a dict, got: {type(config).__name__}"
        )

    canonical_json = json.dumps(
        config,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
