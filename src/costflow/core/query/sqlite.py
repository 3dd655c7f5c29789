# src/costflow/core/query/sqlite.py
"""
Query handle sobre SQLite em memória.

Implementa o contrato `QueryHandle` (texto SQL -> lista de linhas como
dicts). A conexão registra:
    - função `REGEXP` (sintaxe `valor REGEXP padrão`), com NULL -> falso
    - `PRAGMA case_sensitive_like = ON`, para que `contains` e
      `starts_with` respeitem caixa como `equals`

Cada instância possui sua própria conexão; views temporárias criadas
pelos Steps vivem enquanto o handle estiver aberto.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from functools import lru_cache
from typing import Any, Dict, List, Optional, Pattern, Sequence

from .literals import create_view_statements

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Pattern[str]:
    return re.compile(pattern)


def _regexp(pattern: Optional[str], value: Any) -> bool:
    if pattern is None or value is None:
        return False
    return _compile(pattern).search(str(value)) is not None


class SQLiteQueryHandle:
    def __init__(self, database: str = ":memory:"):
        self._conn = sqlite3.connect(database, check_same_thread=False)
        self._conn.create_function("REGEXP", 2, _regexp, deterministic=True)
        self._conn.execute("PRAGMA case_sensitive_like = ON")

    def query(self, text: str) -> List[Dict[str, Any]]:
        logger.debug("query: %s", text)
        cursor = self._conn.execute(text)
        if cursor.description is None:
            self._conn.commit()
            return []
        columns = [d[0] for d in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def create_view(self, name: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        for statement in create_view_statements(name, columns, rows):
            self.query(statement)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SQLiteQueryHandle":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
