# src/costflow/core/query/literals.py
"""
Codificação de literais e identificadores SQL.

Todo valor derivado de dados ou regras que entra em texto de consulta
passa por este módulo. Nenhum Step concatena valores diretamente.

Regras de codificação:
    - None / NaN / pd.NA          -> NULL
    - bool                        -> TRUE / FALSE
    - int / float (finitos)       -> representação numérica
    - str                         -> '...' com aspas simples duplicadas
    - datetime / date             -> string ISO entre aspas
    - qualquer outro valor        -> str(valor) entre aspas
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Iterable, List, Sequence

import pandas as pd


def encode_literal(value: Any) -> str:
    if value is None or value is pd.NA or value is pd.NaT:
        return "NULL"
    # escalares numpy chegam aqui via pandas
    if hasattr(value, "item") and not isinstance(value, (str, bytes, datetime, date)):
        try:
            value = value.item()
        except (TypeError, ValueError):
            pass
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return "NULL"
        return repr(value)
    if isinstance(value, (datetime, date)):
        return quote_string(value.isoformat())
    if isinstance(value, str):
        return quote_string(value)
    return quote_string(str(value))


def quote_string(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def quote_identifier(name: str) -> str:
    if not isinstance(name, str) or not name:
        raise ValueError("identifier must be a non-empty string")
    return '"' + name.replace('"', '""') + '"'


def escape_like(text: str, escape: str = "\\") -> str:
    """Escapa curingas de LIKE (`%`, `_`) e o próprio caractere de escape."""
    return (
        text.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def values_clause(rows: Iterable[Sequence[Any]]) -> str:
    rendered = [
        "(" + ", ".join(encode_literal(v) for v in row) + ")"
        for row in rows
    ]
    if not rendered:
        raise ValueError("values_clause requires at least one row")
    return "VALUES " + ", ".join(rendered)


def create_view_statements(name: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> List[str]:
    """
    Gera as instruções que (re)materializam `name` como view temporária.

    Sem linhas, a view é criada vazia com as mesmas colunas.
    """
    if not columns:
        raise ValueError("a view needs at least one column")
    view = quote_identifier(name)
    cols = ", ".join(quote_identifier(c) for c in columns)
    if rows:
        body = values_clause(rows)
    else:
        nulls = ", ".join("NULL" for _ in columns)
        body = f"SELECT {nulls} WHERE 0"
    return [
        f"DROP VIEW IF EXISTS {view}",
        f"CREATE TEMP VIEW {view} ({cols}) AS {body}",
    ]
