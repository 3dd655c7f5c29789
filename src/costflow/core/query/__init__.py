"""Acesso ao engine analítico: codificação de literais e query handle SQLite."""

from .literals import (
    create_view_statements,
    encode_literal,
    escape_like,
    quote_identifier,
    values_clause,
)
from .sqlite import SQLiteQueryHandle

__all__ = [
    "SQLiteQueryHandle",
    "create_view_statements",
    "encode_literal",
    "escape_like",
    "quote_identifier",
    "values_clause",
]
