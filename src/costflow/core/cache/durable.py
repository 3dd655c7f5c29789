# src/costflow/core/cache/durable.py
"""
Cache provider durável, persistido em SQLite.

Entradas sobrevivem a reinícios do processo e são categorizadas por
`category` (ex.: "general", "daily_costs"). Valores são
serializados em JSON; `date`/`datetime` viram strings ISO 8601 e
voltam como texto na leitura. Demais tipos não JSON usam `str()`.

Esquema (tabela `cache_entries`):
    key TEXT PRIMARY KEY, value TEXT, category TEXT,
    created_at INTEGER, expires_at INTEGER   (epoch em milissegundos)
    índices em category, expires_at e created_at

Degradação:
    Se o armazenamento não puder ser aberto (ou falhar depois), o provider
    se torna no-op: leituras retornam miss, escritas são ignoradas e um
    warning é emitido via `logging`. O pipeline nunca falha por causa do
    cache durável.

Limites explícitos:
    - Sem limite de tamanho
    - Sem replicação ou compartilhamento entre hosts
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from .base import compute_expiry

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS cache_entries (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        category TEXT NOT NULL DEFAULT 'general',
        created_at INTEGER NOT NULL,
        expires_at INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_cache_category ON cache_entries (category)",
    "CREATE INDEX IF NOT EXISTS idx_cache_expires_at ON cache_entries (expires_at)",
    "CREATE INDEX IF NOT EXISTS idx_cache_created_at ON cache_entries (created_at)",
)


class DurableCacheProvider:
    def __init__(
        self,
        path: Union[str, Path] = "costflow-cache.sqlite3",
        default_ttl: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.path = str(path)
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        try:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False)
            with conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
            self._conn = conn
        except (sqlite3.Error, OSError) as e:
            logger.warning("durable cache unavailable at %s, running as no-op: %s", self.path, e)

    @property
    def available(self) -> bool:
        return self._conn is not None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _disable(self, e: Exception) -> None:
        logger.warning("durable cache failed, disabling: %s", e)
        conn, self._conn = self._conn, None
        if conn is not None:
            try:
                conn.close()
            except sqlite3.Error:
                pass

    # -----------------------------
    # CacheProvider
    # -----------------------------
    def get(self, key: str) -> Optional[Any]:
        if self._conn is None:
            return None
        now = self._now_ms()
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT value, expires_at FROM cache_entries WHERE key = ?", (key,)
                ).fetchone()
                if row is None:
                    return None
                value, expires_at = row
                if expires_at is not None and now >= expires_at:
                    with self._conn:
                        self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
                    return None
            except sqlite3.Error as e:
                self._disable(e)
                return None
        return json.loads(value)

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        category: str = "general",
    ) -> None:
        if self._conn is None:
            return
        payload = json.dumps(value, default=_json_default)
        now_s = self._clock()
        expires = compute_expiry(now_s, ttl, self.default_ttl)
        expires_ms = int(expires * 1000) if expires is not None else None
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        "INSERT OR REPLACE INTO cache_entries "
                        "(key, value, category, created_at, expires_at) VALUES (?, ?, ?, ?, ?)",
                        (key, payload, category, int(now_s * 1000), expires_ms),
                    )
            except sqlite3.Error as e:
                self._disable(e)

    def delete(self, key: str) -> None:
        self._write("DELETE FROM cache_entries WHERE key = ?", (key,))

    def clear(self) -> None:
        self._write("DELETE FROM cache_entries", ())

    # -----------------------------
    # Operações por categoria
    # -----------------------------
    def clear_by_type(self, category: str) -> int:
        """Remove todas as entradas de uma categoria; retorna quantas foram removidas."""
        return self._write("DELETE FROM cache_entries WHERE category = ?", (category,))

    def cleanup(self) -> int:
        """Remove entradas expiradas; retorna quantas foram removidas."""
        removed = self._write(
            "DELETE FROM cache_entries WHERE expires_at IS NOT NULL AND expires_at <= ?",
            (self._now_ms(),),
        )
        if removed:
            logger.info("cleaned up %d expired durable cache entries", removed)
        return removed

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "total_entries": 0,
            "total_size": 0,
            "entries_by_type": {},
            "oldest_entry": None,
            "newest_entry": None,
        }
        if self._conn is None:
            return stats
        with self._lock:
            try:
                total, size, oldest, newest = self._conn.execute(
                    "SELECT COUNT(*), COALESCE(SUM(LENGTH(value)), 0), "
                    "MIN(created_at), MAX(created_at) FROM cache_entries"
                ).fetchone()
                by_type = self._conn.execute(
                    "SELECT category, COUNT(*) FROM cache_entries GROUP BY category"
                ).fetchall()
            except sqlite3.Error as e:
                self._disable(e)
                return stats
        stats.update(
            total_entries=total,
            total_size=size,
            entries_by_type={category: count for category, count in by_type},
            oldest_entry=oldest,
            newest_entry=newest,
        )
        return stats

    def _write(self, statement: str, params: tuple) -> int:
        if self._conn is None:
            return 0
        with self._lock:
            try:
                with self._conn:
                    cursor = self._conn.execute(statement, params)
                return cursor.rowcount
            except sqlite3.Error as e:
                self._disable(e)
                return 0

    def close(self) -> None:
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()

    def __enter__(self) -> "DurableCacheProvider":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
