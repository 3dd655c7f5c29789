# src/costflow/core/cache/memory.py
"""
Cache provider volátil, limitado por tamanho.

Armazenamento em `OrderedDict` (ordem de inserção preservada) protegido
por lock. Quando a capacidade é atingida e a chave é nova, a entrada
inserida há mais tempo é removida antes da inserção.

Expiração:
    - `get` verifica a expiração e remove a entrada (lazy)
    - uma thread daemon varre entradas expiradas a cada `sweep_interval`
      segundos; a correção nunca depende da varredura ter rodado

Limites explícitos:
    - Não persiste nada entre processos
    - Não implementa LRU: a ordem é de inserção, leituras não a alteram
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from .base import CacheEntry, compute_expiry

logger = logging.getLogger(__name__)


class InMemoryCacheProvider:
    def __init__(
        self,
        default_ttl: float = 5 * 60,
        max_size: int = 1000,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be a positive integer")
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        if sweep_interval > 0:
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                args=(sweep_interval,),
                name="costflow-cache-sweeper",
                daemon=True,
            )
            self._sweeper.start()

    # -----------------------------
    # CacheProvider
    # -----------------------------
    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_readable(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        entry = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=compute_expiry(now, ttl, self.default_ttl),
        )
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                oldest, _ = self._entries.popitem(last=False)
                logger.debug("evicted oldest cache entry %r", oldest)
            # sobrescrever mantém a posição original de inserção
            self._entries[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    # -----------------------------
    # Manutenção
    # -----------------------------
    def sweep(self) -> int:
        """Remove entradas expiradas e retorna quantas foram removidas."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if not e.is_readable(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("cleaned up %d expired cache entries", len(expired))
        return len(expired)

    def _sweep_loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            self.sweep()

    def get_stats(self) -> Dict[str, int]:
        now = self._clock()
        with self._lock:
            expired = sum(1 for e in self._entries.values() if not e.is_readable(now))
            total = len(self._entries)
        return {
            "total_entries": total,
            "active_entries": total - expired,
            "expired_entries": expired,
            "max_size": self.max_size,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def close(self) -> None:
        """Interrompe a varredura em background e descarta as entradas."""
        self._stop.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join(timeout=1.0)
        self.clear()

    def __enter__(self) -> "InMemoryCacheProvider":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
