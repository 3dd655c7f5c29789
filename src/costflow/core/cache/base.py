# src/costflow/core/cache/base.py
"""
Contrato comum de cache providers.

Ambas as implementações (volátil e durável) satisfazem o mesmo protocolo:

    get(key) -> valor | None      (None = miss)
    set(key, value, ttl=None)     (ttl em segundos; ttl <= 0 = sem expiração)
    delete(key)
    clear()

Invariantes:
    - Uma entrada é legível sse `now < expires_at` (ou `expires_at` ausente)
    - Leitura após a expiração é miss e remove a entrada (lazy eviction)
    - `None` não é armazenável de forma distinguível de um miss
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheProvider(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    created_at: float
    expires_at: Optional[float] = None
    category: str = "general"

    def is_readable(self, now: float) -> bool:
        return self.expires_at is None or now < self.expires_at


def compute_expiry(now: float, ttl: Optional[float], default_ttl: float) -> Optional[float]:
    effective = default_ttl if ttl is None else ttl
    if effective <= 0:
        return None
    return now + effective
