"""
Cache providers do CostFlow.

- `InMemoryCacheProvider`: volátil, limitado por tamanho, varredura periódica
- `DurableCacheProvider`: persistido em SQLite, categorizado por tipo
"""

from .base import CacheEntry, CacheProvider
from .durable import DurableCacheProvider
from .memory import InMemoryCacheProvider

__all__ = [
    "CacheEntry",
    "CacheProvider",
    "DurableCacheProvider",
    "InMemoryCacheProvider",
]
