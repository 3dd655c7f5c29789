"""Serviços construídos sobre o core (cache de agregações de dashboard)."""

from .aggregation_cache import CACHE_TTL_S, AggregationCache, make_cache_key

__all__ = ["AggregationCache", "CACHE_TTL_S", "make_cache_key"]
