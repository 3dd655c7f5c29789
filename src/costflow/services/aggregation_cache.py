# src/costflow/services/aggregation_cache.py
"""
Cache de agregações de dashboard sobre o cache durável.

Pré-computações comuns (custos diários, resumos mensais, breakdown por
serviço, recursos mais caros, anomalias e KPIs) são gravadas no
`DurableCacheProvider` com TTL por tipo e categorizadas pelo próprio
tipo, o que permite invalidar um tipo inteiro de uma vez.

Chaves:
    `<tipo>:<k1>=<v1>&<k2>=<v2>` com parâmetros ordenados por nome;
    sem parâmetros, a chave é apenas `<tipo>`.

Registros podem ser dicts ou dataclasses (convertidas com `asdict`);
campos `date`/`datetime` são gravados em ISO 8601 e lidos como texto.

O serviço é construído explicitamente em volta de um provider; não há
instância global.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from costflow.core.cache.durable import DurableCacheProvider

logger = logging.getLogger(__name__)

CACHE_TTL_S: Dict[str, float] = {
    "daily_costs": 4 * 60 * 60,
    "monthly_costs": 24 * 60 * 60,
    "service_breakdown": 4 * 60 * 60,
    "resource_costs": 4 * 60 * 60,
    "anomalies": 1 * 60 * 60,
    "kpi": 15 * 60,
}

KPI_KEY = "kpi:latest"
CUSTOM_TYPE = "custom"


def make_cache_key(kind: str, params: Optional[Mapping[str, Union[str, int, float]]] = None) -> str:
    if not params:
        return kind
    encoded = "&".join(f"{k}={v}" for k, v in sorted(params.items()))
    return f"{kind}:{encoded}"


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class AggregationCache:
    def __init__(self, provider: DurableCacheProvider):
        self.provider = provider

    def _get(self, key: str) -> Optional[Any]:
        return self.provider.get(key)

    def _set(self, kind: str, key: str, data: Any) -> None:
        self.provider.set(key, _plain(data), CACHE_TTL_S[kind], category=kind)
        size = len(data) if isinstance(data, (list, tuple)) else 1
        logger.info("cached %d %s entries", size, kind)

    # -----------------------------
    # Custos diários
    # -----------------------------
    def get_daily_costs(self, start: str, end: str) -> Optional[List[Dict[str, Any]]]:
        return self._get(make_cache_key("daily_costs", {"start": start, "end": end}))

    def set_daily_costs(self, start: str, end: str, data: Sequence[Any]) -> None:
        self._set("daily_costs", make_cache_key("daily_costs", {"start": start, "end": end}), data)

    # -----------------------------
    # Resumo mensal
    # -----------------------------
    def get_monthly_summary(self, year: int) -> Optional[List[Dict[str, Any]]]:
        return self._get(make_cache_key("monthly_costs", {"year": year}))

    def set_monthly_summary(self, year: int, data: Sequence[Any]) -> None:
        self._set("monthly_costs", make_cache_key("monthly_costs", {"year": year}), data)

    # -----------------------------
    # Breakdown por serviço
    # -----------------------------
    def get_service_breakdown(self, start: str, end: str) -> Optional[List[Dict[str, Any]]]:
        return self._get(make_cache_key("service_breakdown", {"start": start, "end": end}))

    def set_service_breakdown(self, start: str, end: str, data: Sequence[Any]) -> None:
        self._set("service_breakdown", make_cache_key("service_breakdown", {"start": start, "end": end}), data)

    # -----------------------------
    # Custos por recurso
    # -----------------------------
    def get_resource_costs(self, limit: int = 100) -> Optional[List[Dict[str, Any]]]:
        return self._get(make_cache_key("resource_costs", {"limit": limit}))

    def set_resource_costs(self, data: Sequence[Any], limit: int = 100) -> None:
        self._set("resource_costs", make_cache_key("resource_costs", {"limit": limit}), data)

    # -----------------------------
    # Anomalias
    # -----------------------------
    def get_anomalies(self, start: str, end: str) -> Optional[List[Dict[str, Any]]]:
        return self._get(make_cache_key("anomalies", {"start": start, "end": end}))

    def set_anomalies(self, start: str, end: str, data: Sequence[Any]) -> None:
        self._set("anomalies", make_cache_key("anomalies", {"start": start, "end": end}), data)

    # -----------------------------
    # KPIs
    # -----------------------------
    def get_kpis(self) -> Optional[Dict[str, Any]]:
        return self._get(KPI_KEY)

    def set_kpis(self, data: Any) -> None:
        self._set("kpi", KPI_KEY, data)

    # -----------------------------
    # Entradas customizadas
    # -----------------------------
    def get_custom(self, key: str) -> Optional[Any]:
        return self._get(key)

    def set_custom(self, key: str, value: Any, ttl: Optional[float] = None, kind: str = CUSTOM_TYPE) -> None:
        self.provider.set(key, _plain(value), ttl, category=kind)

    # -----------------------------
    # Manutenção
    # -----------------------------
    def invalidate_type(self, kind: str) -> int:
        if kind not in CACHE_TTL_S and kind != CUSTOM_TYPE:
            raise ValueError(f"Unknown aggregation type: {kind}")
        removed = self.provider.clear_by_type(kind)
        logger.info("invalidated %d %s entries", removed, kind)
        return removed

    def invalidate_all(self) -> None:
        self.provider.clear()
        logger.info("aggregation cache cleared")

    def cleanup(self) -> int:
        return self.provider.cleanup()

    def get_stats(self) -> Dict[str, Any]:
        return self.provider.get_stats()
