# src/costflow/core/pipeline/dataset.py
"""
Modelo de dados do pipeline: RawDataset e EnrichedDataset.

Este módulo define as estruturas imutáveis que atravessam o pipeline:

    - RawDataset       → linhas de billing/uso + metadados de origem + resumo de schema
    - EnrichedDataset  → RawDataset + coleções nomeadas de enriquecimento

Semântica das coleções de enriquecimento:
    - ausência do nome  → "ainda não calculado"
    - tupla vazia       → "calculado, sem resultados"

Decisões arquiteturais:
    - Datasets são frozen dataclasses; Steps produzem novas instâncias
    - `with_enrichment` apenas acrescenta: coleções anexadas por Steps
      anteriores nunca são removidas nem substituídas
    - Linhas são mantidas como tupla de mapeamentos (coluna → escalar)

Invariantes:
    - `schema.row_count` reflete a quantidade de linhas na criação
    - Coleções são sempre tuplas

Limites explícitos:
    - Não realiza ingestão de arquivos (responsabilidade externa)
    - Não valida semântica de colunas de billing

Este módulo existe para garantir que o dataset encadeado entre Steps
seja previsível e livre de mutações acidentais.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import pandas as pd


# Nomes canônicos das coleções produzidas pelos Steps padrão.
VIRTUAL_TAGS = "virtual_tags"
CO2 = "co2"
AI_CLASSIFICATION = "ai_classification"

PROVIDERS = ("aws", "azure", "gcp", "manual")
FORMATS = ("focus", "cur", "csv", "parquet")


@dataclass(frozen=True)
class SourceMetadata:
    provider: str
    format: str
    received_at: datetime
    file_name: Optional[str] = None


@dataclass(frozen=True)
class SchemaSummary:
    columns: Tuple[str, ...]
    row_count: int
    estimated_size: int


def _estimate_size(rows: Sequence[Mapping[str, Any]]) -> int:
    # estimativa grosseira: tamanho da serialização JSON
    return len(json.dumps(list(rows), default=str))


@dataclass(frozen=True)
class RawDataset:
    """Linhas brutas de billing/uso, imutáveis após a ingestão."""

    rows: Tuple[Mapping[str, Any], ...]
    source: SourceMetadata
    schema: SchemaSummary

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        *,
        provider: str = "manual",
        format: str = "csv",
        received_at: Optional[datetime] = None,
        file_name: Optional[str] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> "RawDataset":
        if provider not in PROVIDERS:
            raise ValueError(f"Unsupported provider: {provider}")
        if format not in FORMATS:
            raise ValueError(f"Unsupported format: {format}")

        rows = tuple(dict(r) for r in records)
        if columns is None:
            seen: Dict[str, None] = {}
            for r in rows:
                for col in r:
                    seen.setdefault(col, None)
            columns = list(seen)

        return cls(
            rows=rows,
            source=SourceMetadata(
                provider=provider,
                format=format,
                received_at=received_at or datetime.now(timezone.utc),
                file_name=file_name,
            ),
            schema=SchemaSummary(
                columns=tuple(columns),
                row_count=len(rows),
                estimated_size=_estimate_size(rows),
            ),
        )

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, **kwargs: Any) -> "RawDataset":
        """Constrói o dataset a partir de um DataFrame (NaN vira None)."""
        clean = frame.astype(object).where(frame.notna(), None)
        return cls.from_records(
            clean.to_dict(orient="records"),
            columns=[str(c) for c in frame.columns],
            **kwargs,
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.rows), columns=list(self.schema.columns))


@dataclass(frozen=True)
class EnrichedDataset(RawDataset):
    """RawDataset acrescido de coleções nomeadas de enriquecimento."""

    enrichments: Mapping[str, Tuple[Any, ...]] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: RawDataset) -> "EnrichedDataset":
        if isinstance(raw, EnrichedDataset):
            return raw
        return cls(rows=raw.rows, source=raw.source, schema=raw.schema, enrichments={})

    def has_enrichment(self, name: str) -> bool:
        return name in self.enrichments

    def get_enrichment(self, name: str) -> Optional[Tuple[Any, ...]]:
        return self.enrichments.get(name)

    def with_enrichment(self, name: str, records: Iterable[Any]) -> "EnrichedDataset":
        """Retorna um NOVO dataset com `records` acrescentados à coleção `name`."""
        merged = dict(self.enrichments)
        merged[name] = tuple(merged.get(name, ())) + tuple(records)
        return replace(self, enrichments=merged)

    @property
    def virtual_tags(self) -> Optional[Tuple[Any, ...]]:
        return self.get_enrichment(VIRTUAL_TAGS)

    @property
    def emissions(self) -> Optional[Tuple[Any, ...]]:
        return self.get_enrichment(CO2)

    @property
    def classifications(self) -> Optional[Tuple[Any, ...]]:
        return self.get_enrichment(AI_CLASSIFICATION)

    def tags_by_resource(self) -> Dict[str, Dict[str, str]]:
        """Índice resource_id → tags virtuais (vazio se o Step de tags não rodou)."""
        return {vt.resource_id: dict(vt.tags) for vt in (self.virtual_tags or ())}
