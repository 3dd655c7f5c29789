"""Step canônico: green-ops-co2 (v1).

Responsabilidades:
- Estimar emissões de CO2 por linha de billing via join em cascata com a
  tabela de coeficientes: (serviço, região) exata → (serviço, `global`)
  → fallback fixo de 0.5 kg por unidade de custo.
- Manter a tabela de coeficientes em cache (`co2-coefficients:latest`,
  TTL 24 h).
- Copiar as tags virtuais do recurso (quando o Step `virtual-tags` rodou)
  para `allocation_tags`, permitindo alocar emissões por centro de custo.

Regra de estimativa:
    kg_per_cost > 0  → billed_cost × kg_per_cost
    kg_per_unit > 0  → usage_quantity × kg_per_unit
    caso contrário   → billed_cost × 0.5

Config esperada (exemplo):
steps:
  green-ops-co2:
    enabled: true
    max_rows: 10000
    coefficients_path: config/co2_coefficients.yaml

Saída:
- coleção `co2`: tupla de `EmissionEstimate` (apenas estimativas > 0)

Limites explícitos (v1):
- NÃO consulta APIs de sustentabilidade de provedores.
- NÃO agrega por recurso (uma estimativa por linha de billing).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

import pandas as pd

from costflow.core.pipeline.context import RunContext
from costflow.core.pipeline.dataset import CO2, EnrichedDataset
from costflow.core.pipeline.types import StepKind

from ..base import DEFAULT_MAX_ROWS, as_enriched, has_collection, materialize, working_frame
from .coefficients import (
    DEFAULT_COEFFICIENTS,
    GLOBAL_REGION,
    EmissionCoefficient,
    dedupe_coefficients,
)

SOURCE_VIEW = "green_ops_source"
COEFFICIENTS_VIEW = "co2_coefficients"
CACHE_KEY = "co2-coefficients:latest"
COEFFICIENTS_TTL_S = 24 * 60 * 60

FALLBACK_KG_PER_COST = 0.5
FALLBACK_CONFIDENCE = 0.3
FALLBACK_SOURCE = "estimated"

BILLING_COLUMNS = ["ResourceId", "ServiceName", "RegionName", "BilledCost", "UsageQuantity"]
COEFFICIENT_COLUMNS = ["ServiceName", "Region", "KgPerCost", "KgPerUnit", "Confidence", "Source"]

# cascata: exata → global → fallback
_ESTIMATE_QUERY = f"""
SELECT
    b."ResourceId" AS resource_id,
    b."RegionName" AS region,
    b."BilledCost" AS billed_cost,
    b."UsageQuantity" AS usage_quantity,
    CASE WHEN e."ServiceName" IS NOT NULL THEN e."KgPerCost" ELSE g."KgPerCost" END AS kg_per_cost,
    CASE WHEN e."ServiceName" IS NOT NULL THEN e."KgPerUnit" ELSE g."KgPerUnit" END AS kg_per_unit,
    COALESCE(
        CASE WHEN e."ServiceName" IS NOT NULL THEN e."Confidence" ELSE g."Confidence" END,
        {FALLBACK_CONFIDENCE}
    ) AS confidence,
    COALESCE(
        CASE WHEN e."ServiceName" IS NOT NULL THEN e."Source" ELSE g."Source" END,
        '{FALLBACK_SOURCE}'
    ) AS source,
    CASE
        WHEN e."ServiceName" IS NOT NULL THEN 'exact'
        WHEN g."ServiceName" IS NOT NULL THEN 'global'
        ELSE 'fallback'
    END AS match_level
FROM "{SOURCE_VIEW}" b
LEFT JOIN "{COEFFICIENTS_VIEW}" e
    ON e."ServiceName" = b."ServiceName" AND e."Region" = b."RegionName"
LEFT JOIN "{COEFFICIENTS_VIEW}" g
    ON g."ServiceName" = b."ServiceName" AND g."Region" = '{GLOBAL_REGION}'
"""


def estimate_kg_co2(
    billed_cost: float,
    usage_quantity: float,
    kg_per_cost: Optional[float],
    kg_per_unit: Optional[float],
) -> float:
    if kg_per_cost is not None and kg_per_cost > 0:
        return billed_cost * kg_per_cost
    if kg_per_unit is not None and kg_per_unit > 0:
        return usage_quantity * kg_per_unit
    return billed_cost * FALLBACK_KG_PER_COST


@dataclass(frozen=True)
class EmissionEstimate:
    resource_id: str
    estimated_kg_co2: float
    confidence: float
    coefficient_source: str
    region: Optional[str]
    match_level: str
    allocation_tags: Mapping[str, str] = field(default_factory=dict)


@dataclass
class GreenOpsStep:
    """Estimativa de CO2 por join em cascata com a tabela de coeficientes."""

    name: str = "green-ops-co2"
    description: str = "Calculate CO2 emissions for cloud resources"
    kind: StepKind = StepKind.ENRICHMENT
    dependencies: List[str] = field(default_factory=lambda: ["virtual-tags"])
    coefficients: Optional[Sequence[EmissionCoefficient]] = None
    max_rows: int = DEFAULT_MAX_ROWS

    def _load_coefficients(self, ctx: RunContext) -> List[EmissionCoefficient]:
        cached = ctx.cache.get(CACHE_KEY)
        if cached is not None:
            return [EmissionCoefficient.from_dict(c) for c in cached]

        coefficients = list(self.coefficients if self.coefficients is not None else DEFAULT_COEFFICIENTS)
        ctx.cache.set(CACHE_KEY, [c.to_dict() for c in coefficients], COEFFICIENTS_TTL_S)
        return coefficients

    def execute(self, data: Any, ctx: RunContext) -> EnrichedDataset:
        dataset = as_enriched(data)
        coefficients = dedupe_coefficients(self._load_coefficients(ctx))

        frame = working_frame(
            dataset,
            BILLING_COLUMNS,
            ctx=ctx,
            step_id=self.name,
            max_rows=self.max_rows,
            numeric=("BilledCost", "UsageQuantity"),
        )
        if frame.empty:
            return dataset.with_enrichment(CO2, ())

        materialize(ctx, SOURCE_VIEW, frame)
        coef_frame = _coefficient_frame(coefficients)
        materialize(ctx, COEFFICIENTS_VIEW, coef_frame)

        tags = dataset.tags_by_resource()
        estimates: List[EmissionEstimate] = []
        for row in ctx.query.query(_ESTIMATE_QUERY):
            kg = estimate_kg_co2(
                float(row["billed_cost"] or 0),
                float(row["usage_quantity"] or 0),
                row["kg_per_cost"],
                row["kg_per_unit"],
            )
            if kg <= 0:
                continue
            resource_id = str(row["resource_id"]) if row["resource_id"] is not None else "unknown"
            estimates.append(
                EmissionEstimate(
                    resource_id=resource_id,
                    estimated_kg_co2=kg,
                    confidence=float(row["confidence"]),
                    coefficient_source=str(row["source"]),
                    region=row["region"],
                    match_level=row["match_level"],
                    allocation_tags=dict(tags.get(resource_id, {})),
                )
            )

        ctx.log(
            step_id=self.name,
            level="info",
            message="co2 estimated",
            resources=len(estimates),
            total_kg_co2=sum(e.estimated_kg_co2 for e in estimates),
        )
        return dataset.with_enrichment(CO2, estimates)

    def validate(self, output: Any) -> bool:
        return has_collection(output, CO2)


def _coefficient_frame(coefficients: Sequence[EmissionCoefficient]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            (
                c.service_name,
                c.region,
                c.kg_co2_per_cost,
                c.kg_co2_per_unit or 0.0,
                c.confidence,
                c.source,
            )
            for c in coefficients
        ],
        columns=COEFFICIENT_COLUMNS,
    )
