"""Step canônico: ai-classification (v1).

Responsabilidades:
- Identificar gastos relacionados a IA/ML (treino, inferência, GPU,
  serviços de IA gerenciados, processamento de dados para ML).
- Agregar linhas por (ResourceId, ServiceName, ResourceName, InstanceType)
  somando `BilledCost`; ResourceName ausente usa o ResourceId e
  InstanceType ausente vira `unknown`.
- Classificar cada recurso agregado com as regras priorizadas; quando o
  Step `virtual-tags` rodou, as tags virtuais do recurso ficam disponíveis
  para regras com `tag_patterns`.
- Estimar tokens para categorias cobradas por uso (`ml-inference`,
  `ai-service`).

Config esperada (exemplo):
steps:
  ai-classification:
    enabled: true
    max_rows: 10000
    rules_path: config/classification_rules.yaml

Saída:
- coleção `ai_classification`: tupla de `WorkloadClassification`, apenas
  para recursos classificados

Limites explícitos (v1):
- NÃO usa modelos de ML; a classificação é puramente por padrões.
- NÃO reclassifica recursos entre runs (sem estado).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from costflow.core.pipeline.context import RunContext
from costflow.core.pipeline.dataset import AI_CLASSIFICATION, EnrichedDataset
from costflow.core.pipeline.types import StepKind

from ..base import DEFAULT_MAX_ROWS, as_enriched, has_collection, materialize, working_frame
from .rules import ResourceFacts, WorkloadRule, classify, default_classification_rules, estimate_tokens

SOURCE_VIEW = "ai_classification_source"
SOURCE_COLUMNS = ["ResourceId", "ServiceName", "ResourceName", "InstanceType", "BilledCost"]

_RESOURCES_QUERY = f"""
SELECT
    "ResourceId" AS resource_id,
    "ServiceName" AS service_name,
    COALESCE("ResourceName", "ResourceId") AS resource_name,
    COALESCE("InstanceType", 'unknown') AS instance_type,
    SUM("BilledCost") AS billed_cost
FROM "{SOURCE_VIEW}"
GROUP BY 1, 2, 3, 4
ORDER BY 1, 2, 3, 4
"""


@dataclass(frozen=True)
class WorkloadClassification:
    resource_id: str
    is_ai_related: bool
    confidence: float
    category: str
    rule_id: str
    billed_cost: float
    estimated_tokens: Optional[int] = None


@dataclass
class AIClassificationStep:
    """Classificação de workloads de IA/ML por padrões priorizados."""

    name: str = "ai-classification"
    description: str = "Classify AI/ML related cloud spending"
    kind: StepKind = StepKind.ENRICHMENT
    dependencies: List[str] = field(default_factory=lambda: ["virtual-tags"])
    rules: Sequence[WorkloadRule] = field(default_factory=default_classification_rules)
    max_rows: int = DEFAULT_MAX_ROWS

    def execute(self, data: Any, ctx: RunContext) -> EnrichedDataset:
        dataset = as_enriched(data)

        frame = working_frame(
            dataset,
            SOURCE_COLUMNS,
            ctx=ctx,
            step_id=self.name,
            max_rows=self.max_rows,
            numeric=("BilledCost",),
        )
        if frame.empty:
            return dataset.with_enrichment(AI_CLASSIFICATION, ())

        materialize(ctx, SOURCE_VIEW, frame)
        tags = dataset.tags_by_resource()

        results: List[WorkloadClassification] = []
        for resource in ctx.query.query(_RESOURCES_QUERY):
            resource_id = "unknown" if resource["resource_id"] is None else str(resource["resource_id"])
            facts = ResourceFacts.of(
                resource["service_name"],
                resource["resource_name"],
                resource["instance_type"],
                tags.get(resource_id),
            )
            match = classify(facts, self.rules)
            if match is None:
                continue
            rule, confidence = match
            cost = float(resource["billed_cost"] or 0)
            results.append(
                WorkloadClassification(
                    resource_id=resource_id,
                    is_ai_related=True,
                    confidence=confidence,
                    category=rule.category,
                    rule_id=rule.id,
                    billed_cost=cost,
                    estimated_tokens=estimate_tokens(rule.category, cost),
                )
            )

        ctx.log(
            step_id=self.name,
            level="info",
            message="ai spend classified",
            resources=len(results),
            categories=dict(Counter(r.category for r in results)),
        )
        return dataset.with_enrichment(AI_CLASSIFICATION, results)

    def validate(self, output: Any) -> bool:
        return has_collection(output, AI_CLASSIFICATION)
