"""Step canônico: virtual-tags (v1).

Responsabilidades:
- Aplicar tags definidas pelo usuário aos recursos de billing sem alterar
  os recursos de origem (alocação de custo customizada).
- Carregar regras do cache (`virtual-tags:<org_id>:<caller_id>`, TTL 10 min)
  ou da fonte configurada, gravando no cache a forma serializada.
- Avaliar regras ativas em ordem decrescente de prioridade; cada condição
  vira um filtro SQL sobre a view `virtual_tags_source`.
- Mesclar tags de regras subsequentes conforme `TagConflictPolicy`.

Config esperada (exemplo):
steps:
  virtual-tags:
    enabled: true
    max_rows: 10000
    conflict_policy: highest_priority
    rules_path: config/tag_rules.yaml

Saída:
- coleção `virtual_tags`: tupla de `VirtualTag`, um por recurso que casou
  com ao menos uma regra (`applied_by` = id da primeira regra aplicada)

Limites explícitos (v1):
- NÃO altera linhas de billing.
- NÃO persiste regras (a fonte é externa ao Step).
- Erros de consulta de uma regra propagam como falha do Step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from costflow.core.pipeline.context import RunContext
from costflow.core.pipeline.dataset import VIRTUAL_TAGS, EnrichedDataset
from costflow.core.pipeline.types import StepKind
from costflow.core.query.literals import quote_identifier

from ..base import DEFAULT_MAX_ROWS, as_enriched, dataset_columns, has_collection, materialize, working_frame
from .rules import TagConflictPolicy, TagRule, default_tag_rules, merge_tags, ordered_rules

VIEW_NAME = "virtual_tags_source"
RULES_TTL_S = 10 * 60


@dataclass(frozen=True)
class VirtualTag:
    resource_id: str
    tags: Mapping[str, str]
    applied_at: datetime
    applied_by: str


@dataclass
class VirtualTagsStep:
    """Overlay de tags virtuais baseado em regras priorizadas."""

    name: str = "virtual-tags"
    description: str = "Apply user-defined virtual tags to resources"
    kind: StepKind = StepKind.ENRICHMENT
    dependencies: List[str] = field(default_factory=list)
    rules: Optional[Sequence[TagRule]] = None
    conflict_policy: TagConflictPolicy = TagConflictPolicy.HIGHEST_PRIORITY
    max_rows: int = DEFAULT_MAX_ROWS

    def _load_rules(self, ctx: RunContext) -> List[TagRule]:
        cache_key = f"virtual-tags:{ctx.org_id}:{ctx.caller_id}"
        cached = ctx.cache.get(cache_key)
        if cached is not None:
            return [TagRule.from_dict(r) for r in cached]

        if self.rules is not None:
            rules = list(self.rules)
        else:
            rules = default_tag_rules(created_by=ctx.caller_id)
        ctx.cache.set(cache_key, [r.to_dict() for r in rules], RULES_TTL_S)
        return rules

    def execute(self, data: Any, ctx: RunContext) -> EnrichedDataset:
        dataset = as_enriched(data)
        rules = ordered_rules(self._load_rules(ctx))

        if not rules:
            ctx.log(step_id=self.name, level="info", message="no active rules, nothing to tag")
            return dataset.with_enrichment(VIRTUAL_TAGS, ())

        columns = dataset_columns(dataset, required=["ResourceId"])
        unknown = sorted({r.condition.column for r in rules} - set(columns))
        if unknown:
            raise ValueError(f"Tag rule selects columns missing from the dataset: {', '.join(unknown)}")

        frame = working_frame(dataset, columns, ctx=ctx, step_id=self.name, max_rows=self.max_rows)
        materialize(ctx, VIEW_NAME, frame)

        applied: Dict[str, VirtualTag] = {}
        now = datetime.now(timezone.utc)
        resource_col = quote_identifier("ResourceId")

        for rule in rules:
            matches = ctx.query.query(
                f"SELECT DISTINCT {resource_col} AS resource_id "
                f"FROM {quote_identifier(VIEW_NAME)} WHERE {rule.condition.to_sql()}"
            )
            for match in matches:
                resource_id = match["resource_id"]
                resource_id = "unknown" if resource_id in (None, "") else str(resource_id)

                current = applied.get(resource_id)
                if current is None:
                    applied[resource_id] = VirtualTag(
                        resource_id=resource_id,
                        tags=dict(rule.tags),
                        applied_at=now,
                        applied_by=rule.id,
                    )
                else:
                    applied[resource_id] = VirtualTag(
                        resource_id=resource_id,
                        tags=merge_tags(current.tags, rule.tags, self.conflict_policy),
                        applied_at=current.applied_at,
                        applied_by=current.applied_by,
                    )

            ctx.log(
                step_id=self.name,
                level="info",
                message="rule applied",
                rule_id=rule.id,
                matched=len(matches),
            )

        ctx.log(step_id=self.name, level="info", message="virtual tags applied", resources=len(applied))
        return dataset.with_enrichment(VIRTUAL_TAGS, applied.values())

    def validate(self, output: Any) -> bool:
        return has_collection(output, VIRTUAL_TAGS)
