# src/costflow/standard.py
"""
Pipeline padrão de enriquecimento do CostFlow.

Monta o Engine com os três Steps padrão:

    virtual-tags ──┬──> green-ops-co2
                   └──> ai-classification

Diferente de um `Engine` montado à mão, o pipeline padrão usa
`continue_on_error=True` quando a configuração não diz o contrário: uma
falha em CO2 não deve impedir a classificação de IA.

Opções lidas de `steps.<nome>`:
    - max_rows (todos)
    - conflict_policy, rules_path (virtual-tags)
    - coefficients_path (green-ops-co2)
    - rules_path (ai-classification)
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from costflow.core.cache.memory import InMemoryCacheProvider
from costflow.core.config.errors import InvalidEngineConfigError
from costflow.core.config.merge import deep_merge
from costflow.core.engine.engine import Engine, PipelineConfig
from costflow.steps.base import DEFAULT_MAX_ROWS
from costflow.steps.classification import AIClassificationStep, default_classification_rules, load_classification_rules
from costflow.steps.emissions import GreenOpsStep, load_coefficients
from costflow.steps.tags import TagConflictPolicy, VirtualTagsStep, load_tag_rules

STANDARD_DEFAULTS: Dict[str, Any] = {
    "engine": {"continue_on_error": True, "timeout_ms": None},
}


def _max_rows(options: Mapping[str, Any]) -> int:
    value = options.get("max_rows", DEFAULT_MAX_ROWS)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidEngineConfigError("max_rows must be a positive integer")
    return value


def _conflict_policy(options: Mapping[str, Any]) -> TagConflictPolicy:
    raw = options.get("conflict_policy", TagConflictPolicy.HIGHEST_PRIORITY.value)
    try:
        return TagConflictPolicy(raw)
    except ValueError:
        raise InvalidEngineConfigError(f"Unknown conflict_policy: {raw}") from None


def create_standard_engine(config: Optional[Mapping[str, Any]] = None) -> Engine:
    """Cria o Engine com os Steps padrão configurados a partir de `config`."""
    pipeline_config = PipelineConfig.from_dict(deep_merge(STANDARD_DEFAULTS, dict(config or {})))

    tags_opts = pipeline_config.step_options("virtual-tags")
    co2_opts = pipeline_config.step_options("green-ops-co2")
    ai_opts = pipeline_config.step_options("ai-classification")

    tags_step = VirtualTagsStep(
        rules=load_tag_rules(tags_opts["rules_path"]) if tags_opts.get("rules_path") else None,
        conflict_policy=_conflict_policy(tags_opts),
        max_rows=_max_rows(tags_opts),
    )
    co2_step = GreenOpsStep(
        coefficients=load_coefficients(co2_opts["coefficients_path"]) if co2_opts.get("coefficients_path") else None,
        max_rows=_max_rows(co2_opts),
    )
    ai_step = AIClassificationStep(
        rules=(
            load_classification_rules(ai_opts["rules_path"])
            if ai_opts.get("rules_path")
            else default_classification_rules()
        ),
        max_rows=_max_rows(ai_opts),
    )

    return Engine(steps=[tags_step, co2_step, ai_step], config=pipeline_config)


def create_memory_cache(config: Optional[Mapping[str, Any]] = None) -> InMemoryCacheProvider:
    """Cria o cache volátil a partir da seção `cache` da configuração."""
    section = dict((config or {}).get("cache") or {})
    return InMemoryCacheProvider(
        default_ttl=float(section.get("default_ttl_s", 5 * 60)),
        max_size=int(section.get("max_size", 1000)),
        sweep_interval=float(section.get("sweep_interval_s", 60.0)),
    )
