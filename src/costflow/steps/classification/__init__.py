from .rules import (
    MATCH_THRESHOLD,
    ResourceFacts,
    WorkloadRule,
    classify,
    default_classification_rules,
    estimate_tokens,
    load_classification_rules,
)
from .workload import AIClassificationStep, WorkloadClassification

__all__ = [
    "AIClassificationStep",
    "MATCH_THRESHOLD",
    "ResourceFacts",
    "WorkloadClassification",
    "WorkloadRule",
    "classify",
    "default_classification_rules",
    "estimate_tokens",
    "load_classification_rules",
]
