"""
Regras de classificação de workloads de IA/ML.

Cada regra declara grupos de padrões (regex) por campo do recurso:
    - service_name
    - resource_name
    - instance_type
    - tags (chave de tag virtual → padrão sobre o valor)

Um grupo casa quando ao menos um de seus padrões casa (busca) com o
valor do campo em minúsculas. A regra se qualifica quando
`grupos_casados / grupos_declarados >= MATCH_THRESHOLD`; a primeira regra
qualificada em ordem decrescente de prioridade vence e a confiança final
é `rule.confidence × razão`.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple, Union

from costflow.core.config.loader import load_document

MATCH_THRESHOLD = 0.7

CATEGORIES = ("ml-training", "ml-inference", "data-processing", "gpu-compute", "ai-service")
PATTERN_FIELDS = ("service_name", "resource_name", "instance_type")

# preço de referência por 1k tokens para categorias cobradas por uso
TOKEN_PRICE_PER_1K: Dict[str, float] = {
    "ml-inference": 0.002,
    "ai-service": 0.003,
}


@lru_cache(maxsize=512)
def _compile(pattern: str) -> Pattern[str]:
    return re.compile(pattern)


def _any_match(patterns: Sequence[str], value: str) -> bool:
    return any(_compile(p).search(value) for p in patterns)


@dataclass(frozen=True)
class ResourceFacts:
    """Campos de um recurso agregado usados na classificação."""
    service_name: str = ""
    resource_name: str = ""
    instance_type: str = ""
    tags: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def of(
        cls,
        service_name: Any,
        resource_name: Any,
        instance_type: Any,
        tags: Optional[Mapping[str, str]] = None,
    ) -> "ResourceFacts":
        def norm(v: Any) -> str:
            return "" if v is None else str(v).lower()

        return cls(
            service_name=norm(service_name),
            resource_name=norm(resource_name),
            instance_type=norm(instance_type),
            tags={k: norm(v) for k, v in (tags or {}).items()},
        )


@dataclass(frozen=True)
class WorkloadRule:
    id: str
    name: str
    category: str
    confidence: float
    priority: int
    patterns: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    tag_patterns: Mapping[str, str] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self) -> None:
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown workload category: {self.category}")
        unknown = set(self.patterns) - set(PATTERN_FIELDS)
        if unknown:
            raise ValueError(f"Unknown pattern fields in rule {self.id}: {sorted(unknown)}")
        for pattern in [p for group in self.patterns.values() for p in group] + list(self.tag_patterns.values()):
            _compile(pattern)

    @property
    def declared_groups(self) -> int:
        return sum(1 for g in self.patterns.values() if g) + (1 if self.tag_patterns else 0)

    def match_ratio(self, facts: ResourceFacts) -> float:
        total = self.declared_groups
        if total == 0:
            return 0.0
        matched = 0
        for fld, group in self.patterns.items():
            if group and _any_match(group, getattr(facts, fld)):
                matched += 1
        if self.tag_patterns and any(
            _compile(p).search(facts.tags.get(k, "")) for k, p in self.tag_patterns.items()
        ):
            matched += 1
        return matched / total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "confidence": self.confidence,
            "priority": self.priority,
            "patterns": {k: list(v) for k, v in self.patterns.items()},
            "tag_patterns": dict(self.tag_patterns),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "WorkloadRule":
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name", raw["id"])),
            description=str(raw.get("description", "")),
            category=str(raw["category"]),
            confidence=float(raw["confidence"]),
            priority=int(raw.get("priority", 0)),
            patterns={k: tuple(str(p) for p in v) for k, v in dict(raw.get("patterns") or {}).items()},
            tag_patterns={str(k): str(v) for k, v in dict(raw.get("tag_patterns") or {}).items()},
        )


def classify(facts: ResourceFacts, rules: Sequence[WorkloadRule]) -> Optional[Tuple[WorkloadRule, float]]:
    """Retorna (regra vencedora, confiança) ou None se nenhuma regra se qualificar."""
    for rule in sorted(rules, key=lambda r: -r.priority):
        ratio = rule.match_ratio(facts)
        if ratio >= MATCH_THRESHOLD:
            return rule, rule.confidence * ratio
    return None


def estimate_tokens(category: str, cost: float) -> Optional[int]:
    price = TOKEN_PRICE_PER_1K.get(category)
    if price is None:
        return None
    return math.floor(cost / price * 1000)


def default_classification_rules() -> List[WorkloadRule]:
    return [
        WorkloadRule(
            id="openai-services",
            name="OpenAI API Usage",
            description="Direct OpenAI API calls and similar services",
            category="ai-service",
            patterns={"service_name": (
                "openai", "gpt", "claude", "bedrock", "comprehend", "textract", "rekognition",
            )},
            confidence=0.95,
            priority=100,
        ),
        WorkloadRule(
            id="aws-ai-services",
            name="AWS AI/ML Services",
            description="AWS managed AI services",
            category="ai-service",
            patterns={"service_name": (
                "sagemaker", "bedrock", "comprehend", "polly", "transcribe", "translate",
                "personalize", "forecast", "kendra", "lex", "rekognition", "textract",
            )},
            confidence=0.9,
            priority=90,
        ),
        WorkloadRule(
            id="azure-ai-services",
            name="Azure AI Services",
            description="Azure Cognitive Services and ML",
            category="ai-service",
            patterns={"service_name": (
                "cognitive services", "machine learning", "bot service", "speech services",
                "computer vision", "language understanding", "custom vision",
            )},
            confidence=0.9,
            priority=90,
        ),
        WorkloadRule(
            id="gcp-ai-services",
            name="Google Cloud AI Services",
            description="GCP AI and ML services",
            category="ai-service",
            patterns={"service_name": (
                "ai platform", "cloud ml", "automl", "cloud vision", "cloud speech",
                "cloud translation", "dialogflow", "vertex ai",
            )},
            confidence=0.9,
            priority=90,
        ),
        WorkloadRule(
            id="gpu-instances",
            name="GPU Compute Instances",
            description="GPU instances typically used for ML training",
            category="ml-training",
            patterns={"instance_type": (
                r"p\d+\.", r"g\d+\.", r"nc\d+", r"nd\d+", r"nv\d+", "gpu", "cuda", "nvidia",
            )},
            confidence=0.8,
            priority=80,
        ),
        WorkloadRule(
            id="ml-training-patterns",
            name="ML Training Resources",
            description="Resources with ML training naming patterns",
            category="ml-training",
            patterns={"resource_name": (
                "training", "model.*train", "ml.*train", "pytorch", "tensorflow",
                "jupyter", "notebook", "experiment",
            )},
            confidence=0.7,
            priority=70,
        ),
        WorkloadRule(
            id="ml-inference-patterns",
            name="ML Inference Endpoints",
            description="Resources serving ML models",
            category="ml-inference",
            patterns={"resource_name": (
                "inference", "endpoint", "model.*serv", "predict", "api.*model", "ml.*serve",
            )},
            confidence=0.7,
            priority=70,
        ),
        WorkloadRule(
            id="ml-data-processing",
            name="ML Data Processing",
            description="Data processing for ML pipelines",
            category="data-processing",
            patterns={
                "service_name": ("glue", "data factory", "dataflow", "kinesis", "stream analytics"),
                "resource_name": ("etl", "pipeline", "feature.*store", "data.*prep"),
            },
            confidence=0.6,
            priority=60,
        ),
    ]


def load_classification_rules(path: Union[str, Path]) -> List[WorkloadRule]:
    """Carrega regras de YAML/JSON (lista na raiz ou chave `rules`)."""
    doc = load_document(path, root=(list, dict))
    items = doc.get("rules", []) if isinstance(doc, dict) else doc
    return [WorkloadRule.from_dict(item) for item in items]
