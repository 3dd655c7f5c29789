"""
Coeficientes de emissão de CO2 por (serviço, região).

Cada coeficiente informa kg de CO2 por unidade de custo e, opcionalmente,
por unidade de uso. A região `global` vale para qualquer região do
serviço quando não existe coeficiente exato.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from costflow.core.config.loader import load_document

GLOBAL_REGION = "global"
PROVIDERS = ("aws", "azure", "gcp", "generic")
SOURCES = ("cloud_carbon_footprint", "provider_official", "research_paper", "estimated")


@dataclass(frozen=True)
class EmissionCoefficient:
    id: str
    provider: str
    service_name: str
    region: str
    kg_co2_per_cost: float
    confidence: float
    source: str = "estimated"
    kg_co2_per_unit: Optional[float] = None
    unit_type: Optional[str] = None
    service_category: Optional[str] = None
    updated_at: Optional[date] = None

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown coefficient provider: {self.provider}")
        if self.source not in SOURCES:
            raise ValueError(f"Unknown coefficient source: {self.source}")
        if not 0 <= self.confidence <= 1:
            raise ValueError(f"Coefficient confidence must be within [0, 1]: {self.id}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "provider": self.provider,
            "service_name": self.service_name,
            "service_category": self.service_category,
            "region": self.region,
            "kg_co2_per_cost": self.kg_co2_per_cost,
            "kg_co2_per_unit": self.kg_co2_per_unit,
            "unit_type": self.unit_type,
            "confidence": self.confidence,
            "source": self.source,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "EmissionCoefficient":
        updated = raw.get("updated_at")
        if isinstance(updated, str):
            updated = date.fromisoformat(updated[:10])
        per_unit = raw.get("kg_co2_per_unit")
        return cls(
            id=str(raw["id"]),
            provider=str(raw.get("provider", "generic")),
            service_name=str(raw["service_name"]),
            service_category=raw.get("service_category"),
            region=str(raw.get("region", GLOBAL_REGION)),
            kg_co2_per_cost=float(raw["kg_co2_per_cost"]),
            kg_co2_per_unit=float(per_unit) if per_unit is not None else None,
            unit_type=raw.get("unit_type"),
            confidence=float(raw["confidence"]),
            source=str(raw.get("source", "estimated")),
            updated_at=updated,
        )


_UPDATED = date(2024, 1, 1)

DEFAULT_COEFFICIENTS: List[EmissionCoefficient] = [
    EmissionCoefficient(
        id="aws-ec2-us-east-1",
        provider="aws",
        service_name="Amazon Elastic Compute Cloud",
        service_category="Compute",
        region="us-east-1",
        kg_co2_per_cost=0.45,
        confidence=0.8,
        source="cloud_carbon_footprint",
        updated_at=_UPDATED,
    ),
    EmissionCoefficient(
        id="aws-ec2-eu-west-1",
        provider="aws",
        service_name="Amazon Elastic Compute Cloud",
        service_category="Compute",
        region="eu-west-1",
        kg_co2_per_cost=0.25,
        confidence=0.8,
        source="cloud_carbon_footprint",
        updated_at=_UPDATED,
    ),
    EmissionCoefficient(
        id="azure-compute-eastus",
        provider="azure",
        service_name="Virtual Machines",
        service_category="Compute",
        region="East US",
        kg_co2_per_cost=0.48,
        confidence=0.7,
        source="estimated",
        updated_at=_UPDATED,
    ),
    EmissionCoefficient(
        id="aws-s3-global",
        provider="aws",
        service_name="Amazon Simple Storage Service",
        service_category="Storage",
        region=GLOBAL_REGION,
        kg_co2_per_cost=0.15,
        confidence=0.6,
        source="estimated",
        updated_at=_UPDATED,
    ),
    EmissionCoefficient(
        id="generic-compute",
        provider="generic",
        service_name="generic-compute",
        region=GLOBAL_REGION,
        kg_co2_per_cost=0.4,
        confidence=0.3,
        source="estimated",
        updated_at=_UPDATED,
    ),
    EmissionCoefficient(
        id="generic-storage",
        provider="generic",
        service_name="generic-storage",
        region=GLOBAL_REGION,
        kg_co2_per_cost=0.2,
        confidence=0.3,
        source="estimated",
        updated_at=_UPDATED,
    ),
]


def dedupe_coefficients(coefficients: Sequence[EmissionCoefficient]) -> List[EmissionCoefficient]:
    """Mantém o primeiro coeficiente de cada par (serviço, região)."""
    seen = set()
    unique: List[EmissionCoefficient] = []
    for c in coefficients:
        key = (c.service_name, c.region)
        if key in seen:
            continue
        seen.add(key)
        unique.append(c)
    return unique


def load_coefficients(path: Union[str, Path]) -> List[EmissionCoefficient]:
    """Carrega coeficientes de YAML/JSON (lista na raiz ou chave `coefficients`)."""
    doc = load_document(path, root=(list, dict))
    items = doc.get("coefficients", []) if isinstance(doc, dict) else doc
    return [EmissionCoefficient.from_dict(item) for item in items]
