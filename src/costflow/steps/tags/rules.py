"""
Regras de tags virtuais.

Uma regra associa uma condição sobre uma coluna de billing a um conjunto
de tags. Regras são avaliadas em ordem decrescente de prioridade e a
condição de cada uma vira um filtro SQL sobre a view de trabalho.

Seletores de campo:
    resource_id → ResourceId
    service_name → ServiceName
    account_id  → AccountId
    region      → RegionName
    custom      → coluna informada em `field`

Operadores:
    equals       → igualdade exata (sensível a caixa)
    contains     → substring (LIKE com curingas escapados)
    starts_with  → prefixo (LIKE com curingas escapados)
    in           → pertinência a uma lista de valores
    regex        → expressão regular (busca, não casamento total)

Formato YAML aceito por `load_tag_rules`:

    - id: rule-dev
      name: Tag development resources
      condition: {type: service_name, operator: contains, value: dev}
      tags: {Environment: Development}
      priority: 100
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from costflow.core.config.loader import load_document
from costflow.core.query.literals import escape_like, quote_identifier, quote_string

FIELD_COLUMNS: Dict[str, str] = {
    "resource_id": "ResourceId",
    "service_name": "ServiceName",
    "account_id": "AccountId",
    "region": "RegionName",
}

OPERATORS = ("equals", "contains", "starts_with", "in", "regex")


class TagConflictPolicy(str, Enum):
    """
    Resolução de conflito quando duas regras definem a mesma chave para
    o mesmo recurso.

    - HIGHEST_PRIORITY: a chave definida pela regra de maior prioridade
      é mantida; regras seguintes só acrescentam chaves novas
    - LAST_PROCESSED: a regra processada por último (menor prioridade)
      sobrescreve a chave
    """
    HIGHEST_PRIORITY = "highest_priority"
    LAST_PROCESSED = "last_processed"


@dataclass(frozen=True)
class TagCondition:
    type: str
    operator: str
    value: Union[str, Sequence[str]]
    field: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in FIELD_COLUMNS and self.type != "custom":
            raise ValueError(f"Unknown condition type: {self.type}")
        if self.operator not in OPERATORS:
            raise ValueError(f"Unknown condition operator: {self.operator}")
        if self.type == "custom" and not self.field:
            raise ValueError("custom conditions require 'field'")

    @property
    def column(self) -> str:
        if self.type == "custom":
            return str(self.field)
        return FIELD_COLUMNS[self.type]

    def to_sql(self) -> str:
        """Filtro SQL equivalente à condição."""
        col = quote_identifier(self.column)
        as_text = f"CAST({col} AS TEXT)"

        if self.operator == "in":
            values = [self.value] if isinstance(self.value, str) else list(self.value)
            if not values:
                return "1=0"
            return f"{as_text} IN ({', '.join(quote_string(str(v)) for v in values)})"

        value = str(self.value)
        if self.operator == "equals":
            return f"{as_text} = {quote_string(value)}"
        if self.operator == "contains":
            return f"{as_text} LIKE {quote_string('%' + escape_like(value) + '%')} ESCAPE '\\'"
        if self.operator == "starts_with":
            return f"{as_text} LIKE {quote_string(escape_like(value) + '%')} ESCAPE '\\'"
        return f"{col} REGEXP {quote_string(value)}"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": self.type,
            "operator": self.operator,
            "value": self.value if isinstance(self.value, str) else list(self.value),
        }
        if self.field is not None:
            out["field"] = self.field
        return out

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TagCondition":
        value = raw.get("value")
        if isinstance(value, (list, tuple)):
            value = tuple(str(v) for v in value)
        elif value is None:
            raise ValueError("condition.value is required")
        else:
            value = str(value)
        return cls(
            type=raw.get("type", ""),
            operator=raw.get("operator", ""),
            value=value,
            field=raw.get("field"),
        )


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(str(value))
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TagRule:
    id: str
    name: str
    condition: TagCondition
    tags: Mapping[str, str]
    priority: int = 0
    is_active: bool = True
    created_by: str = "system"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "condition": self.condition.to_dict(),
            "tags": dict(self.tags),
            "priority": self.priority,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TagRule":
        for key in ("id", "name", "condition", "tags"):
            if key not in raw:
                raise ValueError(f"tag rule is missing '{key}'")
        return cls(
            id=str(raw["id"]),
            name=str(raw["name"]),
            description=raw.get("description"),
            condition=TagCondition.from_dict(raw["condition"]),
            tags={str(k): str(v) for k, v in dict(raw["tags"]).items()},
            priority=int(raw.get("priority", 0)),
            is_active=bool(raw.get("is_active", True)),
            created_by=str(raw.get("created_by", "system")),
            created_at=_parse_ts(raw.get("created_at")),
            updated_at=_parse_ts(raw.get("updated_at")),
        )


def ordered_rules(rules: Sequence[TagRule]) -> List[TagRule]:
    """Regras ativas em ordem decrescente de prioridade (estável em empates)."""
    return sorted((r for r in rules if r.is_active), key=lambda r: -r.priority)


def merge_tags(
    existing: Mapping[str, str],
    incoming: Mapping[str, str],
    policy: TagConflictPolicy = TagConflictPolicy.HIGHEST_PRIORITY,
) -> Dict[str, str]:
    """Combina tags de uma regra processada depois com as já aplicadas."""
    if policy == TagConflictPolicy.LAST_PROCESSED:
        return {**existing, **incoming}
    merged = dict(existing)
    for key, value in incoming.items():
        merged.setdefault(key, value)
    return merged


def default_tag_rules(created_by: str = "system") -> List[TagRule]:
    """Regras de exemplo usadas quando nenhuma fonte de regras é configurada."""
    return [
        TagRule(
            id="rule-1",
            name="Tag development resources",
            description='Tag all resources with "dev" in the service name as development',
            condition=TagCondition(type="service_name", operator="contains", value="dev"),
            tags={"Environment": "Development", "CostCenter": "Engineering"},
            priority=100,
            created_by=created_by,
        ),
        TagRule(
            id="rule-2",
            name="Tag production resources",
            description='Tag all resources with "prod" in the service name as production',
            condition=TagCondition(type="service_name", operator="contains", value="prod"),
            tags={"Environment": "Production", "CostCenter": "Operations"},
            priority=200,
            created_by=created_by,
        ),
    ]


def load_tag_rules(path: Union[str, Path]) -> List[TagRule]:
    """Carrega regras de um arquivo YAML/JSON (lista na raiz ou chave `rules`)."""
    doc = load_document(path, root=(list, dict))
    items = doc.get("rules", []) if isinstance(doc, dict) else doc
    return [TagRule.from_dict(item) for item in items]
