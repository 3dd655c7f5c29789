# src/costflow/steps/base.py
"""
Utilitários compartilhados pelos Steps de enriquecimento.

Cada Step materializa as linhas que precisa como uma view temporária no
engine analítico (`CREATE TEMP VIEW ... AS VALUES ...`) e consulta essa
view com SQL montado pelo encoder de literais.

Regras comuns:
    - no máximo `max_rows` linhas de origem são consideradas; o corte é
      reportado como warning não fatal via `ctx.add_warning`
    - colunas ausentes no dataset entram na view como NULL
    - valores chegam à view como vieram nas linhas (sem inferência de dtype);
      apenas as colunas `numeric` são convertidas com `pd.to_numeric`
      (inválido → 0)
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence

import pandas as pd

from costflow.core.pipeline.context import RunContext
from costflow.core.pipeline.dataset import EnrichedDataset, RawDataset
from costflow.core.query.literals import create_view_statements

DEFAULT_MAX_ROWS = 10_000


def as_enriched(data: Any) -> EnrichedDataset:
    if isinstance(data, EnrichedDataset):
        return data
    if isinstance(data, RawDataset):
        return EnrichedDataset.from_raw(data)
    raise TypeError(f"Expected RawDataset or EnrichedDataset, got {type(data).__name__}")


def has_collection(output: Any, name: str) -> bool:
    return isinstance(output, EnrichedDataset) and isinstance(output.get_enrichment(name), tuple)


def working_frame(
    data: RawDataset,
    columns: Sequence[str],
    *,
    ctx: RunContext,
    step_id: str,
    max_rows: int = DEFAULT_MAX_ROWS,
    numeric: Iterable[str] = (),
) -> pd.DataFrame:
    """Recorta e normaliza as linhas de `data` para as colunas pedidas."""
    total = len(data.rows)
    if total > max_rows:
        ctx.add_warning(
            step_id=step_id,
            message=f"{step_id}: processed only the first {max_rows} of {total} rows",
        )

    # dtype=object preserva os valores de origem (ints com nulos não viram float)
    frame = pd.DataFrame(list(data.rows[:max_rows]), dtype=object)
    frame = frame.reindex(columns=list(columns))
    for col in numeric:
        frame[col] = pd.to_numeric(frame[col], errors="coerce").fillna(0)
    return frame


def materialize(ctx: RunContext, view: str, frame: pd.DataFrame) -> int:
    """Cria (ou recria) `view` com o conteúdo de `frame`; retorna o número de linhas."""
    clean = frame.astype(object).where(frame.notna(), None)
    rows = list(clean.itertuples(index=False, name=None))
    for statement in create_view_statements(view, [str(c) for c in frame.columns], rows):
        ctx.query.query(statement)
    return len(rows)


def dataset_columns(data: RawDataset, required: Optional[Sequence[str]] = None) -> List[str]:
    """Colunas do schema seguidas das obrigatórias que faltarem."""
    columns = list(data.schema.columns)
    for col in required or ():
        if col not in columns:
            columns.append(col)
    return columns
