from __future__ import annotations

from dataclasses import asdict, dataclass

import pandas as pd

from qualrisk.config import ColumnsConfig


@dataclass(frozen=True)
class CanonicalColumns:
    id: str = "id"
    program: str = "program"
    part: str = "part"
    material: str = "material"
    process: str = "process"
    date: str = "date"
    risk_score: str = "risk_score"
    status: str = "status"


def normalize_columns(df: pd.DataFrame, columns: ColumnsConfig) -> pd.DataFrame:
    """Rename source columns to canonical names; only the id column is required."""
    rename_map = {
        columns.id: CanonicalColumns.id,
        columns.program: CanonicalColumns.program,
        columns.part: CanonicalColumns.part,
        columns.material: CanonicalColumns.material,
        columns.process: CanonicalColumns.process,
        columns.date: CanonicalColumns.date,
        columns.risk_score: CanonicalColumns.risk_score,
        columns.status: CanonicalColumns.status,
    }
    if df.empty and columns.id not in df.columns:
        # An empty records list carries no header to validate.
        return pd.DataFrame(columns=list(asdict(CanonicalColumns()).values()))
    if columns.id not in df.columns:
        raise ValueError(f"Missing required id column in runs input: {columns.id}")
    present = {source: target for source, target in rename_map.items() if source in df.columns}
    return df.rename(columns=present)
