from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from qualrisk.config import AppConfig
from qualrisk.io.schema import normalize_columns
from qualrisk.records import RunRecord, records_from_frame

LOGGER = logging.getLogger(__name__)


def _read_source(path: Path) -> pd.DataFrame:
    if path.suffix == ".csv":
        # Keep ids and dates as text; utf-8-sig strips BOM-prefixed headers.
        return pd.read_csv(path, encoding="utf-8-sig", dtype=str, keep_default_na=False)
    if path.suffix == ".json":
        return pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    raise ValueError(f"Unsupported runs file type: {path.suffix}")


def load_runs_frame(path: Path, config: AppConfig) -> pd.DataFrame:
    df = _read_source(path)
    return normalize_columns(df=df, columns=config.columns)


def load_runs(path: Path, config: AppConfig) -> list[RunRecord]:
    """Load run records from CSV/JSON and normalize them into typed records."""
    frame = load_runs_frame(path, config)
    records = records_from_frame(frame, status_mode=config.input.status_mode)
    LOGGER.info("Loaded %d runs from %s", len(records), path)
    return records


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        return pd.read_csv(path)
    raise ValueError(f"Unsupported table file type: {path.suffix}")
