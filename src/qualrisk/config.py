from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

SortKey = Literal["risk_desc", "risk_asc", "date_desc", "id"]


class ColumnsConfig(BaseModel):
    id: str = "id"
    program: str = "program"
    part: str = "part"
    material: str = "material"
    process: str = "process"
    date: str = "date"
    risk_score: str = "riskScore"
    status: str = "status"


class InputConfig(BaseModel):
    runs_path: str | None = None
    status_mode: Literal["derived", "provided"] = "derived"


class SignalsConfig(BaseModel):
    series_length: int = Field(default=32, ge=2)
    sparkline_points: int = Field(default=22, ge=2)


class AnalyticsConfig(BaseModel):
    histogram_bins: int = Field(default=10, ge=1)
    default_sort: SortKey = "risk_desc"


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    signals: SignalsConfig = Field(default_factory=SignalsConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    env_runs_path = os.getenv("QUALRISK_RUNS_PATH")
    config.input.runs_path = _resolve_optional_path(config.input.runs_path, base_dir) or (
        _resolve_optional_path(env_runs_path, Path.cwd())
    )
    return config
