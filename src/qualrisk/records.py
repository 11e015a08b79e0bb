from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any, Literal

import pandas as pd

LOGGER = logging.getLogger(__name__)

Status = Literal["Pass", "Watch", "Fail"]
STATUSES: tuple[Status, ...] = ("Fail", "Watch", "Pass")

FAIL_THRESHOLD = 70
WATCH_THRESHOLD = 40
RISK_SCALE_MAX = 100

STRING_FIELDS = ("id", "program", "part", "material", "process", "date")


@dataclass(frozen=True)
class RunRecord:
    id: str
    program: str = ""
    part: str = ""
    material: str = ""
    process: str = ""
    date: str = ""
    risk_score: int = 0
    status: Status = "Pass"

    @property
    def context(self) -> tuple[str, ...]:
        """Descriptive fields mixed into the per-record signal seed."""
        return (self.program, self.part, self.material, self.process, self.date)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_status(value: Any) -> str:
    return _coerce_text(value).strip().capitalize()


def derive_status(risk_score: float) -> Status:
    if risk_score >= FAIL_THRESHOLD:
        return "Fail"
    if risk_score >= WATCH_THRESHOLD:
        return "Watch"
    return "Pass"


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value)


def coerce_number(value: Any) -> float:
    """Finite float for ``value``; booleans and unusable input become 0.0."""
    if isinstance(value, bool):
        return 0.0
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(numeric):
        return 0.0
    return numeric


def coerce_risk_score(value: Any) -> int:
    """Map any raw risk value onto an integer in [0, 100]; unusable input is 0."""
    numeric = coerce_number(value)
    return min(RISK_SCALE_MAX, max(0, round_half_up(numeric)))


def normalize_record(
    raw: Mapping[str, Any],
    *,
    status_mode: Literal["derived", "provided"] = "derived",
) -> RunRecord:
    fields = {name: _coerce_text(raw.get(name)) for name in STRING_FIELDS}
    risk_score = coerce_risk_score(raw.get("risk_score"))

    status: Status = derive_status(risk_score)
    if status_mode == "provided":
        supplied = normalize_status(raw.get("status"))
        if supplied in STATUSES:
            status = supplied  # type: ignore[assignment]

    return RunRecord(risk_score=risk_score, status=status, **fields)


def normalize_records(
    rows: Iterable[Mapping[str, Any]],
    *,
    status_mode: Literal["derived", "provided"] = "derived",
) -> list[RunRecord]:
    records = [normalize_record(row, status_mode=status_mode) for row in rows]
    seen: set[str] = set()
    duplicates: set[str] = set()
    for record in records:
        if record.id in seen:
            duplicates.add(record.id)
        seen.add(record.id)
    if duplicates:
        LOGGER.warning("Duplicate run ids in input: %s", ", ".join(sorted(duplicates)))
    return records


def records_from_frame(
    df: pd.DataFrame,
    *,
    status_mode: Literal["derived", "provided"] = "derived",
) -> list[RunRecord]:
    rows = df.to_dict(orient="records")
    return normalize_records(rows, status_mode=status_mode)


def records_to_frame(records: Iterable[RunRecord]) -> pd.DataFrame:
    columns = [*STRING_FIELDS, "risk_score", "status"]
    return pd.DataFrame([record.to_dict() for record in records], columns=columns)
