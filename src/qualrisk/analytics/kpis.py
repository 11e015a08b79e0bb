from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from qualrisk.records import round_half_up

DEFAULT_HISTOGRAM_BINS = 10
PERCENTILE_RANK = 0.9


@dataclass(frozen=True)
class RunKpis:
    total: int
    pass_count: int
    watch_count: int
    fail_count: int
    avg_risk: int
    p90_risk: int
    histogram: tuple[int, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "pass": self.pass_count,
            "watch": self.watch_count,
            "fail": self.fail_count,
            "avg_risk": self.avg_risk,
            "p90_risk": self.p90_risk,
            "histogram": list(self.histogram),
        }


def _to_int_array(values: pd.Series | np.ndarray) -> np.ndarray:
    if isinstance(values, pd.Series):
        return pd.to_numeric(values, errors="coerce").fillna(0).to_numpy(dtype=np.int64)
    return np.asarray(values, dtype=np.int64)


def nearest_rank_percentile(values: pd.Series | np.ndarray, rank: float = PERCENTILE_RANK) -> int:
    """Value at ``floor(rank * (n - 1))`` of the ascending sort, no interpolation."""
    scores = np.sort(_to_int_array(values), kind="stable")
    if scores.size == 0:
        return 0
    return int(scores[math.floor(rank * (scores.size - 1))])


def risk_histogram(
    values: pd.Series | np.ndarray,
    bins: int = DEFAULT_HISTOGRAM_BINS,
) -> tuple[int, ...]:
    if bins < 1:
        raise ValueError(f"Histogram needs at least 1 bin, got {bins}")
    scores = _to_int_array(values)
    fractions = np.clip(scores / 100.0, 0.0, 1.0)
    indices = np.minimum(np.floor(fractions * bins).astype(np.int64), bins - 1)
    counts = np.bincount(indices, minlength=bins)
    return tuple(int(count) for count in counts)


def compute_kpis(df: pd.DataFrame, bins: int = DEFAULT_HISTOGRAM_BINS) -> RunKpis:
    total = int(len(df))
    if total == 0:
        return RunKpis(
            total=0,
            pass_count=0,
            watch_count=0,
            fail_count=0,
            avg_risk=0,
            p90_risk=0,
            histogram=risk_histogram(np.array([], dtype=np.int64), bins=bins),
        )

    status_counts = df["status"].value_counts()
    scores = _to_int_array(df["risk_score"])
    return RunKpis(
        total=total,
        pass_count=int(status_counts.get("Pass", 0)),
        watch_count=int(status_counts.get("Watch", 0)),
        fail_count=int(status_counts.get("Fail", 0)),
        avg_risk=round_half_up(float(scores.sum()) / total),
        p90_risk=nearest_rank_percentile(scores),
        histogram=risk_histogram(scores, bins=bins),
    )
