from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from qualrisk.analytics.filters import filter_runs, sort_runs
from qualrisk.analytics.kpis import DEFAULT_HISTOGRAM_BINS, RunKpis, compute_kpis
from qualrisk.analytics.query import ALL_PROGRAMS, RunQuery
from qualrisk.records import RunRecord, records_to_frame


@dataclass(frozen=True)
class AnalysisResult:
    query: RunQuery
    records: tuple[RunRecord, ...]
    kpis: RunKpis

    @property
    def run_ids(self) -> list[str]:
        return [record.id for record in self.records]

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query.to_dict(),
            "run_ids": self.run_ids,
            "kpis": self.kpis.to_dict(),
        }


def analyze(
    records: Sequence[RunRecord],
    query: RunQuery | None = None,
    *,
    bins: int = DEFAULT_HISTOGRAM_BINS,
) -> AnalysisResult:
    """Filter, order, and summarize ``records``; the input sequence is left untouched."""
    query = query or RunQuery.default()
    frame = records_to_frame(records)

    selected = sort_runs(filter_runs(frame, query), query)
    ordered = tuple(records[position] for position in selected.index)
    return AnalysisResult(query=query, records=ordered, kpis=compute_kpis(selected, bins=bins))


def program_options(records: Sequence[RunRecord]) -> list[str]:
    programs = sorted({record.program for record in records if record.program})
    return [ALL_PROGRAMS, *programs]
