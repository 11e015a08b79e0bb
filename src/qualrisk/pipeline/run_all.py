from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from qualrisk.analytics.analyze import AnalysisResult, analyze, program_options
from qualrisk.analytics.query import RunQuery
from qualrisk.config import AppConfig
from qualrisk.io.read import load_runs
from qualrisk.io.write import table_path, write_summary, write_table
from qualrisk.paths import build_output_paths
from qualrisk.records import RunRecord, records_to_frame
from qualrisk.signals.derive import DerivedSignalSet, derive_signals, quick_indicators
from qualrisk.signals.series import sparkline

LOGGER = logging.getLogger(__name__)


def _signal_file_name(run_id: str) -> str:
    return (re.sub(r"[^A-Za-z0-9._-]", "_", run_id) or "run") + ".json"


def signal_file_names(run_ids: Sequence[str]) -> list[str]:
    """One distinct JSON file name per run; colliding names get a numeric suffix."""
    names: list[str] = []
    used: set[str] = set()
    for run_id in run_ids:
        name = _signal_file_name(run_id)
        if name in used:
            stem = name[: -len(".json")]
            counter = 2
            while f"{stem}__{counter}.json" in used:
                counter += 1
            renamed = f"{stem}__{counter}.json"
            LOGGER.warning(
                "Signal file %s already used; writing run %r to %s", name, run_id, renamed
            )
            name = renamed
        used.add(name)
        names.append(name)
    return names


def derive_for_record(record: RunRecord, config: AppConfig) -> DerivedSignalSet:
    return derive_signals(
        record.id,
        record.risk_score,
        record.context,
        series_length=config.signals.series_length,
    )


def build_runs_table(records: Sequence[RunRecord], config: AppConfig) -> pd.DataFrame:
    runs = records_to_frame(records)
    points = config.signals.sparkline_points
    runs["sparkline"] = [
        " ".join(f"{value:.4f}" for value in sparkline(record.id, record.risk_score, points))
        for record in records
    ]
    indicators = pd.DataFrame([quick_indicators(record.risk_score) for record in records])
    if not indicators.empty:
        runs = pd.concat([runs, indicators], axis=1)
    return runs


def build_signals_table(signal_sets: Sequence[DerivedSignalSet]) -> pd.DataFrame:
    rows = []
    for signals in signal_sets:
        row: dict[str, object] = {"run_id": signals.run_id, "risk": signals.risk}
        row.update(signals.sub_scores)
        row["anomaly_count"] = signals.anomaly_count
        row["pore_count"] = signals.predictions.pore_count
        row["relative_density"] = signals.predictions.relative_density
        row["first_pass_yield"] = signals.predictions.first_pass_yield
        row["top_drivers"] = ",".join(driver.name for driver in signals.top_drivers)
        row["disposition"] = signals.disposition.code
        rows.append(row)
    return pd.DataFrame(rows)


def build_series_table(signal_sets: Sequence[DerivedSignalSet]) -> pd.DataFrame:
    rows = [
        {"run_id": signals.run_id, "series": name, "step": step, "value": value}
        for signals in signal_sets
        for name, values in signals.series.items()
        for step, value in enumerate(values)
    ]
    return pd.DataFrame(rows, columns=["run_id", "series", "step", "value"])


def run_analysis(
    records: Sequence[RunRecord],
    out_dir: Path,
    config: AppConfig,
    query: RunQuery | None = None,
) -> AnalysisResult:
    paths = build_output_paths(out_dir)
    fmt = config.outputs.tables_format
    query = query or RunQuery.default(sort=config.analytics.default_sort)

    result = analyze(records, query, bins=config.analytics.histogram_bins)
    signal_sets = [derive_for_record(record, config) for record in result.records]

    tables = {
        "runs": build_runs_table(result.records, config),
        "signals": build_signals_table(signal_sets),
        "series": build_series_table(signal_sets),
    }
    for name, table in tables.items():
        write_table(table, table_path(paths.tables, name, fmt), fmt=fmt)
    file_names = signal_file_names([signals.run_id for signals in signal_sets])
    for signals, file_name in zip(signal_sets, file_names):
        write_summary(signals.to_dict(), paths.signals / file_name)

    summary = result.to_dict()
    summary["programs"] = program_options(records)
    write_summary(summary, paths.summary / "kpis.json")
    LOGGER.info(
        "Wrote outputs for %d of %d runs to %s",
        len(result.records),
        len(records),
        paths.root,
    )
    return result


def run_all(
    runs_path: Path,
    out_dir: Path,
    config: AppConfig,
    query: RunQuery | None = None,
) -> Path:
    records = load_runs(runs_path, config)
    run_analysis(records, out_dir=out_dir, config=config, query=query)
    return build_output_paths(out_dir).summary / "kpis.json"
