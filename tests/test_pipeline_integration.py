from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd
import pytest

from qualrisk.analytics.query import RunQuery
from qualrisk.config import AppConfig
from qualrisk.pipeline.run_all import run_all, signal_file_names


def _write_runs(tmp_path: Path) -> Path:
    runs_path = tmp_path / "runs.json"
    rows = [
        ("RUN-0142", "Aerospace Part Demo", "2026-02-20", 71),
        ("RUN-0143", "Aerospace Part Demo", "2026-02-21", 28),
        ("RUN-0144", "Medical Implant", "2026-02-22", 89),
        ("RUN/0145", "Medical Implant", "2026-02-23", "n/a"),
    ]
    payload = [
        {"id": run_id, "program": program, "date": date, "riskScore": risk}
        for run_id, program, date, risk in rows
    ]
    runs_path.write_text(json.dumps(payload), encoding="utf-8")
    return runs_path


def test_run_all_writes_tables_signals_and_summary(tmp_path: Path) -> None:
    config = AppConfig.model_validate({"signals": {"series_length": 16, "sparkline_points": 8}})
    out_dir = tmp_path / "out"

    summary_path = run_all(_write_runs(tmp_path), out_dir=out_dir, config=config)

    summary = json.loads(summary_path.read_text(encoding="utf-8"))
    assert summary["run_ids"] == ["RUN-0144", "RUN-0142", "RUN-0143", "RUN/0145"]
    assert summary["kpis"]["total"] == 4
    assert summary["kpis"]["avg_risk"] == 47
    assert summary["programs"] == ["All", "Aerospace Part Demo", "Medical Implant"]
    assert summary["query"]["sort"] == "risk_desc"

    runs = pd.read_csv(out_dir / "tables" / "runs.csv")
    assert runs["id"].tolist() == summary["run_ids"]
    assert {"sparkline", "thermal_drift", "spatter_proxy", "recoater_risk"} <= set(runs.columns)
    assert all(len(str(line).split()) == 8 for line in runs["sparkline"])

    signals = pd.read_csv(out_dir / "tables" / "signals.csv")
    assert signals["run_id"].tolist() == summary["run_ids"]
    assert signals["disposition"].tolist() == ["hold", "enhanced", "proceed", "proceed"]

    series = pd.read_csv(out_dir / "tables" / "series.csv")
    assert len(series) == 4 * 3 * 16
    assert series["value"].between(0.0, 1.0).all()

    assert (out_dir / "signals" / "RUN-0142.json").exists()
    assert (out_dir / "signals" / "RUN_0145.json").exists()


def test_run_all_respects_query_and_is_reproducible(tmp_path: Path) -> None:
    config = AppConfig()
    runs_path = _write_runs(tmp_path)
    query = RunQuery(program="Medical Implant", sort="id")

    first = run_all(runs_path, out_dir=tmp_path / "first", config=config, query=query)
    second = run_all(runs_path, out_dir=tmp_path / "second", config=config, query=query)

    assert first.read_text(encoding="utf-8") == second.read_text(encoding="utf-8")
    summary = json.loads(first.read_text(encoding="utf-8"))
    assert summary["run_ids"] == ["RUN-0144", "RUN/0145"]
    assert summary["kpis"]["fail"] == 1
    assert summary["kpis"]["pass"] == 1
    assert (tmp_path / "first" / "signals" / "RUN-0144.json").read_text(encoding="utf-8") == (
        tmp_path / "second" / "signals" / "RUN-0144.json"
    ).read_text(encoding="utf-8")


def test_signal_file_names_stay_distinct() -> None:
    names = signal_file_names(["RUN/1", "RUN_1", "RUN_1", "RUN-2", ""])

    assert names == ["RUN_1.json", "RUN_1__2.json", "RUN_1__3.json", "RUN-2.json", "run.json"]


def test_run_all_keeps_one_signal_file_per_run(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    runs_path = tmp_path / "runs.json"
    payload = [
        {"id": "RUN/1", "riskScore": 80},
        {"id": "RUN_1", "riskScore": 50},
        {"id": "RUN_1", "riskScore": 20},
    ]
    runs_path.write_text(json.dumps(payload), encoding="utf-8")
    out_dir = tmp_path / "out"

    with caplog.at_level(logging.WARNING):
        run_all(runs_path, out_dir=out_dir, config=AppConfig())

    written = sorted(path.name for path in (out_dir / "signals").glob("*.json"))
    assert written == ["RUN_1.json", "RUN_1__2.json", "RUN_1__3.json"]
    first = json.loads((out_dir / "signals" / "RUN_1.json").read_text(encoding="utf-8"))
    last = json.loads((out_dir / "signals" / "RUN_1__3.json").read_text(encoding="utf-8"))
    assert (first["run_id"], first["risk"]) == ("RUN/1", 0.8)
    assert (last["run_id"], last["risk"]) == ("RUN_1", 0.2)
    assert "already used" in caplog.text
