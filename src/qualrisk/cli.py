from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

import typer

from qualrisk.analytics.analyze import analyze
from qualrisk.analytics.query import RunQuery
from qualrisk.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from qualrisk.io.read import load_runs
from qualrisk.logging import configure_logging
from qualrisk.pipeline.run_all import derive_for_record, run_all
from qualrisk.records import RunRecord


class SortOption(str, Enum):
    risk_desc = "risk_desc"
    risk_asc = "risk_asc"
    date_desc = "date_desc"
    id = "id"


class StatusOption(str, Enum):
    Fail = "Fail"
    Watch = "Watch"
    Pass = "Pass"


app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _require_runs_path(runs: Path | None, cfg: AppConfig) -> Path:
    if runs is not None:
        return runs
    if cfg.input.runs_path:
        return Path(cfg.input.runs_path)
    raise typer.BadParameter(
        "Missing --runs. Pass a CSV/JSON runs file or set input.runs_path "
        "(or QUALRISK_RUNS_PATH)."
    )


def _build_query(
    cfg: AppConfig,
    status: list[StatusOption] | None,
    program: str | None,
    query: str | None,
    sort: SortOption | None,
) -> RunQuery:
    return RunQuery.build(
        statuses=[item.value for item in status] if status else None,
        program=program,
        text=query,
        sort=sort.value if sort is not None else cfg.analytics.default_sort,
    )


def _find_record(records: list[RunRecord], run_id: str) -> RunRecord:
    for record in records:
        if record.id == run_id:
            return record
    raise typer.BadParameter(f"Run id not found in input: {run_id}")


@app.command()
def summary(
    runs: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    status: list[StatusOption] | None = typer.Option(
        None,
        case_sensitive=False,
        help="Status to include (Fail, Watch, Pass). Repeat for several; defaults to all.",
    ),
    program: str | None = typer.Option(None, help="Program filter; 'All' disables it."),
    query: str | None = typer.Option(None, help="Case-insensitive search text."),
    sort: SortOption | None = typer.Option(
        None,
        help="Ordering of returned runs. Falls back to analytics.default_sort.",
    ),
) -> None:
    """Print KPI summary and ordered run ids for the filtered runs."""
    cfg = _load_app_config(config)
    configure_logging(cfg.logging.level)
    records = load_runs(_require_runs_path(runs, cfg), cfg)
    run_query = _build_query(cfg, status=status, program=program, query=query, sort=sort)
    result = analyze(records, run_query, bins=cfg.analytics.histogram_bins)

    kpis = result.kpis
    typer.echo(
        f"Runs: {kpis.total} (fail={kpis.fail_count} watch={kpis.watch_count} "
        f"pass={kpis.pass_count})"
    )
    typer.echo(f"- avg_risk: {kpis.avg_risk}")
    typer.echo(f"- p90_risk: {kpis.p90_risk}")
    typer.echo(f"- histogram: {' '.join(str(count) for count in kpis.histogram)}")
    for record in result.records:
        typer.echo(f"- {record.id} {record.status} {record.risk_score}")


@app.command()
def signals(
    run_id: str = typer.Argument(..., help="Run id to derive signals for."),
    runs: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Print the derived signal set for one run as JSON."""
    cfg = _load_app_config(config)
    configure_logging(cfg.logging.level)
    records = load_runs(_require_runs_path(runs, cfg), cfg)
    record = _find_record(records, run_id)
    typer.echo(json.dumps(derive_for_record(record, cfg).to_dict(), indent=2))


@app.command("run-all")
def run_all_command(
    runs: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    status: list[StatusOption] | None = typer.Option(
        None, case_sensitive=False, help="Status to include. Repeatable."
    ),
    program: str | None = typer.Option(None),
    query: str | None = typer.Option(None),
    sort: SortOption | None = typer.Option(None),
) -> None:
    """Analyze runs and write tables, per-run signal files, and the KPI summary."""
    cfg = _load_app_config(config)
    configure_logging(cfg.logging.level)
    runs_path = _require_runs_path(runs, cfg)
    run_query = _build_query(cfg, status=status, program=program, query=query, sort=sort)
    summary_path = run_all(runs_path=runs_path, out_dir=out, config=cfg, query=run_query)
    typer.echo(f"Run complete. Summary: {summary_path}")


if __name__ == "__main__":
    app()
