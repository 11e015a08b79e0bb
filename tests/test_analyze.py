from __future__ import annotations

from collections import Counter

import pytest

from qualrisk.analytics.analyze import analyze, program_options
from qualrisk.analytics.query import RunQuery
from qualrisk.records import RunRecord, normalize_record


def _dashboard_runs() -> list[RunRecord]:
    return [
        normalize_record({"id": "RUN-0142", "risk_score": 71}),
        normalize_record({"id": "RUN-0143", "risk_score": 28}),
        normalize_record({"id": "RUN-0144", "risk_score": 89}),
    ]


def _mixed_runs() -> list[RunRecord]:
    rows = [
        ("RUN-0201", "Aerospace Part Demo", "Bracket A", "Ti-6Al-4V", "2026-02-20", 55),
        ("RUN-0202", "Medical Implant", "Cup Liner", "CoCr", "2026-01-03", 55),
        ("RUN-0203", "Aerospace Part Demo", "Manifold B", "Inconel 718", "2026-03-11", 12),
        ("RUN-0204", "Medical Implant", "Stem", "Ti-6Al-4V", "2026-02-28", 93),
        ("RUN-0205", "Energy", "Swirler", "Hastelloy X", "2025-12-30", 55),
    ]
    return [
        normalize_record(
            {
                "id": run_id,
                "program": program,
                "part": part,
                "material": material,
                "process": "LPBF",
                "date": date,
                "risk_score": risk,
            }
        )
        for run_id, program, part, material, date, risk in rows
    ]


def test_dashboard_example_orders_by_risk_and_summarizes() -> None:
    query = RunQuery(statuses=frozenset({"Fail", "Watch", "Pass"}), program="All", text="")

    result = analyze(_dashboard_runs(), query)

    assert result.run_ids == ["RUN-0144", "RUN-0142", "RUN-0143"]
    assert result.kpis.total == 3
    assert result.kpis.avg_risk == 63
    assert result.kpis.p90_risk == 71
    assert result.kpis.fail_count == 2
    assert result.kpis.pass_count == 1
    assert result.kpis.histogram == (0, 0, 1, 0, 0, 0, 0, 1, 1, 0)
    assert result.query is query


@pytest.mark.parametrize("sort", ["risk_desc", "risk_asc", "date_desc", "id"])
def test_unfiltered_analysis_is_a_permutation(sort: str) -> None:
    records = _mixed_runs()

    result = analyze(records, RunQuery(sort=sort))  # type: ignore[arg-type]

    assert Counter(result.run_ids) == Counter(record.id for record in records)
    assert result.kpis.total == len(result.records)


def test_analysis_is_idempotent() -> None:
    records = _mixed_runs()
    query = RunQuery(text="ti-6al", sort="date_desc")

    assert analyze(records, query) == analyze(records, query)


def test_risk_sorts_are_stable_for_ties() -> None:
    records = _mixed_runs()

    descending = analyze(records, RunQuery(sort="risk_desc")).run_ids
    ascending = analyze(records, RunQuery(sort="risk_asc")).run_ids

    assert descending == ["RUN-0204", "RUN-0201", "RUN-0202", "RUN-0205", "RUN-0203"]
    assert ascending == ["RUN-0203", "RUN-0201", "RUN-0202", "RUN-0205", "RUN-0204"]


def test_date_and_id_sorts_compare_strings() -> None:
    records = _mixed_runs()

    by_date = analyze(records, RunQuery(sort="date_desc")).run_ids
    by_id = analyze(list(reversed(records)), RunQuery(sort="id")).run_ids

    assert by_date == ["RUN-0203", "RUN-0204", "RUN-0201", "RUN-0202", "RUN-0205"]
    assert by_id == ["RUN-0201", "RUN-0202", "RUN-0203", "RUN-0204", "RUN-0205"]


def test_filters_combine_status_program_and_text() -> None:
    records = _mixed_runs()

    by_program = analyze(records, RunQuery(program="Medical Implant"))
    assert by_program.run_ids == ["RUN-0204", "RUN-0202"]

    by_status = analyze(records, RunQuery(statuses=frozenset({"Watch"}), sort="id"))
    assert by_status.run_ids == ["RUN-0201", "RUN-0202", "RUN-0205"]

    by_text = analyze(records, RunQuery(text="  TI-6AL-4V ", sort="id"))
    assert by_text.run_ids == ["RUN-0201", "RUN-0204"]

    by_status_word = analyze(records, RunQuery(text="fail"))
    assert by_status_word.run_ids == ["RUN-0204"]

    nothing = analyze(records, RunQuery(program="Automotive"))
    assert nothing.run_ids == []
    assert nothing.kpis.total == 0


def test_empty_input_yields_zero_kpis() -> None:
    result = analyze([], RunQuery.default())

    assert result.records == ()
    assert result.kpis.total == 0
    assert result.kpis.avg_risk == 0
    assert result.kpis.p90_risk == 0
    assert sum(result.kpis.histogram) == 0


def test_program_options_lists_wildcard_then_sorted_programs() -> None:
    records = [*_mixed_runs(), normalize_record({"id": "RUN-0300", "program": ""})]

    assert program_options(records) == ["All", "Aerospace Part Demo", "Energy", "Medical Implant"]
