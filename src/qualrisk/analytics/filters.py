from __future__ import annotations

import pandas as pd

from qualrisk.analytics.query import ALL_PROGRAMS, RunQuery

SEARCH_FIELDS = ("id", "program", "part", "material", "date", "status")
SEARCH_SEPARATOR = " • "


def search_haystack(df: pd.DataFrame) -> pd.Series:
    if df.empty:
        return pd.Series([], index=df.index, dtype=object)
    parts = df[list(SEARCH_FIELDS)].fillna("").astype(str)
    haystack = parts[SEARCH_FIELDS[0]]
    for column in SEARCH_FIELDS[1:]:
        haystack = haystack + SEARCH_SEPARATOR + parts[column]
    return haystack.str.lower()


def filter_runs(df: pd.DataFrame, query: RunQuery) -> pd.DataFrame:
    if df.empty:
        return df
    mask = df["status"].isin(query.statuses)
    if query.program != ALL_PROGRAMS:
        mask &= df["program"] == query.program

    needle = query.text.strip().lower()
    if needle:
        mask &= search_haystack(df).str.contains(needle, regex=False)
    return df.loc[mask]


def sort_runs(df: pd.DataFrame, query: RunQuery) -> pd.DataFrame:
    """Stable ordering; ``date_desc`` compares raw strings, so only ISO dates sort by time."""
    if query.sort == "risk_desc":
        return df.sort_values("risk_score", ascending=False, kind="stable")
    if query.sort == "risk_asc":
        return df.sort_values("risk_score", ascending=True, kind="stable")
    if query.sort == "date_desc":
        return df.sort_values("date", ascending=False, kind="stable")
    return df.sort_values("id", ascending=True, kind="stable")
