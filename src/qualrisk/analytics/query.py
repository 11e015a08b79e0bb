from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import get_args

from qualrisk.config import SortKey
from qualrisk.records import STATUSES, normalize_status

LOGGER = logging.getLogger(__name__)

ALL_PROGRAMS = "All"
DEFAULT_SORT: SortKey = "risk_desc"
SORT_KEYS: tuple[str, ...] = get_args(SortKey)


@dataclass(frozen=True)
class RunQuery:
    """Immutable filter/sort selection applied by ``analyze``."""

    statuses: frozenset[str] = field(default_factory=lambda: frozenset(STATUSES))
    program: str = ALL_PROGRAMS
    text: str = ""
    sort: SortKey = DEFAULT_SORT

    def __post_init__(self) -> None:
        normalized = {normalize_status(status) for status in self.statuses}
        unknown = normalized - set(STATUSES)
        if unknown:
            LOGGER.warning("Ignoring unknown statuses: %s", ", ".join(sorted(unknown)))
        statuses = frozenset(normalized & set(STATUSES))
        if not statuses:
            statuses = frozenset(STATUSES)
        object.__setattr__(self, "statuses", statuses)
        object.__setattr__(self, "program", self.program or ALL_PROGRAMS)
        object.__setattr__(self, "text", self.text or "")
        if self.sort not in SORT_KEYS:
            LOGGER.warning("Unknown sort key %r; using %s", self.sort, DEFAULT_SORT)
            object.__setattr__(self, "sort", DEFAULT_SORT)

    @classmethod
    def default(cls, sort: SortKey = DEFAULT_SORT) -> RunQuery:
        return cls(sort=sort)

    @classmethod
    def build(
        cls,
        statuses: Iterable[str] | None = None,
        program: str | None = None,
        text: str | None = None,
        sort: str | None = None,
    ) -> RunQuery:
        return cls(
            statuses=frozenset(statuses) if statuses else frozenset(STATUSES),
            program=program or ALL_PROGRAMS,
            text=text or "",
            sort=sort or DEFAULT_SORT,  # type: ignore[arg-type]
        )

    def toggle_status(self, status: str) -> RunQuery:
        """Flip one status; a toggle that would leave no status selected is ignored."""
        status = normalize_status(status)
        if status not in STATUSES:
            return self
        if status in self.statuses:
            remaining = self.statuses - {status}
            if not remaining:
                return self
            return replace(self, statuses=remaining)
        return replace(self, statuses=self.statuses | {status})

    def with_program(self, program: str) -> RunQuery:
        return replace(self, program=program)

    def with_text(self, text: str) -> RunQuery:
        return replace(self, text=text)

    def with_sort(self, sort: SortKey) -> RunQuery:
        return replace(self, sort=sort)

    def to_dict(self) -> dict[str, object]:
        return {
            "statuses": [status for status in STATUSES if status in self.statuses],
            "program": self.program,
            "text": self.text,
            "sort": self.sort,
        }
