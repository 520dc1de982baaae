# pgboss_dashboard/filters/criteria.py
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from pgboss_dashboard.common.job import as_utc

SORT_COLUMNS = (
    "id",
    "state",
    "priority",
    "retry_count",
    "created_on",
    "started_on",
    "completed_on",
    "duration",
)
ASC = "asc"
DESC = "desc"


@dataclass(frozen=True)
class FilterCriteria:
    """
    What the operator asked to see. Two equal criteria always filter a batch
    the same way.
    """

    search: str = ""
    state: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def __post_init__(self):
        # Keep every bound timezone-aware so criteria compare and round-trip.
        object.__setattr__(self, "date_from", as_utc(self.date_from))
        object.__setattr__(self, "date_to", as_utc(self.date_to))

    @property
    def is_default(self) -> bool:
        return self == FilterCriteria()

    def without(self, kind: str) -> "FilterCriteria":
        """Copy with one filter removed (search, state, date_from or date_to)."""
        defaults = {"search": "", "state": None, "date_from": None, "date_to": None}
        if kind not in defaults:
            raise ValueError(f"Unknown filter {kind!r}")
        return replace(self, **{kind: defaults[kind]})


@dataclass(frozen=True)
class SortSpec:
    column: str = "created_on"
    direction: str = DESC

    def __post_init__(self):
        if self.column not in SORT_COLUMNS:
            raise ValueError(f"Unknown sort column {self.column!r}")
        if self.direction not in (ASC, DESC):
            raise ValueError(f"Sort direction must be {ASC!r} or {DESC!r}")

    def toggled(self, column: str) -> "SortSpec":
        # Same column flips the direction, a new column starts descending.
        if column == self.column:
            return SortSpec(column, ASC if self.direction == DESC else DESC)
        return SortSpec(column, DESC)
