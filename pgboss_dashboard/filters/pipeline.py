# pgboss_dashboard/filters/pipeline.py
"""Client-side filtering and sorting of one fetched batch of jobs."""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, List, Optional

from pgboss_dashboard.common.job import Job, as_utc
from pgboss_dashboard.filters.criteria import ASC, FilterCriteria, SortSpec
from pgboss_dashboard.query.evaluator import matches, matches_text
from pgboss_dashboard.query.expressions import is_structured_query, strip_prefix
from pgboss_dashboard.query.parser import try_parse

logger = logging.getLogger(__name__)


def _search_predicate(search: str) -> Callable[[Job], bool]:
    if not search:
        return lambda job: True
    if is_structured_query(search):
        expression = try_parse(strip_prefix(search))
        if expression is None:
            return lambda job: False
        return lambda job: matches(job, expression)
    return lambda job: matches_text(job, search)


def _within_dates(job: Job, date_from: Optional[datetime], date_to: Optional[datetime]) -> bool:
    if date_from is None and date_to is None:
        return True
    if job.created_on is None:
        return False
    created_on = as_utc(job.created_on)
    if date_from is not None and created_on < as_utc(date_from):
        return False
    if date_to is not None and created_on > as_utc(date_to):
        return False
    return True


def filter_jobs(batch: Iterable[Job], criteria: FilterCriteria) -> List[Job]:
    predicate = _search_predicate(criteria.search)
    return [
        job
        for job in batch
        if (criteria.state is None or job.state == criteria.state)
        and _within_dates(job, criteria.date_from, criteria.date_to)
        and predicate(job)
    ]


def sort_key(job: Job, column: str) -> Any:
    """Sort value of ``job`` for ``column``; ``None`` means the value is missing."""
    if column == "duration":
        duration = job.duration
        return duration if duration is not None else timedelta(0)
    value = getattr(job, column)
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, datetime):
        return as_utc(value)
    return value


def sort_jobs(jobs: Iterable[Job], sort: SortSpec) -> List[Job]:
    present, missing = [], []
    for job in jobs:
        (missing if sort_key(job, sort.column) is None else present).append(job)
    # list.sort is stable for reverse=True as well, so ties keep input order.
    present.sort(key=lambda job: sort_key(job, sort.column), reverse=sort.direction != ASC)
    return present + missing


def apply(batch: Iterable[Job], criteria: FilterCriteria, sort: SortSpec) -> List[Job]:
    """Filter then sort a batch. The input is left untouched."""
    filtered = filter_jobs(batch, criteria)
    logger.debug(f"Pipeline kept {len(filtered)} jobs for {criteria!r} sorted by {sort!r}")
    return sort_jobs(filtered, sort)
