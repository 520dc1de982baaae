# pgboss_dashboard/client/route.py
"""
Where the operator is, and its address-bar fragment form.

Fragment grammar::

    overview
    queue/<name>
    queue/<name>/jobs[?search=&state=&from=&to=&page=]
    queue/<name>/jobs/<job_id>[?search=&state=&from=&to=&page=]

Names and ids are percent-encoded. Query parameters are only written when
they differ from their defaults.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl, quote, unquote, urlencode

from pgboss_dashboard.common.job import as_utc
from pgboss_dashboard.common.states import is_valid_state
from pgboss_dashboard.filters.criteria import FilterCriteria

logger = logging.getLogger(__name__)

OVERVIEW = "overview"
QUEUE_STATS = "queue_stats"
QUEUE_JOBS = "queue_jobs"
JOB_DETAIL = "job_detail"

VIEWS = (OVERVIEW, QUEUE_STATS, QUEUE_JOBS, JOB_DETAIL)
# Views that show the job list, and so carry filters and a page number.
LIST_VIEWS = (QUEUE_JOBS, JOB_DETAIL)


@dataclass(frozen=True)
class RouteState:
    view: str = OVERVIEW
    queue: Optional[str] = None
    filters: FilterCriteria = field(default_factory=FilterCriteria)
    page: int = 1
    job_id: Optional[str] = None

    def __post_init__(self):
        if self.view not in VIEWS:
            raise ValueError(f"Unknown view {self.view!r}")
        if not isinstance(self.page, int) or self.page < 1:
            raise ValueError("page must be a positive integer")
        if self.view == OVERVIEW and self.queue is not None:
            raise ValueError("The overview has no queue")
        if self.view != OVERVIEW and not self.queue:
            raise ValueError(f"{self.view} needs a queue")
        if self.view == JOB_DETAIL and not self.job_id:
            raise ValueError("job_detail needs a job id")
        if self.view != JOB_DETAIL and self.job_id is not None:
            raise ValueError("Only job_detail carries a job id")
        if self.view not in LIST_VIEWS and (not self.filters.is_default or self.page != 1):
            raise ValueError(f"{self.view} does not carry filters or a page")

    @property
    def shows_jobs(self) -> bool:
        return self.view in LIST_VIEWS

    def with_filters(self, filters: FilterCriteria) -> "RouteState":
        """Same view with new filters; the page goes back to 1."""
        return replace(self, filters=filters, page=1)


def _query_params(route: RouteState) -> List[Tuple[str, str]]:
    params = []
    filters = route.filters
    if filters.search:
        params.append(("search", filters.search))
    if filters.state:
        params.append(("state", filters.state))
    if filters.date_from:
        params.append(("from", filters.date_from.isoformat()))
    if filters.date_to:
        params.append(("to", filters.date_to.isoformat()))
    if route.page > 1:
        params.append(("page", str(route.page)))
    return params


def serialize(route: RouteState) -> str:
    if route.view == OVERVIEW:
        return "overview"
    path = f"queue/{quote(route.queue, safe='')}"
    if route.view == QUEUE_STATS:
        return path
    path += "/jobs"
    if route.view == JOB_DETAIL:
        path += f"/{quote(route.job_id, safe='')}"
    params = _query_params(route)
    if params:
        return f"{path}?{urlencode(params, quote_via=quote)}"
    return path


def _parse_datetime(value: str) -> Optional[datetime]:
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        logger.debug(f"Dropping malformed date {value!r} from route")
        return None


def _parse_page(value: Optional[str]) -> int:
    if value is None:
        return 1
    try:
        page = int(value)
    except ValueError:
        return 1
    return page if page >= 1 else 1


def _parse_params(query: str) -> Tuple[FilterCriteria, int]:
    values = {}
    for key, value in parse_qsl(query, keep_blank_values=False):
        values.setdefault(key, value)
    state = values.get("state")
    if state is not None and not is_valid_state(state):
        state = None
    criteria = FilterCriteria(
        search=values.get("search", ""),
        state=state,
        date_from=_parse_datetime(values["from"]) if "from" in values else None,
        date_to=_parse_datetime(values["to"]) if "to" in values else None,
    )
    return criteria, _parse_page(values.get("page"))


def parse(fragment: str) -> RouteState:
    """
    Route for an address-bar fragment. Anything that does not fit the grammar
    falls back to the overview; bad query parameters are dropped.
    """
    fragment = fragment.lstrip("#")
    path, _, query = fragment.partition("?")
    parts = path.split("/")
    while len(parts) > 1 and parts[-1] == "":
        parts.pop()
    parts = [unquote(part) for part in parts]

    if parts[0] != "queue" or len(parts) < 2 or not parts[1]:
        return RouteState()
    queue = parts[1]
    if len(parts) == 2:
        return RouteState(view=QUEUE_STATS, queue=queue)
    if parts[2] != "jobs" or len(parts) > 4:
        return RouteState()
    filters, page = _parse_params(query)
    if len(parts) == 4 and parts[3]:
        return RouteState(JOB_DETAIL, queue, filters, page, job_id=parts[3])
    return RouteState(QUEUE_JOBS, queue, filters, page)
