# pgboss_dashboard/client/router.py
import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple

from pgboss_dashboard.client.history import History
from pgboss_dashboard.client.route import (
    JOB_DETAIL,
    OVERVIEW,
    QUEUE_JOBS,
    QUEUE_STATS,
    RouteState,
    parse,
    serialize,
)
from pgboss_dashboard.filters.criteria import FilterCriteria

logger = logging.getLogger(__name__)

# Sources of a route change
NAVIGATE = "navigate"
REPLACE = "replace"
HISTORY = "history"
LOAD = "load"


@dataclass(frozen=True)
class RouteChange:
    previous: RouteState
    current: RouteState
    source: str

    @property
    def queue_changed(self) -> bool:
        return self.previous.queue != self.current.queue


RouteListener = Callable[[RouteChange], None]


class Router:
    """
    Owns the current RouteState and keeps the address bar in step with it.

    Moving between views pushes a history entry; filter and page changes
    replace the current one so back/forward skips keystrokes.
    """

    def __init__(self, history: History):
        self.history = history
        self.route = RouteState()
        self._listeners: List[RouteListener] = []
        # Jobs-tab filters and page per queue, kept while the stats tab is shown.
        self._parked: Dict[str, Tuple[FilterCriteria, int]] = {}
        history.subscribe(self.handle_fragment)

    def subscribe(self, listener: RouteListener) -> None:
        self._listeners.append(listener)

    def start(self) -> RouteState:
        """Read the route from the address bar as it is on page load."""
        return self.handle_fragment(self.history.current, source=LOAD)

    def _apply(self, route: RouteState, source: str) -> RouteState:
        previous = self.route
        self.route = route
        if previous != route:
            logger.debug(f"Route {serialize(previous)} -> {serialize(route)} ({source})")
            change = RouteChange(previous, route, source)
            for listener in list(self._listeners):
                listener(change)
        return route

    def _push(self, route: RouteState) -> RouteState:
        fragment = serialize(route)
        if fragment != self.history.current:
            self.history.push(fragment)
        return self._apply(route, NAVIGATE)

    def _replace(self, route: RouteState) -> RouteState:
        self.history.replace(serialize(route))
        return self._apply(route, REPLACE)

    def handle_fragment(self, fragment: str, source: str = HISTORY) -> RouteState:
        """Inbound navigation: back/forward, a typed fragment or page load."""
        route = parse(fragment)
        canonical = serialize(route)
        if canonical != fragment.lstrip("#"):
            logger.debug(f"Normalized fragment {fragment!r} to {canonical!r}")
            self.history.replace(canonical)
        return self._apply(route, source)

    def navigate(
        self,
        view: str,
        queue: Optional[str] = None,
        job_id: Optional[str] = None,
        filters: Optional[FilterCriteria] = None,
        page: Optional[int] = None,
    ) -> RouteState:
        route = RouteState(
            view=view,
            queue=queue,
            filters=filters or FilterCriteria(),
            page=page or 1,
            job_id=job_id,
        )
        return self._push(route)

    def set_filters(self, criteria: FilterCriteria) -> RouteState:
        route = self.route
        if route.view == OVERVIEW:
            raise ValueError("The overview has no job filters")
        if route.view == QUEUE_STATS:
            self._parked[route.queue] = (criteria, 1)
            return route
        return self._replace(route.with_filters(criteria))

    def update_filters(self, **changes) -> RouteState:
        return self.set_filters(replace(self.current_filters(), **changes))

    def current_filters(self) -> FilterCriteria:
        route = self.route
        if route.view == QUEUE_STATS:
            return self._parked.get(route.queue, (FilterCriteria(), 1))[0]
        return route.filters

    def set_page(self, page: int) -> RouteState:
        if not self.route.shows_jobs:
            raise ValueError(f"{self.route.view} has no pages")
        if page < 1:
            raise ValueError("page must be a positive integer")
        return self._replace(replace(self.route, page=page))

    def next_page(self) -> RouteState:
        return self.set_page(self.route.page + 1)

    def previous_page(self) -> RouteState:
        if self.route.page <= 1:
            return self.route
        return self.set_page(self.route.page - 1)

    def show_overview(self) -> RouteState:
        return self.navigate(OVERVIEW)

    def select_queue(self, queue: str) -> RouteState:
        if queue == self.route.queue:
            return self.route
        return self.navigate(QUEUE_STATS, queue=queue)

    def show_stats(self) -> RouteState:
        route = self.route
        if route.queue is None:
            raise ValueError("No queue selected")
        if route.shows_jobs:
            self._parked[route.queue] = (route.filters, route.page)
        return self.navigate(QUEUE_STATS, queue=route.queue)

    def show_jobs(self) -> RouteState:
        route = self.route
        if route.queue is None:
            raise ValueError("No queue selected")
        if route.view == QUEUE_JOBS:
            return route
        if route.view == JOB_DETAIL:
            return self.close_job()
        filters, page = self._parked.pop(route.queue, (FilterCriteria(), 1))
        return self.navigate(QUEUE_JOBS, queue=route.queue, filters=filters, page=page)

    def open_job(self, job_id: str) -> RouteState:
        route = self.route
        if route.queue is None:
            raise ValueError("No queue selected")
        if route.shows_jobs:
            filters, page = route.filters, route.page
        else:
            filters, page = self._parked.pop(route.queue, (FilterCriteria(), 1))
        return self.navigate(JOB_DETAIL, queue=route.queue, job_id=job_id, filters=filters, page=page)

    def close_job(self) -> RouteState:
        route = self.route
        if route.view != JOB_DETAIL:
            return route
        return self.navigate(QUEUE_JOBS, queue=route.queue, filters=route.filters, page=route.page)
