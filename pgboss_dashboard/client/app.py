# pgboss_dashboard/client/app.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Tuple

from pgboss_dashboard.client.debounce import SEARCH_DELAY, Debouncer
from pgboss_dashboard.client.history import History, MemoryHistory
from pgboss_dashboard.client.refresh import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_REFRESH_INTERVAL,
    DashboardView,
    RefreshController,
    Renderer,
)
from pgboss_dashboard.client.route import JOB_DETAIL, OVERVIEW, QUEUE_STATS, RouteState
from pgboss_dashboard.client.router import LOAD, RouteChange, Router
from pgboss_dashboard.client.selection import SelectionSet
from pgboss_dashboard.client.sources import JobSource
from pgboss_dashboard.common.intervals import DEFAULT_INTERVAL, interval_names
from pgboss_dashboard.common.states import is_valid_state, states_for_scope
from pgboss_dashboard.export import export_filename, jobs_to_csv
from pgboss_dashboard.filters.criteria import SortSpec
from pgboss_dashboard.filters.pipeline import filter_jobs
from pgboss_dashboard.query.encoder import encode_query

logger = logging.getLogger(__name__)

EXPORT_LIMIT = 10000


@dataclass
class AppState:
    """The one owner of UI state, passed to whoever needs it."""

    router: Router
    selection: SelectionSet = field(default_factory=SelectionSet)
    sort: SortSpec = field(default_factory=SortSpec)
    interval: str = DEFAULT_INTERVAL
    view: Optional[DashboardView] = None
    notice: Optional[str] = None

    @property
    def route(self) -> RouteState:
        return self.router.route


class Dashboard:
    """
    Event handlers of the dashboard.

    Each handler changes state synchronously and schedules a refresh, so
    handlers must be called from code running on the event loop.
    """

    def __init__(
        self,
        source: JobSource,
        renderer: Renderer,
        history: Optional[History] = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        page_size: int = DEFAULT_PAGE_SIZE,
        search_delay: float = SEARCH_DELAY,
    ):
        self.source = source
        self.renderer = renderer
        self.history = history or MemoryHistory()
        self.state = AppState(router=Router(self.history))
        self.controller = RefreshController(
            self.state, source, renderer, interval=refresh_interval, page_size=page_size
        )
        self.search = Debouncer(search_delay, self._apply_search)
        self.state.router.subscribe(self._on_route_change)

    @property
    def router(self) -> Router:
        return self.state.router

    @property
    def selection(self) -> SelectionSet:
        return self.state.selection

    def _on_route_change(self, change: RouteChange) -> None:
        if change.queue_changed:
            self.selection.clear()
        # start() refreshes once the initial route is read
        if change.source != LOAD:
            self.controller.request_refresh(change.source)

    async def start(self, auto_refresh: bool = True) -> Optional[DashboardView]:
        self.router.start()
        view = await self.controller.refresh("load")
        if auto_refresh:
            self.controller.start()
        return view

    async def stop(self) -> None:
        self.search.cancel()
        await self.controller.stop()
        await self.controller.wait()

    async def refresh(self) -> Optional[DashboardView]:
        return await self.controller.refresh("manual")

    # Navigation

    def select_queue(self, queue: str) -> RouteState:
        return self.router.select_queue(queue)

    def show_overview(self) -> RouteState:
        return self.router.show_overview()

    def show_stats(self) -> RouteState:
        return self.router.show_stats()

    def show_jobs(self) -> RouteState:
        return self.router.show_jobs()

    def open_job(self, job_id: str) -> RouteState:
        return self.router.open_job(job_id)

    def close_job(self) -> RouteState:
        return self.router.close_job()

    def next_page(self) -> RouteState:
        return self.router.next_page()

    def previous_page(self) -> RouteState:
        return self.router.previous_page()

    # Filters

    def on_search_input(self, text: str) -> None:
        self.search.trigger(text)

    def _apply_search(self, text: str) -> None:
        if self.state.route.view == OVERVIEW:
            return
        self.router.update_filters(search=text)

    def set_state_filter(self, state_name: Optional[str]) -> RouteState:
        if state_name and not is_valid_state(state_name):
            raise ValueError(f"Unknown job state {state_name!r}")
        return self.router.update_filters(state=state_name or None)

    def set_date_range(
        self, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None
    ) -> RouteState:
        return self.router.update_filters(date_from=date_from, date_to=date_to)

    def remove_filter(self, kind: str) -> RouteState:
        return self.router.set_filters(self.router.current_filters().without(kind))

    def filter_by_value(self, path, value: Any) -> RouteState:
        """Show only the jobs whose ``path`` equals ``value``."""
        query = encode_query(path, value)
        route = self.state.route
        if route.view == OVERVIEW:
            raise ValueError("Select a queue before filtering its jobs")
        if route.view == JOB_DETAIL:
            self.router.close_job()
        elif route.view == QUEUE_STATS:
            self.router.show_jobs()
        self.search.cancel()
        return self.router.update_filters(search=query)

    def sort_by(self, column: str) -> SortSpec:
        self.state.sort = self.state.sort.toggled(column)
        self.controller.request_refresh("sort")
        return self.state.sort

    def set_interval(self, name: str) -> str:
        if name not in interval_names():
            raise ValueError(f"Unknown interval {name!r}")
        self.state.interval = name
        self.controller.request_refresh("interval")
        return name

    # Selection

    def visible_ids(self) -> List[str]:
        view = self.state.view
        if view is None or view.route != self.state.route:
            return []
        return view.visible_ids

    def toggle_selection_mode(self) -> bool:
        return self.selection.toggle_mode()

    def toggle_job(self, job_id: str) -> bool:
        return self.selection.toggle(job_id)

    def select_all(self, checked: bool = True) -> None:
        if checked:
            self.selection.select_all(self.visible_ids())
        else:
            self.selection.deselect_all(self.visible_ids())

    # Actions

    async def clear_queue(self, scope: str) -> int:
        queue = self.state.route.queue
        if queue is None:
            raise ValueError("No queue selected")
        states_for_scope(scope)
        deleted = await self.source.clear_queue(queue, scope)
        self.selection.clear()
        self.state.notice = f"Cleared {deleted} jobs from queue {queue}"
        logger.info(self.state.notice)
        await self.controller.refresh("clear")
        return deleted

    async def export_csv(self) -> Optional[Tuple[str, str]]:
        """
        Filename and CSV text of every job matching the current filters, or
        ``None`` when nothing matches.
        """
        route = self.state.route
        if route.queue is None:
            raise ValueError("No queue selected")
        criteria = self.router.current_filters()
        batch = await self.source.list_jobs(route.queue, state=criteria.state, limit=EXPORT_LIMIT)
        jobs = filter_jobs(batch, criteria)
        if not jobs:
            self.state.notice = "No jobs to export with current filters"
            return None
        logger.info(f"Exported {len(jobs)} jobs from queue {route.queue}")
        return export_filename(route.queue, criteria), jobs_to_csv(jobs)
