# pgboss_dashboard/client/refresh.py
"""
Fetch, filter and render the current route.

Several refreshes may be in flight at once (timer, user action, route
change). Each gets a ticket with an increasing sequence number and a
snapshot of what it was issued for; a response is applied only while its
ticket still describes the screen and nothing newer has been applied.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Set

from pgboss_dashboard.client.route import JOB_DETAIL, QUEUE_JOBS, RouteState
from pgboss_dashboard.client.sources import JobSource
from pgboss_dashboard.common.exceptions import StoreError
from pgboss_dashboard.common.job import Job, QueueSummary, StatsBucket
from pgboss_dashboard.filters.criteria import SortSpec
from pgboss_dashboard.filters.pipeline import apply

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 10.0
DEFAULT_PAGE_SIZE = 50


@dataclass
class DashboardView:
    """Everything a renderer needs for one screen."""

    route: RouteState
    queues: List[QueueSummary] = field(default_factory=list)
    stats: List[StatsBucket] = field(default_factory=list)
    jobs: List[Job] = field(default_factory=list)
    # Size of the batch before search and date filters
    fetched: int = 0
    has_more: bool = False
    job: Optional[Job] = None
    job_missing: bool = False
    seq: int = 0

    @property
    def visible_ids(self) -> List[str]:
        return [job.id for job in self.jobs]


class Renderer(ABC):
    @abstractmethod
    def render(self, view: DashboardView) -> None: ...

    @abstractmethod
    def show_error(self, message: str) -> None: ...


@dataclass(frozen=True)
class RefreshTicket:
    seq: int
    route: RouteState
    sort: SortSpec
    interval: str


class RefreshController:
    def __init__(
        self,
        state,
        source: JobSource,
        renderer: Renderer,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.state = state
        self.source = source
        self.renderer = renderer
        self.interval = interval
        self.page_size = page_size
        self._seq = 0
        self._applied_seq = 0
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def last_applied(self) -> int:
        return self._applied_seq

    def issue(self) -> RefreshTicket:
        self._seq += 1
        return RefreshTicket(
            seq=self._seq,
            route=self.state.router.route,
            sort=self.state.sort,
            interval=self.state.interval,
        )

    def is_current(self, ticket: RefreshTicket) -> bool:
        return (
            ticket.route == self.state.router.route
            and ticket.sort == self.state.sort
            and ticket.interval == self.state.interval
            and ticket.seq > self._applied_seq
        )

    async def fetch(self, ticket: RefreshTicket) -> DashboardView:
        route = ticket.route
        view = DashboardView(route=route, seq=ticket.seq)
        if route.view == JOB_DETAIL:
            view.job = await self.source.get_job(route.job_id)
            view.job_missing = view.job is None
        elif route.view == QUEUE_JOBS:
            batch = await self.source.list_jobs(
                route.queue,
                state=route.filters.state,
                limit=self.page_size,
                offset=(route.page - 1) * self.page_size,
            )
            view.fetched = len(batch)
            view.has_more = len(batch) == self.page_size
            view.jobs = apply(batch, route.filters, ticket.sort)
        else:
            view.queues = await self.source.list_queues()
            view.stats = await self.source.get_stats(ticket.interval, route.queue)
        return view

    async def refresh(self, reason: str = "manual") -> Optional[DashboardView]:
        """
        Fetch and render the current route. Returns the applied view, or
        ``None`` when the response was stale or the fetch failed.
        """
        ticket = self.issue()
        logger.debug(f"Refresh #{ticket.seq} ({reason})")
        try:
            view = await self.fetch(ticket)
        except StoreError as e:
            logger.warning(f"Refresh #{ticket.seq} failed: {e}")
            if ticket.seq == self._seq:
                self.renderer.show_error(str(e))
            return None
        except Exception as e:
            logger.error(f"Refresh #{ticket.seq} failed unexpectedly: {e}", exc_info=True)
            if ticket.seq == self._seq:
                self.renderer.show_error(f"Unexpected error: {e}")
            return None

        if not self.is_current(ticket):
            logger.debug(
                f"Dropping stale refresh #{ticket.seq} (last applied #{self._applied_seq})"
            )
            return None
        self._applied_seq = ticket.seq
        self.state.view = view
        self.renderer.render(view)
        return view

    def request_refresh(self, reason: str = "manual") -> asyncio.Task:
        """Schedule a refresh from synchronous code running on the loop."""
        task = asyncio.get_running_loop().create_task(self.refresh(reason))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait(self) -> None:
        """Wait for every scheduled refresh to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.refresh("timer")
            except Exception as e:
                logger.error(f"Periodic refresh failed: {e}", exc_info=True)

    def start(self) -> None:
        if self._timer is None or self._timer.done():
            self._timer = asyncio.get_running_loop().create_task(self._run())
            logger.info(f"Auto refresh every {self.interval}s")

    async def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        try:
            await self._timer
        except asyncio.CancelledError:
            pass
        self._timer = None
