"""Litestar application factory for the pg-boss dashboard JSON API."""
import logging

from litestar import Litestar, Request, Response
from litestar.di import Provide
from litestar.datastructures import State

from pgboss_dashboard.common.exceptions import StoreError
from pgboss_dashboard.serialization.json_serializer import JsonSerializer
from pgboss_dashboard.storage.base import JobStore

from .controllers.jobs import JobsController
from .controllers.queues import QueuesController
from .controllers.stats import StatsController

logger = logging.getLogger(__name__)


async def get_store(state: State) -> JobStore:
    return state.store


async def get_serializer(state: State) -> JsonSerializer:
    return state.serializer


def store_error_handler(request: Request, exc: StoreError) -> Response:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return Response(content={"error": str(exc)}, status_code=500)


def create_dashboard_app(store: JobStore, debug: bool = False) -> Litestar:
    """Create the Litestar application serving the dashboard API.

    Args:
        store: The job store every endpoint reads from.
        debug: Litestar debug mode.

    Returns:
        A Litestar application.
    """
    return Litestar(
        route_handlers=[QueuesController, StatsController, JobsController],
        state=State({"store": store, "serializer": JsonSerializer()}),
        dependencies={
            "job_store": Provide(get_store),
            "serializer": Provide(get_serializer),
        },
        exception_handlers={StoreError: store_error_handler},
        debug=debug,
    )
