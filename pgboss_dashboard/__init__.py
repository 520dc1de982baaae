from .client.app import AppState, Dashboard
from .client.history import MemoryHistory
from .client.refresh import DashboardView, Renderer
from .client.sources import HttpSource, JobSource, StoreSource
from .common.job import Job, QueueSummary, StatsBucket
from .config import DashboardSettings, build_store, configure as _configure, get_store
from .filters.criteria import FilterCriteria, SortSpec
from .serialization.base import BaseSerializer
from .serialization.json_serializer import JsonSerializer
from .storage.base import JobStore


def configure(store: JobStore) -> None:
    _configure(store)


def create_dashboard(
    renderer: Renderer,
    source: JobSource | None = None,
    settings: DashboardSettings | None = None,
    **kwargs,
) -> Dashboard:
    """
    Dashboard reading from ``source``, or from the configured store.

    ``settings`` supplies the refresh interval unless one is passed explicitly.
    """
    if source is None:
        source = StoreSource(get_store())
    if settings is not None:
        kwargs.setdefault("refresh_interval", settings.refresh_interval)
    return Dashboard(source, renderer, **kwargs)


__all__ = [
    "AppState",
    "BaseSerializer",
    "Dashboard",
    "DashboardSettings",
    "DashboardView",
    "FilterCriteria",
    "HttpSource",
    "Job",
    "JobSource",
    "JobStore",
    "JsonSerializer",
    "MemoryHistory",
    "QueueSummary",
    "Renderer",
    "SortSpec",
    "StatsBucket",
    "StoreSource",
    "build_store",
    "configure",
    "create_dashboard",
    "get_store",
]
