# main.py
"""
Console view of the dashboard.

Without ``--url`` a seeded in-memory store is shown; with it, a running
dashboard API is read. ``--watch`` keeps refreshing until interrupted.
"""
import argparse
import asyncio
import logging
import os
from datetime import datetime, timedelta, UTC

from pgboss_dashboard import (
    DashboardSettings,
    DashboardView,
    HttpSource,
    Job,
    Renderer,
    configure,
    create_dashboard,
)
from pgboss_dashboard.common.exceptions import ConfigurationError
from pgboss_dashboard.common.states import ACTIVE, COMPLETED, CREATED, FAILED
from pgboss_dashboard.formatting import format_duration, format_relative_time
from pgboss_dashboard.storage.memory_storage import MemoryStore


class ConsoleRenderer(Renderer):
    def render(self, view: DashboardView) -> None:
        print(f"\n== {view.route.view} {view.route.queue or ''}")
        for summary in view.queues:
            print(f"  {summary.name:<16} total={summary.total} pending={summary.pending} [{summary.health}]")
        for bucket in view.stats:
            print(f"  {bucket.time_label}: {bucket.completed} completed, {bucket.failed} failed")
        for job in view.jobs:
            print(
                f"  {job.id[:8]} {job.state:<10} {format_relative_time(job.created_on):<10}"
                f" {format_duration(job.duration)}"
            )
        if view.job_missing:
            print("  Job not found")

    def show_error(self, message: str) -> None:
        print(f"!! {message}")


def seed(store: MemoryStore) -> None:
    now = datetime.now(UTC)
    for i in range(12):
        started = now - timedelta(minutes=i * 5)
        store.add_job(
            Job(
                queue="emails",
                state=[COMPLETED, FAILED, ACTIVE, CREATED][i % 4],
                created_on=started - timedelta(seconds=30),
                started_on=started,
                completed_on=started + timedelta(seconds=i + 1) if i % 4 < 2 else None,
                data={"to": f"user{i}@example.com", "tags": ["urgent"] if i % 3 == 0 else []},
            )
        )


def build_arg_parser(defaults: DashboardSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Console view of the pg-boss dashboard")
    parser.add_argument(
        "--url",
        default=os.getenv("PGBOSS_DASHBOARD_URL"),
        help="Base URL of a running dashboard API (env: PGBOSS_DASHBOARD_URL).",
    )
    parser.add_argument(
        "--refresh-interval",
        type=float,
        default=defaults.refresh_interval,
        help="Seconds between refreshes (env: PGBOSS_REFRESH_INTERVAL).",
    )
    parser.add_argument("--queue", help="Queue whose jobs to show.")
    parser.add_argument("--watch", action="store_true")
    return parser


async def run(settings: DashboardSettings, url=None, queue=None, watch=False) -> None:
    if url:
        source = HttpSource(url)
    else:
        store = MemoryStore()
        seed(store)
        configure(store)
        source = None
        queue = queue or "emails"

    dashboard = create_dashboard(ConsoleRenderer(), source=source, settings=settings)
    await dashboard.start(auto_refresh=watch)
    if queue:
        dashboard.select_queue(queue)
        dashboard.show_jobs()
    if not url:
        dashboard.filter_by_value("data.tags[0]", "urgent")
        await dashboard.controller.wait()
        dashboard.sort_by("duration")
    await dashboard.controller.wait()

    try:
        if watch:
            await asyncio.Event().wait()
    finally:
        await dashboard.stop()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        defaults = DashboardSettings.from_env(validate=False)
    except ConfigurationError as e:
        raise SystemExit(str(e))
    args = build_arg_parser(defaults).parse_args()
    defaults.refresh_interval = args.refresh_interval
    try:
        asyncio.run(run(defaults, url=args.url, queue=args.queue, watch=args.watch))
    except KeyboardInterrupt:
        pass
