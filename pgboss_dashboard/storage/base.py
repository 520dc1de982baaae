# pgboss_dashboard/storage/base.py
from abc import ABC, abstractmethod
from datetime import datetime, UTC
from typing import Dict, Iterable, List, Optional, Tuple

from pgboss_dashboard.common.intervals import get_interval
from pgboss_dashboard.common.job import Job, QueueSummary, StatsBucket, as_utc
from pgboss_dashboard.common.exceptions import JobNotFoundError
from pgboss_dashboard.common.states import ACTIVE, COMPLETED, FAILED


class JobStore(ABC):
    """
    The read/write interface the dashboard needs from a job queue database.

    Only exact-state filtering and limit/offset pagination happen here; every
    richer filter is applied client-side.
    """

    @abstractmethod
    def list_queues(self) -> List[QueueSummary]: ...

    @abstractmethod
    def list_jobs(
        self, queue: str, state: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Job]: ...

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[Job]: ...

    def require_job(self, job_id: str) -> Job:
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    @abstractmethod
    def get_stats(
        self, interval: str, queue: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[StatsBucket]: ...

    @abstractmethod
    def clear_queue(self, queue: str, scope: str) -> int: ...

    @abstractmethod
    def add_job(self, job: Job) -> str: ...


def build_stats(
    rows: Iterable[Tuple[datetime, str]], interval: str, now: Optional[datetime] = None
) -> List[StatsBucket]:
    """
    Group ``(created_on, state)`` rows into chart buckets.

    Only buckets that saw at least one job are returned, oldest first, and at
    most as many as the interval shows.
    """
    spec = get_interval(interval)
    now = as_utc(now) or datetime.now(UTC)
    window_start = spec.window_start(now)

    buckets: Dict[datetime, StatsBucket] = {}
    for created_on, state in rows:
        created_on = as_utc(created_on)
        if created_on is None or created_on <= window_start:
            continue
        start = spec.truncate(created_on)
        bucket = buckets.get(start)
        if bucket is None:
            bucket = buckets[start] = StatsBucket(bucket_start=start, time_label=spec.label(start))
        bucket.total += 1
        if state == COMPLETED:
            bucket.completed += 1
        elif state == FAILED:
            bucket.failed += 1
        elif state == ACTIVE:
            bucket.active += 1

    ordered = sorted(buckets.values(), key=lambda b: b.bucket_start)
    return ordered[-spec.count:]


def summarize_queues(counts: Dict[str, Dict[str, int]]) -> List[QueueSummary]:
    summaries = [QueueSummary.from_counts(name, per_state) for name, per_state in counts.items()]
    summaries.sort(key=lambda s: (-s.total, s.name))
    return summaries
