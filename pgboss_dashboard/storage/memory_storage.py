# pgboss_dashboard/storage/memory_storage.py
from datetime import datetime
from threading import RLock
from typing import Optional, List, Dict

from pgboss_dashboard.common.job import Job, QueueSummary, StatsBucket, as_utc
from pgboss_dashboard.common.states import states_for_scope
from pgboss_dashboard.storage.base import JobStore, build_stats, summarize_queues


def _newest_first(job: Job):
    created_on = as_utc(job.created_on)
    return (created_on is not None, created_on.timestamp() if created_on else 0.0)


class MemoryStore(JobStore):
    def __init__(self, jobs: Optional[List[Job]] = None):
        self._jobs: Dict[str, Job] = {}
        self._lock = RLock()
        for job in jobs or []:
            self.add_job(job)

    def add_job(self, job: Job) -> str:
        with self._lock:
            self._jobs[job.id] = job
        return job.id

    def list_queues(self) -> List[QueueSummary]:
        with self._lock:
            counts: Dict[str, Dict[str, int]] = {}
            for job in self._jobs.values():
                per_state = counts.setdefault(job.queue, {})
                per_state[job.state] = per_state.get(job.state, 0) + 1
        return summarize_queues(counts)

    def list_jobs(
        self, queue: str, state: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Job]:
        with self._lock:
            jobs = [
                job
                for job in self._jobs.values()
                if job.queue == queue and (state is None or job.state == state)
            ]
        jobs.sort(key=_newest_first, reverse=True)
        return jobs[offset:offset + limit]

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def get_stats(
        self, interval: str, queue: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[StatsBucket]:
        with self._lock:
            rows = [
                (job.created_on, job.state)
                for job in self._jobs.values()
                if queue is None or job.queue == queue
            ]
        return build_stats(rows, interval, now)

    def clear_queue(self, queue: str, scope: str) -> int:
        states = states_for_scope(scope)
        with self._lock:
            doomed = [
                job_id
                for job_id, job in self._jobs.items()
                if job.queue == queue and job.state in states
            ]
            for job_id in doomed:
                del self._jobs[job_id]
        return len(doomed)
