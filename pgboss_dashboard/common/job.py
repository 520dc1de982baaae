# pgboss_dashboard/common/job.py
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, UTC
from typing import Optional, Dict, Any

from pgboss_dashboard.common.states import (
    ACTIVE,
    CANCELLED,
    COMPLETED,
    CREATED,
    FAILED,
    RETRY,
)


@dataclass
class Job:
    """
    A read-only snapshot of one row of the job store.

    The dashboard never mutates a job; a fetched batch is only valid until the
    next refresh replaces it.
    """

    queue: str
    state: str = CREATED

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    priority: int = 0

    # Retry bookkeeping, owned by the queue itself
    retry_count: int = 0
    retry_limit: int = 0
    retry_delay: int = 0
    retry_backoff: bool = False

    created_on: Optional[datetime] = field(default_factory=lambda: datetime.now(UTC))
    start_after: Optional[datetime] = None
    started_on: Optional[datetime] = None
    completed_on: Optional[datetime] = None

    singleton_key: Optional[str] = None
    data: Any = None
    output: Any = None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.started_on is None or self.completed_on is None:
            return None
        return as_utc(self.completed_on) - as_utc(self.started_on)

    def as_record(self) -> Dict[str, Any]:
        """JSON-shaped view of the job, as navigated by structured queries."""
        return {
            "id": self.id,
            "name": self.queue,
            "queue": self.queue,
            "state": self.state,
            "priority": self.priority,
            "retrycount": self.retry_count,
            "retrylimit": self.retry_limit,
            "retrydelay": self.retry_delay,
            "retrybackoff": self.retry_backoff,
            "createdon": _isoformat(self.created_on),
            "startafter": _isoformat(self.start_after),
            "startedon": _isoformat(self.started_on),
            "completedon": _isoformat(self.completed_on),
            "singletonkey": self.singleton_key,
            "data": self.data,
            "output": self.output,
        }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class QueueSummary:
    name: str
    total: int = 0
    created: int = 0
    retry: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0

    @property
    def pending(self) -> int:
        return self.created + self.retry

    @property
    def health(self) -> str:
        if self.failed > 0:
            return "critical"
        if self.active > 0:
            return "warning"
        return "healthy"

    def count_for(self, state_name: str) -> int:
        return getattr(self, state_name)

    @classmethod
    def from_counts(cls, name: str, counts: Dict[str, int]) -> "QueueSummary":
        summary = cls(name=name)
        for state_name in (CREATED, RETRY, ACTIVE, COMPLETED, FAILED, CANCELLED):
            setattr(summary, state_name, int(counts.get(state_name, 0)))
        summary.total = sum(int(v) for v in counts.values())
        return summary


@dataclass
class StatsBucket:
    bucket_start: datetime
    time_label: str
    total: int = 0
    completed: int = 0
    failed: int = 0
    active: int = 0


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    # Naive timestamps are taken to be UTC.
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment
