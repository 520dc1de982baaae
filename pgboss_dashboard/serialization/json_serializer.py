# pgboss_dashboard/serialization/json_serializer.py
import json
from datetime import datetime
from typing import Any, Dict, Optional

from pgboss_dashboard.common.job import Job, QueueSummary, StatsBucket, as_utc
from pgboss_dashboard.common.states import ALL_STATES
from pgboss_dashboard.serialization.base import BaseSerializer


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value)))


class JsonSerializer(BaseSerializer):
    """
    Converts dashboard objects to and from the JSON shapes served by the
    dashboard API (lower-case column names, ISO-8601 timestamps).
    """

    def serialize_job(self, job: Job) -> str:
        return json.dumps(self.job_to_wire(job), default=str)

    def deserialize_job(self, data: str) -> Job:
        return self.job_from_wire(json.loads(data))

    def job_to_wire(self, job: Job) -> Dict[str, Any]:
        return job.as_record()

    def job_from_wire(self, payload: Dict[str, Any]) -> Job:
        return Job(
            id=str(payload["id"]),
            queue=payload.get("name") or payload.get("queue", ""),
            state=payload.get("state", ""),
            priority=int(payload.get("priority") or 0),
            retry_count=int(payload.get("retrycount") or 0),
            retry_limit=int(payload.get("retrylimit") or 0),
            retry_delay=int(payload.get("retrydelay") or 0),
            retry_backoff=bool(payload.get("retrybackoff") or False),
            created_on=_parse_datetime(payload.get("createdon")),
            start_after=_parse_datetime(payload.get("startafter")),
            started_on=_parse_datetime(payload.get("startedon")),
            completed_on=_parse_datetime(payload.get("completedon")),
            singleton_key=payload.get("singletonkey"),
            data=payload.get("data"),
            output=payload.get("output"),
        )

    def queue_to_wire(self, summary: QueueSummary) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"queue": summary.name, "total": summary.total}
        for state_name in ALL_STATES:
            payload[state_name] = summary.count_for(state_name)
        return payload

    def queue_from_wire(self, payload: Dict[str, Any]) -> QueueSummary:
        summary = QueueSummary(name=payload["queue"], total=int(payload.get("total") or 0))
        for state_name in ALL_STATES:
            setattr(summary, state_name, int(payload.get(state_name) or 0))
        return summary

    def bucket_to_wire(self, bucket: StatsBucket) -> Dict[str, Any]:
        return {
            "time_bucket": bucket.bucket_start.isoformat(),
            "time_label": bucket.time_label,
            "total": bucket.total,
            "completed": bucket.completed,
            "failed": bucket.failed,
            "active": bucket.active,
        }

    def bucket_from_wire(self, payload: Dict[str, Any]) -> StatsBucket:
        return StatsBucket(
            bucket_start=_parse_datetime(payload["time_bucket"]),
            time_label=payload["time_label"],
            total=int(payload.get("total") or 0),
            completed=int(payload.get("completed") or 0),
            failed=int(payload.get("failed") or 0),
            active=int(payload.get("active") or 0),
        )
