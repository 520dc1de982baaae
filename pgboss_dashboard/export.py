# pgboss_dashboard/export.py
import csv
import io
import json
from datetime import date
from typing import Iterable, Optional

from pgboss_dashboard.common.job import Job
from pgboss_dashboard.filters.criteria import FilterCriteria
from pgboss_dashboard.formatting import format_date

CSV_HEADERS = [
    "ID",
    "State",
    "Priority",
    "Retry Count",
    "Retry Limit",
    "Created",
    "Started",
    "Completed",
    "Data",
    "Output",
]


def _payload(value) -> str:
    return json.dumps(value if value is not None else {}, separators=(",", ":"))


def jobs_to_csv(jobs: Iterable[Job]) -> str:
    """Every cell quoted, embedded quotes doubled."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for job in jobs:
        writer.writerow(
            [
                job.id,
                job.state,
                job.priority,
                job.retry_count,
                job.retry_limit,
                format_date(job.created_on),
                format_date(job.started_on) if job.started_on else "",
                format_date(job.completed_on) if job.completed_on else "",
                _payload(job.data),
                _payload(job.output),
            ]
        )
    return buffer.getvalue()


def export_filename(queue: str, criteria: FilterCriteria, today: Optional[date] = None) -> str:
    today = today or date.today()
    suffix = "" if criteria.is_default else "-filtered"
    return f"pgboss-{queue}{suffix}-{today.isoformat()}.csv"
