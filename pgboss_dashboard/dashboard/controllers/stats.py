"""Throughput statistics routes."""
from typing import Any, Dict, List, Optional

from litestar import Controller, get
from litestar.params import Parameter

from pgboss_dashboard.serialization.json_serializer import JsonSerializer
from pgboss_dashboard.storage.base import JobStore


class StatsController(Controller):
    path = "/api/stats"

    @get("/{interval:str}")
    async def get_stats(
        self,
        job_store: JobStore,
        serializer: JsonSerializer,
        interval: str,
        queue: Optional[str] = Parameter(query="queue", default=None),
    ) -> List[Dict[str, Any]]:
        # Unknown intervals fall back to hourly buckets.
        buckets = job_store.get_stats(interval, queue=queue or None)
        return [serializer.bucket_to_wire(bucket) for bucket in buckets]
