"""Job routes."""
from typing import Any, Dict, List, Optional

from litestar import Controller, get
from litestar.exceptions import NotFoundException, ValidationException
from litestar.params import Parameter

from pgboss_dashboard.common.exceptions import JobNotFoundError
from pgboss_dashboard.common.states import is_valid_state
from pgboss_dashboard.serialization.json_serializer import JsonSerializer
from pgboss_dashboard.storage.base import JobStore


class JobsController(Controller):
    path = "/api"

    @get("/jobs/{queue:str}")
    async def list_jobs(
        self,
        job_store: JobStore,
        serializer: JsonSerializer,
        queue: str,
        job_state: Optional[str] = Parameter(query="state", default=None),
        limit: int = Parameter(query="limit", default=50, ge=1),
        offset: int = Parameter(query="offset", default=0, ge=0),
    ) -> List[Dict[str, Any]]:
        if job_state and not is_valid_state(job_state):
            raise ValidationException(detail=f"Unknown job state {job_state!r}")
        jobs = job_store.list_jobs(queue, state=job_state or None, limit=limit, offset=offset)
        return [serializer.job_to_wire(job) for job in jobs]

    @get("/job/{job_id:str}")
    async def get_job(self, job_store: JobStore, serializer: JsonSerializer, job_id: str) -> Dict[str, Any]:
        try:
            job = job_store.require_job(job_id)
        except JobNotFoundError as e:
            raise NotFoundException(detail="Job not found") from e
        return serializer.job_to_wire(job)
