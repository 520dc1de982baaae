"""Queue routes."""
import logging
from typing import Any, Dict, List

from litestar import Controller, get, post
from litestar.exceptions import ValidationException

from pgboss_dashboard.common.exceptions import InvalidClearScopeError
from pgboss_dashboard.serialization.json_serializer import JsonSerializer
from pgboss_dashboard.storage.base import JobStore

logger = logging.getLogger(__name__)


class QueuesController(Controller):
    path = "/api"

    @get("/queues")
    async def list_queues(self, job_store: JobStore, serializer: JsonSerializer) -> List[Dict[str, Any]]:
        return [serializer.queue_to_wire(summary) for summary in job_store.list_queues()]

    @post("/queue/{queue:str}/clear", status_code=200)
    async def clear_queue(self, job_store: JobStore, queue: str, data: Dict[str, Any]) -> Dict[str, Any]:
        scope = data.get("clearType")
        try:
            deleted = job_store.clear_queue(queue, scope)
        except InvalidClearScopeError as e:
            raise ValidationException(detail=str(e)) from e
        return {
            "success": True,
            "deletedCount": deleted,
            "clearType": scope,
            "queue": queue,
        }
