# pgboss_dashboard/client/sources.py
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, TypeVar
from urllib.parse import quote

import httpx

from pgboss_dashboard.common.exceptions import StoreError
from pgboss_dashboard.common.job import Job, QueueSummary, StatsBucket
from pgboss_dashboard.serialization.json_serializer import JsonSerializer
from pgboss_dashboard.storage.base import JobStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JobSource(ABC):
    """Where the refresh controller fetches from. Every call is a suspension point."""

    @abstractmethod
    async def list_queues(self) -> List[QueueSummary]: ...

    @abstractmethod
    async def list_jobs(
        self, queue: str, state: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Job]: ...

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[Job]: ...

    @abstractmethod
    async def get_stats(self, interval: str, queue: Optional[str] = None) -> List[StatsBucket]: ...

    @abstractmethod
    async def clear_queue(self, queue: str, scope: str) -> int: ...


class StoreSource(JobSource):
    """Runs a synchronous JobStore in a worker thread."""

    def __init__(self, store: JobStore):
        self.store = store

    async def list_queues(self) -> List[QueueSummary]:
        return await asyncio.to_thread(self.store.list_queues)

    async def list_jobs(
        self, queue: str, state: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Job]:
        return await asyncio.to_thread(self.store.list_jobs, queue, state, limit, offset)

    async def get_job(self, job_id: str) -> Optional[Job]:
        return await asyncio.to_thread(self.store.get_job, job_id)

    async def get_stats(self, interval: str, queue: Optional[str] = None) -> List[StatsBucket]:
        return await asyncio.to_thread(self.store.get_stats, interval, queue)

    async def clear_queue(self, queue: str, scope: str) -> int:
        return await asyncio.to_thread(self.store.clear_queue, queue, scope)


class HttpSource(JobSource):
    """
    Talks to a running dashboard's JSON API.

    Pass ``client`` to share one ``httpx.AsyncClient``; otherwise a client is
    opened per request.
    """

    def __init__(
        self,
        base_url: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout = timeout
        self.serializer = JsonSerializer()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            if self.client is not None:
                return await self.client.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {url} failed: {e}") from e

    def _decode(
        self, method: str, path: str, response: httpx.Response, convert: Callable[[Any], T]
    ) -> T:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(f"{method} {path} returned {response.status_code}") from e
        try:
            return convert(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise StoreError(f"{method} {path} returned an unexpected body: {e}") from e

    async def _json(self, method: str, path: str, convert: Callable[[Any], T], **kwargs) -> T:
        response = await self._request(method, path, **kwargs)
        return self._decode(method, path, response, convert)

    async def list_queues(self) -> List[QueueSummary]:
        return await self._json(
            "GET",
            "/api/queues",
            lambda payload: [self.serializer.queue_from_wire(item) for item in payload],
        )

    async def list_jobs(
        self, queue: str, state: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Job]:
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if state:
            params["state"] = state
        return await self._json(
            "GET",
            f"/api/jobs/{quote(queue, safe='')}",
            lambda payload: [self.serializer.job_from_wire(item) for item in payload],
            params=params,
        )

    async def get_job(self, job_id: str) -> Optional[Job]:
        path = f"/api/job/{quote(job_id, safe='')}"
        response = await self._request("GET", path)
        if response.status_code == 404:
            logger.debug(f"Job {job_id} not found")
            return None
        return self._decode("GET", path, response, self.serializer.job_from_wire)

    async def get_stats(self, interval: str, queue: Optional[str] = None) -> List[StatsBucket]:
        params = {"queue": queue} if queue else {}
        return await self._json(
            "GET",
            f"/api/stats/{interval}",
            lambda payload: [self.serializer.bucket_from_wire(item) for item in payload],
            params=params,
        )

    async def clear_queue(self, queue: str, scope: str) -> int:
        return await self._json(
            "POST",
            f"/api/queue/{quote(queue, safe='')}/clear",
            lambda payload: int(payload["deletedCount"]),
            json={"clearType": scope},
        )
