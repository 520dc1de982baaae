# pgboss_dashboard/storage/redis_storage.py
import redis
import logging
from typing import Optional, List, Dict
from datetime import datetime, UTC

from .base import JobStore, build_stats, summarize_queues
from ..common.exceptions import StoreError
from ..common.intervals import get_interval
from ..common.job import Job, QueueSummary, StatsBucket, as_utc
from ..common.states import ALL_STATES, states_for_scope
from ..serialization.json_serializer import JsonSerializer

logger = logging.getLogger(__name__)


class RedisStore(JobStore):
    """
    Job snapshots kept in Redis.

    Layout, with ``prefix`` defaulting to ``pgboss``:

    * ``{prefix}:job:{id}`` hash holding the serialized job
    * ``{prefix}:queues`` set of queue names
    * ``{prefix}:queue:{name}:{state}`` sorted set of job ids scored by creation time
    """

    def __init__(self, connection_pool=None, redis_client=None, prefix: str = "pgboss"):
        if redis_client:
            self.redis_client = redis_client
            if not getattr(self.redis_client, "decode_responses", False):
                self.redis_client = redis.Redis(
                    connection_pool=self.redis_client.connection_pool,
                    decode_responses=True,
                )
        elif connection_pool:
            self.redis_client = redis.Redis(
                connection_pool=connection_pool, decode_responses=True
            )
        else:
            self.redis_client = redis.Redis(
                host="localhost", port=6379, db=0, decode_responses=True
            )
        self.prefix = prefix
        self.serializer = JsonSerializer()

    def _job_key(self, job_id: str) -> str:
        return f"{self.prefix}:job:{job_id}"

    def _state_key(self, queue: str, state_name: str) -> str:
        return f"{self.prefix}:queue:{queue}:{state_name}"

    def _score(self, job: Job) -> float:
        created_on = as_utc(job.created_on)
        return created_on.timestamp() if created_on else 0.0

    def _load(self, job_ids: List[str]) -> List[Job]:
        if not job_ids:
            return []
        with self.redis_client.pipeline() as pipe:
            for job_id in job_ids:
                pipe.hget(self._job_key(job_id), "payload")
            payloads = pipe.execute()
        return [self.serializer.deserialize_job(p) for p in payloads if p]

    def add_job(self, job: Job) -> str:
        with self.redis_client.pipeline() as pipe:
            pipe.hset(
                self._job_key(job.id),
                mapping={
                    "payload": self.serializer.serialize_job(job),
                    "queue": job.queue,
                    "state": job.state,
                },
            )
            pipe.sadd(f"{self.prefix}:queues", job.queue)
            pipe.zadd(self._state_key(job.queue, job.state), {job.id: self._score(job)})
            pipe.execute()
        return job.id

    def list_queues(self) -> List[QueueSummary]:
        try:
            names = sorted(self.redis_client.smembers(f"{self.prefix}:queues"))
            counts: Dict[str, Dict[str, int]] = {}
            for name in names:
                with self.redis_client.pipeline() as pipe:
                    for state_name in ALL_STATES:
                        pipe.zcard(self._state_key(name, state_name))
                    counts[name] = dict(zip(ALL_STATES, pipe.execute()))
        except redis.exceptions.RedisError as e:
            raise StoreError(f"Could not list queues: {e}") from e
        return [s for s in summarize_queues(counts) if s.total > 0]

    def list_jobs(
        self, queue: str, state: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Job]:
        try:
            if state:
                job_ids = self.redis_client.zrevrange(
                    self._state_key(queue, state), offset, offset + limit - 1
                )
                return self._load(job_ids)
            # Merge the per-state sets newest first.
            scored = []
            for state_name in ALL_STATES:
                scored.extend(
                    self.redis_client.zrevrange(
                        self._state_key(queue, state_name), 0, offset + limit - 1, withscores=True
                    )
                )
            scored.sort(key=lambda item: item[1], reverse=True)
            return self._load([job_id for job_id, _ in scored[offset:offset + limit]])
        except redis.exceptions.RedisError as e:
            raise StoreError(f"Could not list jobs of {queue!r}: {e}") from e

    def get_job(self, job_id: str) -> Optional[Job]:
        try:
            jobs = self._load([job_id])
        except redis.exceptions.RedisError as e:
            raise StoreError(f"Could not load job {job_id}: {e}") from e
        return jobs[0] if jobs else None

    def get_stats(
        self, interval: str, queue: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[StatsBucket]:
        now = as_utc(now) or datetime.now(UTC)
        since = get_interval(interval).window_start(now).timestamp()
        rows = []
        try:
            queues = [queue] if queue else list(self.redis_client.smembers(f"{self.prefix}:queues"))
            for name in queues:
                for state_name in ALL_STATES:
                    entries = self.redis_client.zrangebyscore(
                        self._state_key(name, state_name), f"({since}", "+inf", withscores=True
                    )
                    rows.extend(
                        (datetime.fromtimestamp(score, UTC), state_name) for _, score in entries
                    )
        except redis.exceptions.RedisError as e:
            raise StoreError(f"Could not load {interval} stats: {e}") from e
        return build_stats(rows, interval, now)

    def clear_queue(self, queue: str, scope: str) -> int:
        deleted = 0
        states = states_for_scope(scope)
        try:
            for state_name in states:
                key = self._state_key(queue, state_name)
                job_ids = self.redis_client.zrange(key, 0, -1)
                if not job_ids:
                    continue
                with self.redis_client.pipeline() as pipe:
                    pipe.delete(*[self._job_key(job_id) for job_id in job_ids])
                    pipe.delete(key)
                    pipe.execute()
                deleted += len(job_ids)
        except redis.exceptions.RedisError as e:
            raise StoreError(f"Could not clear queue {queue!r}: {e}") from e
        logger.info(f"Cleared {deleted} {scope} jobs from queue {queue}")
        return deleted
