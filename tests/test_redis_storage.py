import pytest
import redis
from datetime import UTC, datetime, timedelta

from pgboss_dashboard.common.job import Job
from pgboss_dashboard.storage.redis_storage import RedisStore

NOW = datetime.now(UTC)


# --- Fixtures ---
@pytest.fixture
def redis_client():
    r = redis.Redis(host="localhost", port=6379, db=0)
    try:
        r.ping()
    except redis.exceptions.ConnectionError:
        pytest.skip("Redis server not running on localhost:6379")
    r.flushdb()  # Clear database before each test
    return r


@pytest.fixture
def redis_store(redis_client):
    return RedisStore(connection_pool=redis_client.connection_pool, prefix="pgboss-test")


def _seed(store):
    n = 0
    for state_name, count in (("created", 5), ("retry", 2), ("active", 3)):
        for _ in range(count):
            n += 1
            store.add_job(
                Job(
                    queue="emails",
                    id=f"job-{n:02d}",
                    state=state_name,
                    created_on=NOW - timedelta(minutes=n),
                    data={"n": n},
                )
            )


def test_redis_store_lists_and_pages(redis_store):
    _seed(redis_store)
    page = redis_store.list_jobs("emails", limit=3, offset=1)
    assert [job.id for job in page] == ["job-02", "job-03", "job-04"]
    assert [job.id for job in redis_store.list_jobs("emails", state="active")] == [
        "job-08",
        "job-09",
        "job-10",
    ]
    assert redis_store.get_job("job-05").data == {"n": 5}
    assert redis_store.get_job("nope") is None


def test_redis_store_queue_summary(redis_store):
    _seed(redis_store)
    (summary,) = redis_store.list_queues()
    assert (summary.name, summary.total, summary.pending, summary.active) == ("emails", 10, 7, 3)


def test_redis_store_clear_pending(redis_store):
    _seed(redis_store)
    assert redis_store.clear_queue("emails", "pending") == 7
    remaining = redis_store.list_jobs("emails")
    assert {job.state for job in remaining} == {"active"}
    assert redis_store.get_job("job-01") is None


def test_redis_store_stats(redis_store):
    _seed(redis_store)
    buckets = redis_store.get_stats("hour", queue="emails", now=NOW)
    assert sum(bucket.total for bucket in buckets) == 10
    assert sum(bucket.active for bucket in buckets) == 3
