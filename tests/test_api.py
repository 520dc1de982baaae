import asyncio
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from litestar.testing import AsyncTestClient, TestClient

from pgboss_dashboard.client.app import AppState
from pgboss_dashboard.client.history import MemoryHistory
from pgboss_dashboard.client.refresh import RefreshController, Renderer
from pgboss_dashboard.client.router import Router
from pgboss_dashboard.client.sources import HttpSource
from pgboss_dashboard.common.exceptions import StoreError
from pgboss_dashboard.common.job import Job
from pgboss_dashboard.dashboard.app import create_dashboard_app
from pgboss_dashboard.storage.memory_storage import MemoryStore

NOW = datetime.now(UTC)


@pytest.fixture
def store():
    store = MemoryStore()
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
                    data={"to": f"user{n}@example.com"},
                )
            )
    store.add_job(Job(queue="odd/name", id="odd-1", state="failed", created_on=NOW))
    return store


@pytest.fixture
def client(store):
    app = create_dashboard_app(store)
    with TestClient(app=app) as client:
        yield client


class BrokenStore(MemoryStore):
    def list_queues(self):
        raise StoreError("connection refused")


class RecordingRenderer(Renderer):
    def __init__(self):
        self.views = []
        self.errors = []

    def render(self, view):
        self.views.append(view)

    def show_error(self, message):
        self.errors.append(message)


def test_list_queues(client):
    response = client.get("/api/queues")
    assert response.status_code == 200
    emails = response.json()[0]
    assert emails["queue"] == "emails"
    assert emails["total"] == 10
    assert emails["created"] == 5
    assert emails["retry"] == 2


def test_list_jobs_with_state_and_paging(client):
    response = client.get("/api/jobs/emails", params={"state": "created", "limit": 2, "offset": 1})
    assert response.status_code == 200
    assert [job["id"] for job in response.json()] == ["job-02", "job-03"]
    assert response.json()[0]["data"] == {"to": "user2@example.com"}


def test_list_jobs_rejects_unknown_state(client):
    assert client.get("/api/jobs/emails", params={"state": "exploded"}).status_code == 400


def test_get_job_and_missing_job(client):
    response = client.get("/api/job/job-03")
    assert response.status_code == 200
    assert response.json()["retrycount"] == 0
    assert response.json()["name"] == "emails"
    assert client.get("/api/job/nope").status_code == 404


def test_stats(client):
    response = client.get("/api/stats/hour", params={"queue": "emails"})
    assert response.status_code == 200
    buckets = response.json()
    assert sum(bucket["total"] for bucket in buckets) == 10
    assert {"time_bucket", "time_label", "completed", "failed", "active"} <= set(buckets[0])


def test_clear_pending(client, store):
    response = client.post("/api/queue/emails/clear", json={"clearType": "pending"})
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "deletedCount": 7,
        "clearType": "pending",
        "queue": "emails",
    }
    assert len(store.list_jobs("emails")) == 3


def test_clear_invalid_scope(client, store):
    response = client.post("/api/queue/emails/clear", json={"clearType": "failed"})
    assert response.status_code == 400
    assert len(store.list_jobs("emails")) == 10


def test_store_errors_become_500():
    with TestClient(app=create_dashboard_app(BrokenStore())) as client:
        response = client.get("/api/queues")
    assert response.status_code == 500
    assert response.json() == {"error": "connection refused"}


# --- HttpSource against the API ---


def test_http_source_round_trip(store):
    async def scenario():
        async with AsyncTestClient(app=create_dashboard_app(store)) as client:
            source = HttpSource(client=client)
            queues = await source.list_queues()
            assert [q.name for q in queues] == ["emails", "odd/name"]

            jobs = await source.list_jobs("emails", state="retry")
            assert [job.id for job in jobs] == ["job-06", "job-07"]
            assert jobs[0].created_on == store.get_job("job-06").created_on

            assert (await source.get_job("job-01")).data == {"to": "user1@example.com"}
            assert await source.get_job("nope") is None

            stats = await source.get_stats("hour", queue="emails")
            assert sum(bucket.total for bucket in stats) == 10

            assert await source.clear_queue("emails", "active") == 3
            with pytest.raises(StoreError):
                await source.clear_queue("emails", "bogus")

    asyncio.run(scenario())


def test_http_source_wraps_transport_errors():
    async def scenario():
        source = HttpSource(base_url="http://127.0.0.1:9", timeout=0.5)
        with pytest.raises(StoreError):
            await source.list_queues()

    asyncio.run(scenario())


def _mock_source(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://dashboard")
    return HttpSource(client=client)


def test_http_source_rejects_unexpected_bodies():
    def html(request):
        return httpx.Response(200, text="<html>proxy</html>")

    def wrong_shape(request):
        return httpx.Response(200, json=[{"name": "emails"}])

    async def scenario():
        source = _mock_source(html)
        with pytest.raises(StoreError):
            await source.list_queues()
        with pytest.raises(StoreError):
            await source.get_job("job-01")
        with pytest.raises(StoreError):
            await source.clear_queue("emails", "pending")
        with pytest.raises(StoreError):
            await _mock_source(wrong_shape).list_queues()

    asyncio.run(scenario())


def test_proxy_page_is_shown_as_refresh_error():
    def html(request):
        return httpx.Response(200, text="<html>proxy</html>")

    async def scenario():
        state = AppState(router=Router(MemoryHistory("queue/emails/jobs")))
        state.router.start()
        renderer = RecordingRenderer()
        controller = RefreshController(state, _mock_source(html), renderer)
        assert await controller.refresh() is None
        assert len(renderer.errors) == 1
        assert renderer.views == []

    asyncio.run(scenario())
