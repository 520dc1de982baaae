from datetime import UTC, datetime

import pytest

from pgboss_dashboard.client.history import MemoryHistory
from pgboss_dashboard.client.route import (
    JOB_DETAIL,
    OVERVIEW,
    QUEUE_JOBS,
    QUEUE_STATS,
    RouteState,
    parse,
    serialize,
)
from pgboss_dashboard.client.router import HISTORY, NAVIGATE, REPLACE, Router
from pgboss_dashboard.filters.criteria import FilterCriteria

FILTERS = FilterCriteria(
    search='jq:data.to == b64"YUBiLmM="',
    state="failed",
    date_from=datetime(2024, 5, 1, 8, 30, tzinfo=UTC),
    date_to=datetime(2024, 5, 2, tzinfo=UTC),
)


# --- RouteState and fragments ---


def test_overview_has_no_queue():
    with pytest.raises(ValueError):
        RouteState(view=OVERVIEW, queue="emails")


def test_detail_needs_queue_and_job():
    with pytest.raises(ValueError):
        RouteState(view=JOB_DETAIL, queue="emails")
    with pytest.raises(ValueError):
        RouteState(view=JOB_DETAIL, job_id="1")


def test_stats_view_carries_no_filters():
    with pytest.raises(ValueError):
        RouteState(view=QUEUE_STATS, queue="emails", filters=FilterCriteria(search="x"))


@pytest.mark.parametrize(
    "route",
    [
        RouteState(),
        RouteState(QUEUE_STATS, "emails"),
        RouteState(QUEUE_JOBS, "emails"),
        RouteState(QUEUE_JOBS, "my queue/with slash?", FILTERS, page=4),
        RouteState(JOB_DETAIL, "emails", FILTERS, page=2, job_id="b1e0-42"),
        RouteState(JOB_DETAIL, "emails", job_id="id with #hash&amp"),
        RouteState(QUEUE_JOBS, "ünïcødé", FilterCriteria(search="a&b=c #1 100%")),
    ],
)
def test_fragment_round_trip(route):
    assert parse(serialize(route)) == route


def test_serialize_omits_defaults():
    assert serialize(RouteState()) == "overview"
    assert serialize(RouteState(QUEUE_STATS, "emails")) == "queue/emails"
    assert serialize(RouteState(QUEUE_JOBS, "emails")) == "queue/emails/jobs"
    assert serialize(RouteState(QUEUE_JOBS, "emails", FilterCriteria(state="failed"), 2)) == (
        "queue/emails/jobs?state=failed&page=2"
    )


def test_serialize_encodes_names():
    assert serialize(RouteState(QUEUE_STATS, "a/b c")) == "queue/a%2Fb%20c"


@pytest.mark.parametrize(
    "fragment",
    ["", "#", "nonsense", "queue", "queue/", "queue/emails/bogus", "queue/emails/jobs/1/extra"],
)
def test_malformed_fragments_fall_back_to_overview(fragment):
    assert parse(fragment) == RouteState()


def test_bad_parameters_are_dropped():
    route = parse("queue/emails/jobs?state=exploded&page=-3&from=yesterday&search=ok")
    assert route == RouteState(QUEUE_JOBS, "emails", FilterCriteria(search="ok"))


def test_parse_tolerates_hash_and_trailing_slash():
    assert parse("#queue/emails/jobs/") == RouteState(QUEUE_JOBS, "emails")


# --- History ---


def test_memory_history_push_and_back():
    history = MemoryHistory("overview")
    seen = []
    history.subscribe(seen.append)
    history.push("queue/a")
    history.push("queue/b")
    history.replace("queue/b/jobs")
    assert seen == []
    assert history.back()
    assert seen == ["queue/a"]
    assert history.forward()
    assert seen == ["queue/a", "queue/b/jobs"]
    assert not history.forward()


def test_push_drops_forward_entries():
    history = MemoryHistory("overview")
    history.push("queue/a")
    history.back()
    history.push("queue/b")
    assert history.entries == ["overview", "queue/b"]


# --- Router ---


@pytest.fixture
def history():
    return MemoryHistory("")


@pytest.fixture
def router(history):
    router = Router(history)
    router.start()
    return router


def test_start_normalizes_empty_fragment(router, history):
    assert router.route == RouteState()
    assert history.current == "overview"
    assert len(history) == 1


def test_navigate_pushes(router, history):
    router.navigate(QUEUE_JOBS, queue="emails", page=3)
    assert router.route.page == 3
    router.navigate(QUEUE_STATS, queue="emails")
    assert history.entries == ["overview", "queue/emails/jobs?page=3", "queue/emails"]


def test_filter_changes_replace_and_reset_page(router, history):
    router.navigate(QUEUE_JOBS, queue="emails", page=3)
    router.update_filters(search="abc")
    router.update_filters(state="failed")
    assert router.route.page == 1
    assert router.route.filters == FilterCriteria(search="abc", state="failed")
    assert len(history) == 2
    assert history.current == "queue/emails/jobs?search=abc&state=failed"


def test_page_changes_replace(router, history):
    router.navigate(QUEUE_JOBS, queue="emails")
    router.next_page()
    router.next_page()
    router.previous_page()
    assert router.route.page == 2
    assert len(history) == 2
    with pytest.raises(ValueError):
        router.set_page(0)


def test_previous_page_stops_at_one(router):
    router.navigate(QUEUE_JOBS, queue="emails")
    assert router.previous_page().page == 1


def test_overview_has_no_filters(router):
    with pytest.raises(ValueError):
        router.update_filters(search="x")


def test_close_job_keeps_filters_and_page(router):
    router.navigate(QUEUE_JOBS, queue="emails", filters=FILTERS, page=2)
    router.open_job("job-9")
    assert router.route == RouteState(JOB_DETAIL, "emails", FILTERS, 2, "job-9")
    router.close_job()
    assert router.route == RouteState(QUEUE_JOBS, "emails", FILTERS, 2)


def test_back_returns_to_list(router, history):
    router.navigate(QUEUE_JOBS, queue="emails", filters=FILTERS)
    router.open_job("job-9")
    changes = []
    router.subscribe(changes.append)
    history.back()
    assert router.route == RouteState(QUEUE_JOBS, "emails", FILTERS)
    assert changes[-1].source == HISTORY


def test_jobs_tab_filters_survive_stats_tab(router):
    router.select_queue("emails")
    router.show_jobs()
    router.update_filters(state="failed")
    router.next_page()
    router.show_stats()
    assert router.route == RouteState(QUEUE_STATS, "emails")
    router.update_filters(search="abc")
    router.show_jobs()
    assert router.route.filters == FilterCriteria(search="abc", state="failed")
    assert router.route.page == 1


def test_typed_fragment_is_normalized(router, history):
    history.visit("queue/emails/jobs?page=zero&state=failed")
    assert router.route == RouteState(QUEUE_JOBS, "emails", FilterCriteria(state="failed"))
    assert history.current == "queue/emails/jobs?state=failed"


def test_route_change_reports_queue_switch(router):
    changes = []
    router.subscribe(changes.append)
    router.select_queue("emails")
    router.show_jobs()
    router.select_queue("reports")
    assert [c.source for c in changes] == [NAVIGATE, NAVIGATE, NAVIGATE]
    assert [c.queue_changed for c in changes] == [True, False, True]


def test_replace_source_is_reported(router):
    router.navigate(QUEUE_JOBS, queue="emails")
    changes = []
    router.subscribe(changes.append)
    router.update_filters(search="x")
    assert changes[0].source == REPLACE
    assert not changes[0].queue_changed
