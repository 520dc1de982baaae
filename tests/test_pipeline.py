from datetime import UTC, datetime, timedelta

import pytest

from pgboss_dashboard.common.job import Job
from pgboss_dashboard.filters.criteria import ASC, DESC, FilterCriteria, SortSpec
from pgboss_dashboard.filters.pipeline import apply, filter_jobs, sort_jobs

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _job(job_id, **kwargs):
    kwargs.setdefault("created_on", T0)
    return Job(queue="emails", id=job_id, **kwargs)


@pytest.fixture
def batch():
    return [
        _job("a", state="completed", priority=1, data={"retries": 3, "tags": ["urgent"]}),
        _job("b", state="failed", priority=5, data={"retries": "3"}, created_on=T0 + timedelta(hours=1)),
        _job("c", state="completed", priority=1, data=None, output={"msg": "Done"}, created_on=T0 - timedelta(days=1)),
        _job("d", state="active", priority=3, data={"tags": ["low"]}, created_on=None),
    ]


# --- Filtering ---


def test_default_criteria_keep_everything(batch):
    assert filter_jobs(batch, FilterCriteria()) == batch


def test_state_filter(batch):
    assert [j.id for j in filter_jobs(batch, FilterCriteria(state="completed"))] == ["a", "c"]


def test_structured_search(batch):
    criteria = FilterCriteria(search="jq:data.retries == 3")
    assert [j.id for j in filter_jobs(batch, criteria)] == ["a"]


def test_contains_search(batch):
    criteria = FilterCriteria(search='jq:contains(data.tags[*], "urgent")')
    assert [j.id for j in filter_jobs(batch, criteria)] == ["a"]


def test_unparseable_search_selects_nothing(batch):
    assert filter_jobs(batch, FilterCriteria(search="jq:data.retries ==")) == []


def test_text_search(batch):
    assert [j.id for j in filter_jobs(batch, FilterCriteria(search="done"))] == ["c"]


def test_date_bounds_are_inclusive(batch):
    criteria = FilterCriteria(date_from=T0, date_to=T0 + timedelta(hours=1))
    assert [j.id for j in filter_jobs(batch, criteria)] == ["a", "b"]


def test_job_without_creation_time_fails_date_bounds(batch):
    criteria = FilterCriteria(date_to=T0 + timedelta(days=10))
    assert "d" not in [j.id for j in filter_jobs(batch, criteria)]


def test_naive_bounds_are_utc(batch):
    criteria = FilterCriteria(date_from=datetime(2024, 5, 1, 12, 30))
    assert [j.id for j in filter_jobs(batch, criteria)] == ["b"]


def test_filtering_is_idempotent(batch):
    criteria = FilterCriteria(search="jq:data.retries != null", state=None)
    once = filter_jobs(batch, criteria)
    assert filter_jobs(once, criteria) == once


def test_input_batch_is_untouched(batch):
    before = list(batch)
    apply(batch, FilterCriteria(state="completed"), SortSpec("priority", ASC))
    assert batch == before


# --- Sorting ---


def test_sort_is_stable_both_directions():
    jobs = [_job(str(i), priority=i % 2) for i in range(6)]
    asc = sort_jobs(jobs, SortSpec("priority", ASC))
    desc = sort_jobs(jobs, SortSpec("priority", DESC))
    assert [j.id for j in asc] == ["0", "2", "4", "1", "3", "5"]
    assert [j.id for j in desc] == ["1", "3", "5", "0", "2", "4"]


def test_missing_values_sort_last(batch):
    for direction in (ASC, DESC):
        ordered = sort_jobs(batch, SortSpec("created_on", direction))
        assert ordered[-1].id == "d"
    assert [j.id for j in sort_jobs(batch, SortSpec("created_on", ASC))] == ["c", "a", "b", "d"]


def test_missing_duration_counts_as_zero():
    finished = _job(
        "x",
        started_on=T0,
        completed_on=T0 + timedelta(seconds=5),
    )
    pending = _job("y")
    assert [j.id for j in sort_jobs([pending, finished], SortSpec("duration", DESC))] == ["x", "y"]
    assert [j.id for j in sort_jobs([finished, pending], SortSpec("duration", ASC))] == ["y", "x"]


def test_duration_mixes_naive_and_aware_timestamps():
    naive_start = datetime(2024, 5, 1, 12, 0)
    mixed = _job("m", started_on=naive_start, completed_on=T0 + timedelta(seconds=2))
    short = _job("s", started_on=T0, completed_on=T0 + timedelta(seconds=1))
    assert mixed.duration == timedelta(seconds=2)
    assert [j.id for j in sort_jobs([short, mixed], SortSpec("duration", DESC))] == ["m", "s"]


def test_string_sort_ignores_case():
    jobs = [_job("b"), _job("A"), _job("c")]
    assert [j.id for j in sort_jobs(jobs, SortSpec("id", ASC))] == ["A", "b", "c"]


def test_sort_spec_toggle():
    spec = SortSpec()
    assert spec.toggled("created_on") == SortSpec("created_on", ASC)
    assert spec.toggled("priority") == SortSpec("priority", DESC)
    with pytest.raises(ValueError):
        SortSpec("data")


def test_criteria_without():
    criteria = FilterCriteria(search="x", state="failed")
    assert criteria.without("state") == FilterCriteria(search="x")
    assert criteria.without("search").without("state").is_default
    with pytest.raises(ValueError):
        criteria.without("page")
