import csv
import io
from datetime import UTC, date, datetime, timedelta

import pytest

from pgboss_dashboard import configure, create_dashboard, get_store
from pgboss_dashboard.common.exceptions import ConfigurationError
from pgboss_dashboard.common.job import Job
from pgboss_dashboard.config import DashboardSettings, build_store
from pgboss_dashboard.export import CSV_HEADERS, export_filename, jobs_to_csv
from pgboss_dashboard.filters.criteria import FilterCriteria
from pgboss_dashboard.formatting import format_date, format_duration, format_relative_time
from pgboss_dashboard.storage.memory_storage import MemoryStore

T0 = datetime(2024, 5, 1, 14, 5, 9, tzinfo=UTC)


# --- CSV export ---


def test_csv_escapes_quotes():
    job = Job(queue="q", id="j1", data={"note": 'say "hi", then leave'}, created_on=T0)
    rows = list(csv.reader(io.StringIO(jobs_to_csv([job]))))
    assert rows[0] == CSV_HEADERS
    assert rows[1][0] == "j1"
    assert rows[1][8] == '{"note":"say \\"hi\\", then leave"}'
    assert '""' in jobs_to_csv([job])


def test_csv_empty_fields():
    job = Job(queue="q", id="j2", created_on=T0)
    row = list(csv.reader(io.StringIO(jobs_to_csv([job]))))[1]
    assert row[5] == "May 01, 2024, 02:05:09 PM"
    assert row[6:8] == ["", ""]
    assert row[8:] == ["{}", "{}"]


def test_export_filename():
    today = date(2024, 5, 1)
    assert export_filename("emails", FilterCriteria(), today) == "pgboss-emails-2024-05-01.csv"
    assert export_filename("emails", FilterCriteria(state="failed"), today) == (
        "pgboss-emails-filtered-2024-05-01.csv"
    )


# --- Formatting ---


@pytest.mark.parametrize(
    "duration, expected",
    [
        (250, "250ms"),
        (timedelta(seconds=1.5), "1.5s"),
        (timedelta(minutes=2, seconds=5), "2m 5s"),
        (timedelta(hours=3, minutes=7), "3h 7m"),
        (None, "-"),
    ],
)
def test_format_duration(duration, expected):
    assert format_duration(duration) == expected


def test_format_relative_time():
    assert format_relative_time(T0 - timedelta(seconds=10), now=T0) == "just now"
    assert format_relative_time(T0 - timedelta(minutes=5), now=T0) == "5m ago"
    assert format_relative_time(T0 - timedelta(hours=3), now=T0) == "3h ago"
    assert format_relative_time(T0 - timedelta(days=2), now=T0) == "2d ago"
    assert format_relative_time(None) == ""


def test_format_date():
    assert format_date(None) == "-"
    assert format_date(datetime(2024, 5, 1, 14, 5, 9)) == "May 01, 2024, 02:05:09 PM"


# --- Configuration ---


def test_settings_from_env():
    settings = DashboardSettings.from_env(
        {
            "PGBOSS_DATABASE_URL": "postgresql+psycopg://localhost/app",
            "PGBOSS_SCHEMA": "jobs",
            "PGBOSS_DASHBOARD_PORT": "9000",
            "PGBOSS_REFRESH_INTERVAL": "2.5",
        }
    )
    assert settings.schema == "jobs"
    assert settings.port == 9000
    assert settings.storage == "sql"
    assert settings.refresh_interval == 2.5


def test_settings_defaults_and_errors():
    settings = DashboardSettings.from_env({"PGBOSS_DASHBOARD_STORAGE": "memory"})
    assert (settings.schema, settings.port, settings.refresh_interval) == ("pgboss", 8671, 10.0)
    with pytest.raises(ConfigurationError):
        DashboardSettings.from_env({})
    with pytest.raises(ConfigurationError):
        DashboardSettings.from_env({"PGBOSS_DASHBOARD_STORAGE": "mongo"})
    with pytest.raises(ConfigurationError):
        DashboardSettings.from_env({"PGBOSS_DASHBOARD_STORAGE": "memory", "PGBOSS_DASHBOARD_PORT": "x"})


def test_build_memory_store():
    assert isinstance(build_store(DashboardSettings(storage="memory")), MemoryStore)


def test_global_configuration():
    store = MemoryStore()
    configure(store)
    assert get_store() is store
    dashboard = create_dashboard(renderer=None)
    assert dashboard.source.store is store


def test_settings_as_script_defaults():
    settings = DashboardSettings.from_env({"PGBOSS_REFRESH_INTERVAL": "3"}, validate=False)
    assert settings.storage == "sql"
    assert settings.database_url is None
    assert settings.refresh_interval == 3.0
    with pytest.raises(ConfigurationError):
        settings.validate()


def test_refresh_interval_reaches_the_dashboard():
    configure(MemoryStore())
    settings = DashboardSettings.from_env(
        {"PGBOSS_DASHBOARD_STORAGE": "memory", "PGBOSS_REFRESH_INTERVAL": "2.5"}
    )
    assert create_dashboard(renderer=None, settings=settings).controller.interval == 2.5
    explicit = create_dashboard(renderer=None, settings=settings, refresh_interval=1.0)
    assert explicit.controller.interval == 1.0
