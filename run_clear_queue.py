"""CLI utility to delete jobs from a pg-boss queue."""

from __future__ import annotations

import argparse

from pgboss_dashboard.common.exceptions import ConfigurationError
from pgboss_dashboard.common.states import CLEAR_SCOPES, states_for_scope
from pgboss_dashboard.config import DashboardSettings
from pgboss_dashboard.storage.sql_storage import SqlStore


def build_arg_parser(defaults: DashboardSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Clear jobs from a pg-boss queue")
    parser.add_argument("queue", help="Queue name.")
    parser.add_argument(
        "--scope",
        choices=sorted(CLEAR_SCOPES),
        default="pending",
        help="Which jobs to delete: pending (created and retry), active, or all.",
    )
    parser.add_argument(
        "--connection-url",
        default=defaults.database_url,
        help="SQLAlchemy connection URL (env: PGBOSS_DATABASE_URL).",
    )
    parser.add_argument(
        "--schema",
        default=defaults.schema,
        help="Schema holding the pg-boss job table (env: PGBOSS_SCHEMA).",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Do not ask for confirmation.",
    )
    return parser


def main() -> None:
    try:
        defaults = DashboardSettings.from_env(validate=False)
    except ConfigurationError as e:
        raise SystemExit(str(e))
    parser = build_arg_parser(defaults)
    args = parser.parse_args()
    if not args.connection_url:
        parser.error("--connection-url or PGBOSS_DATABASE_URL is required")

    states = ", ".join(states_for_scope(args.scope))
    if not args.yes:
        answer = input(f"Delete all {states} jobs in queue {args.queue!r}? This cannot be undone [y/N] ")
        if answer.strip().lower() != "y":
            print("Aborted.")
            return

    store = SqlStore(connection_url=args.connection_url, schema=args.schema)
    deleted = store.clear_queue(args.queue, args.scope)
    print(f"Successfully cleared {deleted} jobs from queue {args.queue!r}")


if __name__ == "__main__":
    main()
