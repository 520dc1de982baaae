"""Run the pg-boss dashboard JSON API."""
from __future__ import annotations

import argparse
import logging

import uvicorn

from pgboss_dashboard.common.exceptions import ConfigurationError
from pgboss_dashboard.config import STORAGE_BACKENDS, DashboardSettings, build_store
from pgboss_dashboard.dashboard.app import create_dashboard_app


def build_arg_parser(defaults: DashboardSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the pg-boss dashboard")
    parser.add_argument(
        "--storage",
        choices=STORAGE_BACKENDS,
        default=defaults.storage,
        help="Job store to read from (env: PGBOSS_DASHBOARD_STORAGE).",
    )
    parser.add_argument(
        "--database-url",
        default=defaults.database_url,
        help="SQLAlchemy URL of the pg-boss database (env: PGBOSS_DATABASE_URL).",
    )
    parser.add_argument(
        "--schema",
        default=defaults.schema,
        help="Schema holding the pg-boss job table (env: PGBOSS_SCHEMA).",
    )
    parser.add_argument(
        "--redis-url",
        default=defaults.redis_url,
        help="Redis URL for the redis store (env: PGBOSS_REDIS_URL).",
    )
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument(
        "--port", type=int, default=defaults.port, help="env: PGBOSS_DASHBOARD_PORT"
    )
    parser.add_argument("--debug", action="store_true")
    return parser


if __name__ == "__main__":
    try:
        defaults = DashboardSettings.from_env(validate=False)
    except ConfigurationError as e:
        raise SystemExit(str(e))
    args = build_arg_parser(defaults).parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    settings = DashboardSettings(
        database_url=args.database_url,
        schema=args.schema,
        port=args.port,
        storage=args.storage,
        redis_url=args.redis_url,
    )
    store = build_store(settings)
    app = create_dashboard_app(store, debug=args.debug)
    uvicorn.run(app, host=args.host, port=settings.port)
