# pgboss_dashboard/config.py
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

import redis

from pgboss_dashboard.common.exceptions import ConfigurationError
from pgboss_dashboard.storage.base import JobStore

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("sql", "memory", "redis")


class _GlobalConfig:
    def __init__(self):
        self.store: Optional[JobStore] = None


_GLOBAL_CONFIG = _GlobalConfig()


def configure(store: JobStore) -> None:
    _GLOBAL_CONFIG.store = store


def get_store() -> JobStore:
    if not _GLOBAL_CONFIG.store:
        raise ConfigurationError(
            "The dashboard has not been configured. Call pgboss_dashboard.configure() first."
        )
    return _GLOBAL_CONFIG.store


@dataclass
class DashboardSettings:
    database_url: Optional[str] = None
    schema: str = "pgboss"
    port: int = 8671
    storage: str = "sql"
    redis_url: Optional[str] = None
    refresh_interval: float = 10.0

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, validate: bool = True
    ) -> "DashboardSettings":
        """
        Settings read from ``PGBOSS_*`` variables. Scripts pass
        ``validate=False`` to use them as command line defaults.
        """
        env = os.environ if environ is None else environ
        try:
            settings = cls(
                database_url=env.get("PGBOSS_DATABASE_URL") or None,
                schema=env.get("PGBOSS_SCHEMA", "pgboss"),
                port=int(env.get("PGBOSS_DASHBOARD_PORT", "8671")),
                storage=env.get("PGBOSS_DASHBOARD_STORAGE", "sql").strip().lower(),
                redis_url=env.get("PGBOSS_REDIS_URL") or None,
                refresh_interval=float(env.get("PGBOSS_REFRESH_INTERVAL", "10")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid dashboard setting: {e}") from e
        if validate:
            settings.validate()
        return settings

    def validate(self) -> None:
        if self.storage not in STORAGE_BACKENDS:
            raise ConfigurationError(
                f"storage must be one of {', '.join(STORAGE_BACKENDS)}, got {self.storage!r}"
            )
        if self.storage == "sql" and not self.database_url:
            raise ConfigurationError("PGBOSS_DATABASE_URL is required for sql storage")
        if self.refresh_interval <= 0:
            raise ConfigurationError("refresh interval must be positive")


def build_store(settings: DashboardSettings) -> JobStore:
    """Store described by ``settings``."""
    settings.validate()
    if settings.storage == "memory":
        from pgboss_dashboard.storage.memory_storage import MemoryStore

        return MemoryStore()
    if settings.storage == "redis":
        from pgboss_dashboard.storage.redis_storage import RedisStore

        if settings.redis_url:
            return RedisStore(redis_client=redis.Redis.from_url(settings.redis_url, decode_responses=True))
        return RedisStore()

    from pgboss_dashboard.storage.sql_storage import SqlStore

    logger.info(f"Using pg-boss schema {settings.schema!r}")
    return SqlStore(connection_url=settings.database_url, schema=settings.schema)
