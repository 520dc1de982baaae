# pgboss_dashboard/storage/sql_storage.py
from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Engine,
    Integer,
    String,
    Text,
    case,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from pgboss_dashboard.common.exceptions import StoreError
from pgboss_dashboard.common.intervals import get_interval
from pgboss_dashboard.common.job import Job, QueueSummary, StatsBucket, as_utc
from pgboss_dashboard.common.states import ALL_STATES, states_for_scope
from pgboss_dashboard.storage.base import JobStore, build_stats

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "pgboss"


class Base(DeclarativeBase):
    pass


class JobModel(Base):
    """The columns of ``pgboss.job`` the dashboard reads."""

    __tablename__ = "job"
    __table_args__ = {"schema": DEFAULT_SCHEMA}

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, index=True)
    priority: Mapped[int] = mapped_column(Integer, default=0)
    data: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    state: Mapped[str] = mapped_column(String(20), index=True, default="created")
    retry_limit: Mapped[int] = mapped_column(Integer, default=0)
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    retry_delay: Mapped[int] = mapped_column(Integer, default=0)
    retry_backoff: Mapped[bool] = mapped_column(Boolean, default=False)
    start_after: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    started_on: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    singleton_key: Mapped[Optional[str]] = mapped_column(Text)
    created_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    completed_on: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    output: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)


class SqlStore(JobStore):
    """
    Reads a pg-boss job table through SQLAlchemy.

    ``schema`` names the schema holding the ``job`` table; pass ``None`` for
    databases without schemas (SQLite).
    """

    def __init__(
        self,
        connection_url: Optional[str] = None,
        engine: Optional[Engine] = None,
        schema: Optional[str] = DEFAULT_SCHEMA,
        create_tables: bool = False,
    ) -> None:
        if engine is None and connection_url is None:
            raise ValueError("connection_url or engine is required")
        engine = engine or create_engine(connection_url)
        self.engine = engine.execution_options(
            schema_translate_map={DEFAULT_SCHEMA: schema}
        )
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        if create_tables:
            Base.metadata.create_all(self.engine)

    def _job_from_model(self, model: JobModel) -> Job:
        return Job(
            id=str(model.id),
            queue=model.name,
            state=model.state,
            priority=model.priority or 0,
            retry_count=model.retry_count or 0,
            retry_limit=model.retry_limit or 0,
            retry_delay=model.retry_delay or 0,
            retry_backoff=bool(model.retry_backoff),
            created_on=as_utc(model.created_on),
            start_after=as_utc(model.start_after),
            started_on=as_utc(model.started_on),
            completed_on=as_utc(model.completed_on),
            singleton_key=model.singleton_key,
            data=model.data,
            output=model.output,
        )

    def add_job(self, job: Job) -> str:
        with self._session_factory.begin() as session:
            session.add(
                JobModel(
                    id=job.id,
                    name=job.queue,
                    priority=job.priority,
                    data=job.data,
                    state=job.state,
                    retry_limit=job.retry_limit,
                    retry_count=job.retry_count,
                    retry_delay=job.retry_delay,
                    retry_backoff=job.retry_backoff,
                    start_after=job.start_after,
                    started_on=job.started_on,
                    singleton_key=job.singleton_key,
                    created_on=job.created_on or datetime.now(UTC),
                    completed_on=job.completed_on,
                    output=job.output,
                )
            )
        return job.id

    def list_queues(self) -> List[QueueSummary]:
        per_state = [
            func.sum(case((JobModel.state == state_name, 1), else_=0)).label(state_name)
            for state_name in ALL_STATES
        ]
        total = func.count(JobModel.id).label("total")
        query = (
            select(JobModel.name, total, *per_state)
            .group_by(JobModel.name)
            .order_by(total.desc(), JobModel.name)
        )
        try:
            with self._session_factory() as session:
                rows = session.execute(query).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not list queues: {e}") from e

        summaries = []
        for row in rows:
            counts: Dict[str, int] = {s: int(getattr(row, s) or 0) for s in ALL_STATES}
            summary = QueueSummary.from_counts(row.name, counts)
            summary.total = int(row.total)
            summaries.append(summary)
        return summaries

    def list_jobs(
        self, queue: str, state: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Job]:
        query = select(JobModel).where(JobModel.name == queue)
        if state:
            query = query.where(JobModel.state == state)
        query = query.order_by(JobModel.created_on.desc()).limit(limit).offset(offset)
        try:
            with self._session_factory() as session:
                rows = session.execute(query).scalars().all()
                return [self._job_from_model(row) for row in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not list jobs of {queue!r}: {e}") from e

    def get_job(self, job_id: str) -> Optional[Job]:
        try:
            with self._session_factory() as session:
                model = session.get(JobModel, job_id)
                return self._job_from_model(model) if model else None
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load job {job_id!r}: {e}") from e

    def get_stats(
        self, interval: str, queue: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[StatsBucket]:
        now = as_utc(now) or datetime.now(UTC)
        window_start = get_interval(interval).window_start(now)
        query = select(JobModel.created_on, JobModel.state).where(
            JobModel.created_on > window_start
        )
        if queue:
            query = query.where(JobModel.name == queue)
        try:
            with self._session_factory() as session:
                rows = session.execute(query).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load statistics: {e}") from e
        return build_stats(((row.created_on, row.state) for row in rows), interval, now)

    def clear_queue(self, queue: str, scope: str) -> int:
        states = states_for_scope(scope)
        try:
            with self._session_factory.begin() as session:
                result = session.execute(
                    delete(JobModel).where(JobModel.name == queue, JobModel.state.in_(states))
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Could not clear queue {queue!r}: {e}") from e
        logger.info(f"Cleared {result.rowcount} {scope} jobs from queue {queue}")
        return int(result.rowcount)
