# pgboss_dashboard/serialization/base.py
from abc import ABC, abstractmethod
from typing import Any, Dict

from pgboss_dashboard.common.job import Job, QueueSummary, StatsBucket


class BaseSerializer(ABC):
    @abstractmethod
    def serialize_job(self, job: Job) -> str: ...

    @abstractmethod
    def deserialize_job(self, data: str) -> Job: ...

    @abstractmethod
    def job_to_wire(self, job: Job) -> Dict[str, Any]: ...

    @abstractmethod
    def job_from_wire(self, payload: Dict[str, Any]) -> Job: ...

    @abstractmethod
    def queue_to_wire(self, summary: QueueSummary) -> Dict[str, Any]: ...

    @abstractmethod
    def queue_from_wire(self, payload: Dict[str, Any]) -> QueueSummary: ...

    @abstractmethod
    def bucket_to_wire(self, bucket: StatsBucket) -> Dict[str, Any]: ...

    @abstractmethod
    def bucket_from_wire(self, payload: Dict[str, Any]) -> StatsBucket: ...
