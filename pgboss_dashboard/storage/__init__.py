from .base import JobStore
from .memory_storage import MemoryStore
from .redis_storage import RedisStore
from .sql_storage import SqlStore

__all__ = ["JobStore", "MemoryStore", "RedisStore", "SqlStore"]
