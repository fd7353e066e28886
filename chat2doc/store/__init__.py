from chat2doc.store.base import JobStore
from chat2doc.store.memory import InMemoryJobStore
from chat2doc.store.sql import SqlJobStore

__all__ = [
    "InMemoryJobStore",
    "JobStore",
    "SqlJobStore",
]
