"""Durable storage of secret records."""

from secretforge.persistence.base import (
    AggregateOp,
    Metric,
    PersistenceError,
    RecordFilter,
    RecordNotFoundError,
    RecordStore,
    SortOrder,
)
from secretforge.persistence.repositories import SqlRecordStore

__all__ = [
    "AggregateOp",
    "Metric",
    "PersistenceError",
    "RecordFilter",
    "RecordNotFoundError",
    "RecordStore",
    "SortOrder",
    "SqlRecordStore",
]
