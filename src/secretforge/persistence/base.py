"""Record store interface.

Defines the abstract interface the service needs from durable storage of
secret records. Only these operations are assumed, never a specific query
language.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from secretforge.core.models import SecretRecord


class PersistenceError(Exception):
    """The record store failed to complete an operation."""


class RecordNotFoundError(LookupError):
    """No record exists with the requested identifier."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Secret with identifier '{record_id}' not found")


class SortOrder(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"


class AggregateOp(str, Enum):
    COUNT = "count"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class RecordFilter:
    """Filter for find/count. Unset fields match everything."""

    created_since: datetime | None = None


@dataclass(frozen=True)
class Metric:
    """One aggregate column: ``name`` in the result, ``op`` over ``field``."""

    name: str
    op: AggregateOp
    field: str | None = None


class RecordStore(ABC):
    """Abstract base class for secret record stores."""

    @abstractmethod
    async def insert(self, record: SecretRecord) -> str:
        """Persist a record and return its identifier."""
        ...

    @abstractmethod
    async def find(
        self,
        filter: RecordFilter | None = None,
        sort: SortOrder = SortOrder.NEWEST,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[SecretRecord]:
        """Return records matching ``filter`` ordered by creation time."""
        ...

    @abstractmethod
    async def count(self, filter: RecordFilter | None = None) -> int:
        ...

    @abstractmethod
    async def aggregate(
        self,
        group_by: str | None,
        metrics: Sequence[Metric],
    ) -> list[dict[str, Any]]:
        """Compute ``metrics`` per ``group_by`` value (or once over all records).

        Each result row holds the group value under the ``group_by`` name
        (when grouping) plus one entry per metric name.
        """
        ...

    @abstractmethod
    async def delete_by_id(self, record_id: str) -> bool:
        """Delete one record. Returns False if it did not exist."""
        ...

    @abstractmethod
    async def delete_all(self) -> int:
        """Delete every record. Returns the number deleted."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...
