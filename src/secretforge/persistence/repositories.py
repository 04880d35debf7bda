"""SQL record store for secret records.

Every operation opens its own short-lived session from the factory, so a
single store instance is safely shared by concurrent requests. Driver
errors surface as ``PersistenceError``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from secretforge.core.models import OptionSet, SecretRecord, Strength
from secretforge.persistence.base import (
    AggregateOp,
    Metric,
    PersistenceError,
    RecordFilter,
    RecordStore,
    SortOrder,
)
from secretforge.persistence.tables import SecretTable

logger = logging.getLogger(__name__)

# Fields that may be grouped on or aggregated
_COLUMNS: dict[str, Any] = {
    "length": SecretTable.length,
    "latency_ms": SecretTable.latency_ms,
    "strength": SecretTable.strength,
    "created_at": SecretTable.created_at,
}

_AGGREGATES = {
    AggregateOp.AVG: func.avg,
    AggregateOp.MIN: func.min,
    AggregateOp.MAX: func.max,
}


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back; stored values are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_record(row: SecretTable) -> SecretRecord:
    return SecretRecord(
        id=row.id,
        value=row.value,
        length=row.length,
        options=OptionSet(
            upper=row.upper,
            lower=row.lower,
            numbers=row.numbers,
            symbols=row.symbols,
        ),
        strength=Strength(row.strength),
        latency_ms=row.latency_ms,
        created_at=_as_utc(row.created_at),
        ip_address=row.ip_address,
        user_agent=row.user_agent,
    )


def _conditions(filter: RecordFilter | None) -> list[ColumnElement[bool]]:
    if filter is None:
        return []
    conditions: list[ColumnElement[bool]] = []
    if filter.created_since is not None:
        conditions.append(SecretTable.created_at >= _as_utc(filter.created_since))
    return conditions


def _column(field: str | None) -> Any:
    if field not in _COLUMNS:
        raise ValueError(f"Unsupported record field: {field!r}")
    return _COLUMNS[field]


class SqlRecordStore(RecordStore):
    """Record store backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def insert(self, record: SecretRecord) -> str:
        row = SecretTable(
            id=record.id,
            value=record.value,
            length=record.length,
            upper=record.options.upper,
            lower=record.options.lower,
            numbers=record.options.numbers,
            symbols=record.options.symbols,
            strength=record.strength.value,
            latency_ms=record.latency_ms,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            created_at=record.created_at,
        )
        try:
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to insert secret: {e}") from e
        return record.id

    async def find(
        self,
        filter: RecordFilter | None = None,
        sort: SortOrder = SortOrder.NEWEST,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[SecretRecord]:
        order = (
            SecretTable.created_at.desc()
            if sort == SortOrder.NEWEST
            else SecretTable.created_at.asc()
        )
        stmt = select(SecretTable).where(*_conditions(filter)).order_by(order).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to query secrets: {e}") from e
        return [_to_record(row) for row in rows]

    async def count(self, filter: RecordFilter | None = None) -> int:
        stmt = select(func.count()).select_from(SecretTable).where(*_conditions(filter))
        try:
            async with self.session_factory() as session:
                return int((await session.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count secrets: {e}") from e

    async def aggregate(
        self,
        group_by: str | None,
        metrics: Sequence[Metric],
    ) -> list[dict[str, Any]]:
        columns = []
        for metric in metrics:
            if metric.op == AggregateOp.COUNT:
                columns.append(func.count().label(metric.name))
            else:
                columns.append(_AGGREGATES[metric.op](_column(metric.field)).label(metric.name))

        if group_by is not None:
            group_column = _column(group_by)
            stmt = select(group_column.label(group_by), *columns).group_by(group_column)
        else:
            stmt = select(*columns).select_from(SecretTable)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to aggregate secrets: {e}") from e
        return rows

    async def delete_by_id(self, record_id: str) -> bool:
        stmt = delete(SecretTable).where(SecretTable.id == record_id)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete secret {record_id}: {e}") from e
        return bool(result.rowcount)

    async def delete_all(self) -> int:
        try:
            async with self.session_factory() as session:
                result = await session.execute(delete(SecretTable))
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to clear secrets: {e}") from e
        deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} secrets")
        return deleted

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError):
            return False
