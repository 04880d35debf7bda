"""Secret generation and history operations.

Writes follow one order: generate, persist, invalidate cached views,
update counters. Invalidation and counters run only after the record
store confirmed the mutation, and neither can fail it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from secretforge.cache.invalidation import InvalidationCoordinator, Mutation
from secretforge.core.generator import generate, validate
from secretforge.core.models import (
    HistoryPage,
    OptionSet,
    Pagination,
    SecretRecord,
    Statistics,
    Strength,
    StrengthBucket,
)
from secretforge.observability.metrics import record_secret_generated
from secretforge.observability.telemetry import Telemetry, local_now
from secretforge.persistence.base import (
    AggregateOp,
    Metric,
    RecordFilter,
    RecordNotFoundError,
    RecordStore,
    SortOrder,
)

logger = logging.getLogger(__name__)

_SUMMARY_METRICS = (
    Metric("average_length", AggregateOp.AVG, "length"),
    Metric("average_latency_ms", AggregateOp.AVG, "latency_ms"),
    Metric("min_length", AggregateOp.MIN, "length"),
    Metric("max_length", AggregateOp.MAX, "length"),
)
_STRENGTH_METRICS = (Metric("count", AggregateOp.COUNT),)


@dataclass(frozen=True)
class ClientInfo:
    """Opaque client metadata stored with each record."""

    ip_address: str | None = None
    user_agent: str | None = None


class SecretService:
    """Generates secrets and serves their history and statistics."""

    def __init__(
        self,
        records: RecordStore,
        invalidation: InvalidationCoordinator,
        telemetry: Telemetry,
    ):
        self.records = records
        self.invalidation = invalidation
        self.telemetry = telemetry

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def generate(
        self,
        length: object,
        options: OptionSet,
        client: ClientInfo | None = None,
    ) -> SecretRecord:
        """Generate, persist and announce a new secret.

        Raises:
            SecretValidationError: Bad length or empty option set
            PersistenceError: The record store rejected the insert
        """
        generated = generate(validate(length, options), options)

        client = client or ClientInfo()
        record = SecretRecord(
            value=generated.value,
            length=generated.length,
            options=generated.options,
            strength=generated.strength,
            latency_ms=generated.latency_ms,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        await self.records.insert(record)

        await self.invalidation.after_mutation(Mutation.GENERATE)
        await self.telemetry.record_generation()
        record_secret_generated(record.strength.value, record.latency_ms)

        logger.info(f"Generated {record.strength.value} secret of length {record.length}")
        return record

    async def delete(self, record_id: str) -> None:
        """Delete one secret.

        Raises:
            RecordNotFoundError: No secret has this identifier
        """
        if not await self.records.delete_by_id(record_id):
            raise RecordNotFoundError(record_id)
        await self.invalidation.after_mutation(Mutation.DELETE)

    async def clear(self) -> int:
        """Delete all secrets. Returns the number deleted."""
        deleted = await self.records.delete_all()
        await self.invalidation.after_mutation(Mutation.CLEAR)
        return deleted

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def history(self, limit: int, page: int) -> HistoryPage:
        """One page of history, newest first."""
        items = await self.records.find(
            sort=SortOrder.NEWEST,
            limit=limit,
            skip=(page - 1) * limit,
        )
        total = await self.records.count()
        return HistoryPage(
            items=items,
            pagination=Pagination(
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit),
            ),
        )

    async def strength_distribution(self) -> list[StrengthBucket]:
        rows = await self.records.aggregate("strength", _STRENGTH_METRICS)
        return [
            StrengthBucket(strength=Strength(row["strength"]), count=row["count"])
            for row in rows
        ]

    async def statistics(self, now: datetime | None = None) -> Statistics:
        """Aggregate statistics over all stored secrets."""
        now = now or local_now()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = now - timedelta(days=7)

        summary_rows = await self.records.aggregate(None, _SUMMARY_METRICS)
        summary: dict[str, Any] = summary_rows[0] if summary_rows else {}

        return Statistics(
            total_generated=await self.records.count(),
            generated_today=await self.records.count(RecordFilter(created_since=today_start)),
            generated_this_week=await self.records.count(RecordFilter(created_since=week_start)),
            strength_distribution=await self.strength_distribution(),
            average_length=summary.get("average_length") or 0,
            average_latency_ms=summary.get("average_latency_ms") or 0,
            min_length=summary.get("min_length") or 0,
            max_length=summary.get("max_length") or 0,
        )
