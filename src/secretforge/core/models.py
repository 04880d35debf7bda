"""Domain models for generated secrets.

All models use Pydantic v2. JSON field names are camelCase (via aliases)
because the HTTP surface and the cached payloads share one representation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class DomainModel(BaseModel):
    """Base model for secretforge domain objects."""

    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
    }


class Strength(str, Enum):
    """Entropy-based strength classification."""

    WEAK = "Weak"
    MEDIUM = "Medium"
    STRONG = "Strong"


class OptionSet(DomainModel):
    """Character classes selected for a generation request.

    Flags left unspecified take the defaults below, so callers construct
    this once instead of coalescing missing flags at each use site.
    """

    model_config = {**DomainModel.model_config, "frozen": True}

    upper: bool = True
    lower: bool = True
    numbers: bool = True
    symbols: bool = False

    @classmethod
    def from_flags(cls, **flags: bool | None) -> OptionSet:
        """Build an option set, filling defaults for flags passed as None."""
        return cls(**{name: value for name, value in flags.items() if value is not None})

    def any_selected(self) -> bool:
        return self.upper or self.lower or self.numbers or self.symbols


class SecretRecord(DomainModel):
    """A persisted secret generation. Immutable after creation."""

    model_config = {**DomainModel.model_config, "frozen": True}

    id: str = Field(default_factory=lambda: str(uuid4()))
    value: str
    length: int = Field(ge=4, le=64)
    options: OptionSet
    strength: Strength
    latency_ms: float = Field(alias="latencyMs")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        alias="createdAt",
    )
    ip_address: str | None = Field(default=None, alias="ipAddress")
    user_agent: str | None = Field(default=None, alias="userAgent")

    def to_public(self) -> dict[str, Any]:
        """JSON-ready representation without client metadata."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"ip_address", "user_agent"},
        )


class Pagination(DomainModel):
    total: int
    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")


class HistoryPage(DomainModel):
    """One page of generation history, newest first."""

    items: list[SecretRecord]
    pagination: Pagination


class StrengthBucket(DomainModel):
    strength: Strength
    count: int


class Statistics(DomainModel):
    """Aggregate statistics over all stored secrets."""

    total_generated: int = Field(alias="totalGenerated")
    generated_today: int = Field(alias="generatedToday")
    generated_this_week: int = Field(alias="generatedThisWeek")
    strength_distribution: list[StrengthBucket] = Field(alias="strengthDistribution")
    average_length: float = Field(alias="averageLength")
    average_latency_ms: float = Field(alias="averageLatencyMs")
    min_length: int = Field(alias="minLength")
    max_length: int = Field(alias="maxLength")
