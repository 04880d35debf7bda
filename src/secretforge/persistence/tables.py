"""SQLAlchemy ORM models for secret persistence.

Column types are portable so the same schema runs on PostgreSQL (asyncpg)
and SQLite (aiosqlite).
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class SecretTable(Base):
    """Generated secrets, one row per generation."""

    __tablename__ = "secrets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    value: Mapped[str] = mapped_column(Text, nullable=False)
    length: Mapped[int] = mapped_column(Integer, nullable=False)

    # Option set
    upper: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    lower: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    numbers: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    symbols: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    strength: Mapped[str] = mapped_column(String(16), nullable=False)
    latency_ms: Mapped[float] = mapped_column(Float, nullable=False)

    # Client metadata (never exposed by read views)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("idx_secrets_created_at", "created_at"),
        Index("idx_secrets_strength", "strength"),
    )
