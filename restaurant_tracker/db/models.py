"""SQLAlchemy ORM models for the Restaurant Tracker database.

Two tables:
- restaurants: the canonical restaurant collection
- system: single-row key/value table holding the ingestion status
"""

from datetime import UTC, date, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Date, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class RestaurantDB(Base):
    """
    Database model for licensed restaurants.

    `licence_no` is the primary natural key but is not declared unique:
    upstream data quality varies and the resolver enforces matching.
    """

    __tablename__ = "restaurants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    district: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    licence_no: Mapped[str] = mapped_column(String(100), default="", index=True)
    licence_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    valid_til: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    first_seen: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, index=True)
    new_flag: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def __repr__(self) -> str:
        return f"<RestaurantDB(id={self.id}, name='{self.name}', licence='{self.licence_no}')>"


class SystemStatusDB(Base):
    """Database model for process-wide key/value state."""

    __tablename__ = "system"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(String(50), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def __repr__(self) -> str:
        return f"<SystemStatusDB(key='{self.key}', value='{self.value}')>"
