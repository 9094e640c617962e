"""
Base model with the fields shared by every revisioned entity.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, TypeDecorator
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend (SQLite drops the offset)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_item_id() -> str:
    """Generate a fresh, opaque item id."""
    return str(uuid.uuid4())


class RevisionMixin:
    """
    One row per revision of an item.

    (item_id, revision_id) is the primary key, so the database refuses two
    writers that computed the same next revision number.
    """

    item_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    revision_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Copied unchanged into every revision of the item
    owner: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    submitted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    revision_created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)


class GeoPointMixin:
    """Optional WGS84 point stored as two plain columns."""

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
