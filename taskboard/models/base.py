"""
Base configurations and mixins for database models.

The models are written against SQLAlchemy's generic types so the same
metadata runs on PostgreSQL in production and on SQLite in tests.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import declarative_base


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# Create the base class for all models
Base = declarative_base()


class DateCreatedMixin:
    """
    Adds a `date_created` column that is filled once, on insert.

    The value is produced in Python rather than by a server default so it is
    available on the instance right after flush, without a refresh.
    """

    date_created = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when the record was created",
    )


class UUIDMixin:
    """UUID4 primary key generated on the application side."""

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
        comment="Primary key using UUID4 format",
    )


__all__ = ["Base", "DateCreatedMixin", "UUIDMixin", "as_utc", "utcnow"]
