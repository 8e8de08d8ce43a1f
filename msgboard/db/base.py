"""
db/base.py
----------
Declarative base and shared mixins.

CreatedAtMixin: Adds an immutable created_at column to any model.
                The value is assigned by the storage layer's clock rather
                than the database server, so ordering is sub-second precise
                on every backend (SQLite's CURRENT_TIMESTAMP is not).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CreatedAtMixin:
    """Adds an application-assigned created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
