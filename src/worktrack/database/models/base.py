"""SQLAlchemy declarative base and common column mixins for Worktrack.

This module defines the DeclarativeBase class and two mixins:

- TimestampMixin: UUID id, created_at and updated_at for mutable entities
  (users, projects, tasks).
- AppendOnlyMixin: monotonically increasing integer id and created_at for
  append-only history tables (audit entries, task log entries,
  notifications). The integer id breaks ties between rows sharing a
  timestamp so that insertion order is preserved when listing.

Timestamps are stored through UTCDateTime, which always hands back
timezone-aware UTC datetimes regardless of the backend.

Example:
    >>> class MyModel(TimestampMixin, Base):
    ...     __tablename__ = "my_table"
    ...     name: Mapped[str] = mapped_column(Text, nullable=False)
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import BigInteger, DateTime, Enum, Integer, Uuid
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware DateTime that normalises every value to UTC.

    SQLite has no timezone support and returns naive values; those are
    interpreted as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Build an Enum column type that persists member values, not names.

    Args:
        enum_cls: Python enum class backing the column.
        name: Database enum type name (used by PostgreSQL).

    Returns:
        Configured SQLAlchemy Enum type.
    """
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base for all Worktrack models."""

    type_annotation_map: dict[Any, Any] = {
        datetime: UTCDateTime(),
    }


class TimestampMixin:
    """Mixin providing id (UUID), created_at, and updated_at columns.

    This mixin should be listed before Base in the class hierarchy
    to ensure the columns are included in the model's table definition.

    Attributes:
        id: UUID primary key generated client-side.
        created_at: Timestamp set on row creation.
        updated_at: Timestamp set on row creation and on each modification.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class AppendOnlyMixin:
    """Mixin for append-only history rows.

    Attributes:
        id: Autoincrementing integer primary key (insertion order).
        created_at: Timestamp set on row creation.
    """

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )
