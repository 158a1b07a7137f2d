"""
Declarative base and shared model mixins.

Every table uses string UUID keys, UTC timestamps and a to_dict() that the
API returns as-is.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from livecount.core.clock import utc_now, as_utc

# Stable constraint names so the schema can be diffed and migrated
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def new_uuid() -> str:
    """Default factory for string UUID primary keys."""
    return str(uuid.uuid4())


class TimestampMixin:
    """created_at / updated_at, set from the application clock in UTC."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )


class SerializationMixin:
    """Column-level to_dict() for JSON responses."""

    def to_dict(self, exclude: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Convert the row to a JSON-ready dict.

        Datetimes become ISO 8601 strings in UTC; SQLite returns them naive,
        so they are re-tagged first.
        """
        exclude = set(exclude or ())
        result = {}
        for column in self.__table__.columns:
            if column.name in exclude:
                continue
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = as_utc(value).isoformat()
            result[column.name] = value
        return result


class BaseModel(TimestampMixin, SerializationMixin):
    """Timestamps plus serialization, mixed into every table."""
    pass


def create_all_tables(engine) -> None:
    """Create all tables registered on Base."""
    Base.metadata.create_all(bind=engine)


def drop_all_tables(engine) -> None:
    """Drop all tables registered on Base."""
    Base.metadata.drop_all(bind=engine)
