"""
SQLAlchemy Base and Mixins

Provides declarative base and reusable mixins for database models.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """
    Base class for all database models.

    Provides common functionality and type hints for SQLAlchemy models.
    """

    # Type annotation for primary keys
    id: Any


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamp columns.

    created_at is written once by the database on insert. updated_at is
    refreshed on every ORM update; the upsert engine also sets it explicitly
    so identical re-observations still bump it.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp when record was created"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Timestamp when record was last updated"
    )


class ScrapeMetadataMixin:
    """
    Mixin to track where and when a record was last observed.
    """

    source_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Page or endpoint the record was extracted from"
    )

    last_scraped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp of the most recent observation"
    )


def import_all_models():
    """
    Import all models to register them with SQLAlchemy Base.

    Must run before Base.metadata.create_all so every table is known.
    """
    from src.auction_ingest.db import models  # noqa: F401


def utc_now() -> datetime:
    """Timezone-aware current UTC time for application-set timestamps."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from backends that drop tzinfo."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
