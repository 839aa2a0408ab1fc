"""
SQLAlchemy ORM Models

Canonical auction listings, the court lookup table, and ingestion run
tracking. Listings are identified by (case_number, item_number, source_site).
"""
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index,
    Integer, Numeric, String, Text, Time, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.auction_ingest.db.base import Base, ScrapeMetadataMixin, TimestampMixin
from src.auction_ingest.models.listing import ListingStatus, PropertyType, RunStatus


def _in_clause(column: str, enum_cls) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class Court(Base, TimestampMixin):
    """Court lookup table keyed by name."""
    __tablename__ = "courts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        comment="Canonical court name, e.g. 서울중앙지방법원"
    )

    properties: Mapped[list["Property"]] = relationship("Property", back_populates="court")

    def __repr__(self) -> str:
        return f"<Court(id={self.id}, name={self.name})>"


class Property(Base, TimestampMixin, ScrapeMetadataMixin):
    """
    Canonical auction listing.

    One row per (case_number, item_number, source_site). Rows are never
    deleted during normal operation; current_status moves instead.
    """
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity
    case_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Court case number (e.g. 2024타경12345)"
    )
    item_number: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="1",
        comment="Lot number within the case"
    )
    source_site: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Origin identifier (courtauction, onbid, manual)"
    )

    court_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("courts.id"),
        nullable=True,
        comment="References courts table"
    )

    # Description
    address: Mapped[str] = mapped_column(Text, nullable=False, comment="Full address")
    property_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PropertyType.OTHER.value,
        comment="Canonical property category"
    )
    building_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    land_area: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Land area (m²)"
    )
    building_area: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Building area (m²)"
    )

    # Prices (KRW)
    appraisal_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    minimum_sale_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    bid_deposit: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # Auction schedule
    auction_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    auction_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    auction_date_is_estimated: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="auction_date was filled by the 30-day fallback, not parsed"
    )
    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ListingStatus.ACTIVE.value
    )

    tenant_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    special_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    court: Mapped[Optional["Court"]] = relationship("Court", back_populates="properties")

    __table_args__ = (
        UniqueConstraint("case_number", "item_number", "source_site", name="uq_properties_identity"),
        CheckConstraint("appraisal_value >= 0", name="check_appraisal_value_positive"),
        CheckConstraint("minimum_sale_price >= 0", name="check_minimum_sale_price_positive"),
        CheckConstraint("bid_deposit >= 0", name="check_bid_deposit_positive"),
        CheckConstraint("failure_count >= 0", name="check_failure_count_positive"),
        CheckConstraint(_in_clause("property_type", PropertyType), name="check_property_type_valid"),
        CheckConstraint(_in_clause("current_status", ListingStatus), name="check_current_status_valid"),
        Index("idx_properties_current_status", "current_status"),
        Index("idx_properties_auction_date", "auction_date"),
        Index("idx_properties_source_site", "source_site"),
    )

    def __repr__(self) -> str:
        return (
            f"<Property(case={self.case_number}, item={self.item_number}, "
            f"source={self.source_site})>"
        )


class IngestionRun(Base):
    """Execution metadata for one ingestion run against one source."""
    __tablename__ = "ingestion_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    source_site: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RunStatus.RUNNING.value,
        comment="running, completed, failed"
    )

    # Record counts
    total_found: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Candidate bundles produced by the extractor"
    )
    new_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Store write failures"
    )
    discarded_items: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Candidates rejected for missing identity"
    )

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timing
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    execution_time: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Wall-clock seconds"
    )

    __table_args__ = (
        CheckConstraint(_in_clause("status", RunStatus), name="check_run_status_valid"),
        Index("idx_ingestion_runs_source_site", "source_site"),
        Index("idx_ingestion_runs_status", "status"),
        Index("idx_ingestion_runs_started_at", "started_at"),
    )

    def __repr__(self) -> str:
        return f"<IngestionRun(id={self.id}, source={self.source_site}, status={self.status})>"
