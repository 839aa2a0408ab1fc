"""
Listing Data Models

Transient shapes that flow through the ingestion pipeline: raw documents from
source adapters, per-row field candidates from the extractor, and the
validated listing handed to the upsert engine.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PropertyType(str, Enum):
    """Canonical property categories."""

    APARTMENT = "apartment"
    STUDIO_OFFICE = "studio-office"
    DETACHED_HOUSE = "detached-house"
    MULTI_UNIT = "multi-unit"
    COMMERCIAL = "commercial"
    LAND = "land"
    OTHER = "other"


class ListingStatus(str, Enum):
    """Lifecycle of a listing; records change status instead of being deleted."""

    ACTIVE = "active"
    SOLD = "sold"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentKind(str, Enum):
    """How RawDocument.content should be interpreted."""

    HTML = "html"        # rendered page markup
    RECORDS = "records"  # list of flat field mappings


@dataclass
class RawDocument:
    """
    Opaque payload from a single fetch.

    Attributes:
        source_site: Origin identifier of the adapter that produced it
        content: HTML text or list of field mappings, depending on kind
        kind: Content interpretation
        page_index: Cursor value that produced this document
        origin_url: URL that was rendered or requested
        fetched_at: Fetch timestamp (UTC)
    """

    source_site: str
    content: Any
    kind: DocumentKind = DocumentKind.HTML
    page_index: int = 0
    origin_url: Optional[str] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class FieldCandidate:
    """Raw string for one field plus the rule that produced it."""

    value: str
    strategy: str


@dataclass
class FieldBundle:
    """All field candidates found in one listing row."""

    fields: Dict[str, FieldCandidate]
    row_strategy: str
    row_index: int = 0

    def value(self, name: str) -> Optional[str]:
        candidate = self.fields.get(name)
        return candidate.value if candidate else None

    def strategy(self, name: str) -> Optional[str]:
        candidate = self.fields.get(name)
        return candidate.strategy if candidate else None


class NormalizedListing(BaseModel):
    """
    Canonical candidate produced by the normalizer.

    case_number may be missing here; the upsert engine rejects such
    candidates before touching the store.
    """

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    case_number: Optional[str] = Field(None, description="Court case number, e.g. 2024타경12345")
    item_number: str = Field("1", description="Lot number within the case")
    source_site: str = Field(..., description="Adapter origin identifier")
    court_name: Optional[str] = Field(None, description="Normalized court name")
    address: str = Field("", description="Cleaned property address")
    property_type: PropertyType = Field(PropertyType.OTHER, description="Canonical property category")
    building_name: Optional[str] = Field(None, description="Building or complex name")
    land_area: Optional[Decimal] = Field(None, ge=0, description="Land area in m²")
    building_area: Optional[Decimal] = Field(None, ge=0, description="Building area in m²")
    appraisal_value: int = Field(0, ge=0, description="Appraisal value in KRW")
    minimum_sale_price: int = Field(0, ge=0, description="Minimum sale price in KRW")
    bid_deposit: int = Field(0, ge=0, description="Bid deposit in KRW")
    auction_date: Optional[date] = Field(None, description="Scheduled auction date")
    auction_time: Optional[time] = Field(None, description="Scheduled auction time")
    auction_date_is_estimated: bool = Field(False, description="auction_date came from the fallback policy")
    failure_count: int = Field(0, ge=0, description="Number of failed auction rounds")
    current_status: ListingStatus = Field(ListingStatus.ACTIVE, description="Listing status")
    tenant_status: Optional[str] = Field(None, description="Tenant occupancy note")
    special_notes: Optional[str] = Field(None, description="Free-text remarks")
    source_url: Optional[str] = Field(None, description="Page or endpoint of origin")

    @field_validator("item_number", mode="before")
    @classmethod
    def default_item_number(cls, v: Optional[str]) -> str:
        """Sources that cannot disambiguate lots report item 1."""
        if v is None or not str(v).strip():
            return "1"
        return str(v).strip()

    @property
    def low_confidence(self) -> bool:
        """True when a field had to be filled by a fallback policy."""
        return self.auction_date_is_estimated

    def identity_key(self) -> Tuple[Optional[str], str, str]:
        return (self.case_number, self.item_number, self.source_site)

    def has_identity(self) -> bool:
        return bool(self.case_number and self.case_number.strip())

    def discount_rate(self) -> Optional[float]:
        """Percentage gap between appraisal and minimum sale price."""
        if self.appraisal_value <= 0 or self.minimum_sale_price <= 0:
            return None
        return round((1 - self.minimum_sale_price / self.appraisal_value) * 100, 2)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
