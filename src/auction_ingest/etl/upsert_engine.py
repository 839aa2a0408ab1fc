"""
Property Upsert Engine

Resolves a normalized listing to its identity key and writes it: insert on
first sight, refresh the operational fields on every later sighting. Each
listing is written in its own transaction.
"""
from datetime import datetime
from enum import Enum
from typing import Callable, ContextManager, Optional

from sqlalchemy.orm import Session

from src.auction_ingest.db.base import utc_now
from src.auction_ingest.db.models import Property
from src.auction_ingest.db.repository import CourtRepository, PropertyRepository
from src.auction_ingest.db.session import get_db_session
from src.auction_ingest.models.listing import NormalizedListing
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

# Fields refreshed on every re-observation. Identity and descriptive fields
# keep their first-seen values.
MUTABLE_FIELDS = (
    "appraisal_value",
    "minimum_sale_price",
    "bid_deposit",
    "auction_date",
    "auction_time",
    "auction_date_is_estimated",
    "failure_count",
    "current_status",
    "source_url",
)


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


class InvalidCandidateError(ValueError):
    """Listing cannot be identified; rejected before touching the store."""


class PropertyUpsertEngine:
    """
    Insert-or-update keyed by (case_number, item_number, source_site).

    Store errors (including IntegrityError from a racing insert of the same
    key) are raised to the caller after the transaction rolls back.
    """

    def __init__(self, session_scope: Optional[Callable[[], ContextManager[Session]]] = None):
        """
        Initialize the engine.

        Args:
            session_scope: Callable returning a transactional session context
                (defaults to get_db_session)
        """
        self.session_scope = session_scope or get_db_session
        self.property_repository = PropertyRepository()
        self.court_repository = CourtRepository()

    def upsert(self, listing: NormalizedListing, observed_at: Optional[datetime] = None) -> UpsertOutcome:
        """
        Write one listing.

        Args:
            listing: Normalized listing
            observed_at: Observation timestamp (defaults to now)

        Returns:
            UpsertOutcome.CREATED or UpsertOutcome.UPDATED

        Raises:
            InvalidCandidateError: When the listing has no case number
            SQLAlchemyError: When the write fails
        """
        if not listing.has_identity():
            raise InvalidCandidateError(
                f"Listing from {listing.source_site} has no case number (address={listing.address!r})"
            )

        observed_at = observed_at or utc_now()

        with self.session_scope() as session:
            existing = self.property_repository.get_by_identity(session, *listing.identity_key())

            if existing is not None:
                self._apply_update(existing, listing, observed_at)
                session.flush()
                outcome = UpsertOutcome.UPDATED
                property_id = existing.id
            else:
                record = self._build_record(session, listing, observed_at)
                session.add(record)
                session.flush()
                outcome = UpsertOutcome.CREATED
                property_id = record.id

        logger.debug(
            "listing_upserted",
            outcome=outcome.value,
            property_id=property_id,
            case_number=listing.case_number,
            item_number=listing.item_number,
            source_site=listing.source_site
        )
        return outcome

    def _apply_update(self, record: Property, listing: NormalizedListing, observed_at: datetime) -> None:
        values = self._column_values(listing)
        for field_name in MUTABLE_FIELDS:
            setattr(record, field_name, values[field_name])
        record.last_scraped_at = observed_at
        record.updated_at = observed_at

    def _build_record(self, session: Session, listing: NormalizedListing, observed_at: datetime) -> Property:
        court = None
        if listing.court_name:
            court = self.court_repository.get_or_create(session, listing.court_name)

        return Property(
            court_id=court.id if court else None,
            last_scraped_at=observed_at,
            **self._column_values(listing)
        )

    @staticmethod
    def _column_values(listing: NormalizedListing) -> dict:
        return {
            "case_number": listing.case_number,
            "item_number": listing.item_number,
            "source_site": listing.source_site,
            "address": listing.address,
            "property_type": listing.property_type.value,
            "building_name": listing.building_name,
            "land_area": listing.land_area,
            "building_area": listing.building_area,
            "appraisal_value": listing.appraisal_value,
            "minimum_sale_price": listing.minimum_sale_price,
            "bid_deposit": listing.bid_deposit,
            "auction_date": listing.auction_date,
            "auction_time": listing.auction_time,
            "auction_date_is_estimated": listing.auction_date_is_estimated,
            "failure_count": listing.failure_count,
            "current_status": listing.current_status.value,
            "tenant_status": listing.tenant_status,
            "special_notes": listing.special_notes,
            "source_url": listing.source_url,
        }
