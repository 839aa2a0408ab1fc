"""
Candidate Normalizer

Turns an extractor FieldBundle into a validated NormalizedListing.
"""
import re
from datetime import date
from typing import Optional

from src.auction_ingest.models.listing import FieldBundle, NormalizedListing
from src.auction_ingest.transformers.address_standardizer import KoreanAddressStandardizer
from src.auction_ingest.transformers.field_normalizer import (
    classify_property_type,
    collapse_whitespace,
    map_status,
    normalize_case_number,
    normalize_court_name,
    parse_area,
    parse_currency,
    parse_date,
    parse_failure_count,
    parse_time,
)
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DEPOSIT_RATE = 10  # percent of minimum sale price


class CandidateNormalizer:
    """
    Applies the field normalizers to one bundle of raw candidates.

    Missing fields degrade to defaults; nothing here raises for bad text.
    """

    def __init__(self, address_standardizer: Optional[KoreanAddressStandardizer] = None):
        self.address_standardizer = address_standardizer or KoreanAddressStandardizer()

    def normalize(
        self,
        bundle: FieldBundle,
        source_site: str,
        source_url: Optional[str] = None,
        today: Optional[date] = None
    ) -> NormalizedListing:
        """
        Build a NormalizedListing from a bundle.

        Args:
            bundle: Field candidates for one row
            source_site: Origin identifier
            source_url: Page or endpoint the row came from
            today: Reference date for the auction-date fallback

        Returns:
            NormalizedListing (case_number may be None)
        """
        minimum_sale_price = parse_currency(bundle.value("minimum_sale_price"))
        bid_deposit = parse_currency(bundle.value("bid_deposit"))
        if not bid_deposit:
            bid_deposit = minimum_sale_price * DEFAULT_DEPOSIT_RATE // 100

        raw_date = bundle.value("auction_date")
        parsed_date = parse_date(raw_date, today=today)
        auction_time = parse_time(bundle.value("auction_time")) or parse_time(raw_date)

        type_text = bundle.value("property_type") or " ".join(
            filter(None, [bundle.value("building_name"), bundle.value("address")])
        )

        listing = NormalizedListing(
            case_number=normalize_case_number(bundle.value("case_number")),
            item_number=self._item_number(bundle.value("item_number")),
            source_site=source_site,
            court_name=normalize_court_name(bundle.value("court_name")),
            address=self.address_standardizer.standardize(bundle.value("address")).full_address or "",
            property_type=classify_property_type(type_text),
            building_name=collapse_whitespace(bundle.value("building_name")) or None,
            land_area=parse_area(bundle.value("land_area")),
            building_area=parse_area(bundle.value("building_area")),
            appraisal_value=parse_currency(bundle.value("appraisal_value")),
            minimum_sale_price=minimum_sale_price,
            bid_deposit=bid_deposit,
            auction_date=parsed_date.value,
            auction_time=auction_time,
            auction_date_is_estimated=parsed_date.is_estimated,
            failure_count=parse_failure_count(bundle.value("failure_count") or bundle.value("status")),
            current_status=map_status(bundle.value("status")),
            tenant_status=collapse_whitespace(bundle.value("tenant_status")) or None,
            special_notes=collapse_whitespace(bundle.value("notes")) or None,
            source_url=source_url,
        )

        if listing.low_confidence:
            logger.debug(
                "auction_date_estimated",
                case_number=listing.case_number,
                raw_value=raw_date,
                estimated=listing.auction_date.isoformat()
            )

        return listing

    @staticmethod
    def _item_number(text: Optional[str]) -> str:
        if not text:
            return "1"
        match = re.search(r"\d+", text)
        return match.group(0) if match else "1"
