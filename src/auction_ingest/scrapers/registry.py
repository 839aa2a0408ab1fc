"""
Source Registry

Builds the adapter for a source identifier from settings.
"""
from typing import Optional

from config.settings import Settings, settings as default_settings
from src.auction_ingest.scrapers.base import DegradedSource, SourceAdapter
from src.auction_ingest.scrapers.court_auction_crawler import (
    COURT_AUCTION_SOURCE_SITE,
    CourtAuctionCrawler,
)
from src.auction_ingest.scrapers.manual_text_source import MANUAL_SOURCE_SITE, ManualTextSource
from src.auction_ingest.scrapers.onbid_api_client import (
    ONBID_FALLBACK_RECORDS,
    ONBID_HOMEPAGE,
    ONBID_SOURCE_SITE,
    OnbidApiClient,
)
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

SOURCE_SITES = (COURT_AUCTION_SOURCE_SITE, ONBID_SOURCE_SITE, MANUAL_SOURCE_SITE)


def build_source(source_site: str, config: Optional[Settings] = None) -> SourceAdapter:
    """
    Construct the adapter for a source.

    Onbid without an API key resolves to a DegradedSource over the static
    fallback dataset.

    Args:
        source_site: One of SOURCE_SITES
        config: Settings instance (defaults to the process settings)

    Returns:
        Unopened source adapter

    Raises:
        ValueError: For an unknown source identifier
    """
    config = config or default_settings

    if source_site == COURT_AUCTION_SOURCE_SITE:
        return CourtAuctionCrawler(
            court_name=config.courtauction_court_name,
            base_url=config.courtauction_base_url,
            search_path=config.courtauction_search_path,
            headless=config.crawler_headless,
            navigation_timeout_ms=config.crawler_navigation_timeout_ms,
            max_attempts=config.fetch_max_attempts,
            retry_delay=config.fetch_retry_delay_seconds,
        )

    if source_site == ONBID_SOURCE_SITE:
        if not config.onbid_api_key:
            logger.warning("onbid_api_key_missing", fallback_records=len(ONBID_FALLBACK_RECORDS))
            return DegradedSource(ONBID_SOURCE_SITE, ONBID_FALLBACK_RECORDS, origin_url=ONBID_HOMEPAGE)
        return OnbidApiClient(
            api_key=config.onbid_api_key,
            base_url=config.onbid_api_base_url,
            rows_per_page=config.onbid_rows_per_page,
            category_code=config.onbid_category_code,
            timeout=config.fetch_timeout_seconds,
            max_attempts=config.fetch_max_attempts,
            retry_delay=config.fetch_retry_delay_seconds,
        )

    if source_site == MANUAL_SOURCE_SITE:
        return ManualTextSource(path=config.manual_data_path)

    raise ValueError(f"Unknown source site: {source_site!r} (expected one of {', '.join(SOURCE_SITES)})")
