"""
Source Adapters

Court auction crawler, Onbid API client, manual template reader, and the
degraded fallback source.
"""
from src.auction_ingest.scrapers.base import (
    END_OF_STREAM,
    DegradedSource,
    EndOfStream,
    FetchError,
    SourceAdapter,
)
from src.auction_ingest.scrapers.court_auction_crawler import CourtAuctionCrawler
from src.auction_ingest.scrapers.manual_text_source import ManualTextSource, write_template
from src.auction_ingest.scrapers.onbid_api_client import ONBID_FALLBACK_RECORDS, OnbidApiClient
from src.auction_ingest.scrapers.registry import SOURCE_SITES, build_source

__all__ = [
    "END_OF_STREAM",
    "DegradedSource",
    "EndOfStream",
    "FetchError",
    "SourceAdapter",
    "CourtAuctionCrawler",
    "ManualTextSource",
    "write_template",
    "ONBID_FALLBACK_RECORDS",
    "OnbidApiClient",
    "SOURCE_SITES",
    "build_source",
]
