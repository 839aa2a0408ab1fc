"""
Tests for the source adapter contract helpers
"""
import pytest
from unittest.mock import Mock

from config.settings import Settings
from src.auction_ingest.models.listing import DocumentKind
from src.auction_ingest.scrapers.base import (
    END_OF_STREAM,
    DegradedSource,
    EndOfStream,
    FetchError,
    retry_fetch,
)
from src.auction_ingest.scrapers.court_auction_crawler import CourtAuctionCrawler
from src.auction_ingest.scrapers.manual_text_source import ManualTextSource
from src.auction_ingest.scrapers.onbid_api_client import ONBID_FALLBACK_RECORDS, OnbidApiClient
from src.auction_ingest.scrapers.registry import build_source


class TestEndOfStream:
    def test_singleton_and_falsy(self):
        assert EndOfStream() is END_OF_STREAM
        assert not END_OF_STREAM


class TestRetryFetch:
    """Tests for retry_fetch"""

    def test_returns_first_success(self):
        operation = Mock(side_effect=[ValueError("flaky"), "ok"])
        sleep = Mock()

        result = retry_fetch(operation, "test", max_attempts=3, retry_delay=2, sleep=sleep)

        assert result == "ok"
        sleep.assert_called_once_with(2)

    def test_non_retryable_raised_immediately(self):
        error = FetchError("bad key", source_site="test", retryable=False)
        operation = Mock(side_effect=error)
        sleep = Mock()

        with pytest.raises(FetchError) as exc_info:
            retry_fetch(operation, "test", max_attempts=3, retry_delay=1, sleep=sleep)

        assert exc_info.value is error
        assert operation.call_count == 1
        sleep.assert_not_called()

    def test_unlisted_errors_propagate(self):
        operation = Mock(side_effect=KeyError("bug"))

        with pytest.raises(KeyError):
            retry_fetch(operation, "test", max_attempts=3, retry_delay=1, retry_on=(OSError,), sleep=Mock())

        assert operation.call_count == 1

    def test_budget_exhausted(self):
        operation = Mock(side_effect=OSError("down"))

        with pytest.raises(FetchError) as exc_info:
            retry_fetch(operation, "test", max_attempts=2, retry_delay=1, retry_on=(OSError,), sleep=Mock())

        assert exc_info.value.attempts == 2
        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, OSError)


class TestDegradedSource:
    def test_single_document_then_end(self):
        source = DegradedSource("onbid", [{"case_number": "X-1"}], origin_url="https://example.com")

        with source:
            document = source.fetch(0)
            assert source.fetch(1) is END_OF_STREAM

        assert document.kind == DocumentKind.RECORDS
        assert document.content == [{"case_number": "X-1"}]
        assert document.origin_url == "https://example.com"


class TestBuildSource:
    """Tests for build_source"""

    def test_onbid_without_key_is_degraded(self):
        source = build_source("onbid", Settings(onbid_api_key=None))

        assert isinstance(source, DegradedSource)
        assert len(source.fetch(0).content) == len(ONBID_FALLBACK_RECORDS)

    def test_onbid_with_key(self):
        source = build_source("onbid", Settings(onbid_api_key="secret", onbid_rows_per_page=20))

        assert isinstance(source, OnbidApiClient)
        assert source.api_key == "secret"
        assert source.rows_per_page == 20

    def test_court_auction(self):
        source = build_source("courtauction", Settings(courtauction_court_name="부산지방법원"))

        assert isinstance(source, CourtAuctionCrawler)
        assert source.court_name == "부산지방법원"

    def test_manual(self):
        source = build_source("manual", Settings(manual_data_path="/tmp/listings.txt"))
        assert isinstance(source, ManualTextSource)
        assert str(source.path) == "/tmp/listings.txt"

    def test_unknown_source(self):
        with pytest.raises(ValueError):
            build_source("nowhere")
