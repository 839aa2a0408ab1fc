"""
Onbid Open API Client

Fetches public-auction listings from the Onbid XML API one page per cursor.
Items are passed through as flat tag/text mappings; the extractor's alias
rules map the tags onto listing fields.
"""
import time
from typing import Callable, Dict, List, Optional, Tuple
from xml.etree import ElementTree as ET

import requests

from config.settings import settings
from src.auction_ingest.models.listing import DocumentKind, RawDocument
from src.auction_ingest.scrapers.base import (
    END_OF_STREAM,
    FetchError,
    FetchResult,
    SourceAdapter,
    retry_fetch,
)
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

ONBID_SOURCE_SITE = "onbid"
ONBID_COURT_NAME = "온비드"
ONBID_HOMEPAGE = "https://www.onbid.co.kr"
SUCCESS_RESULT_CODE = "00"

# Served by DegradedSource when no API key is configured.
ONBID_FALLBACK_RECORDS: List[Dict[str, object]] = [
    {
        "case_number": "ONBID-2024-001",
        "court_name": ONBID_COURT_NAME,
        "property_type": "아파트",
        "address": "서울특별시 강남구 대치동 은마아파트 101동 501호",
        "building_name": "은마아파트",
        "appraisal_value": 1250000000,
        "minimum_sale_price": 875000000,
        "bid_deposit": 87500000,
        "auction_date": "2024-12-25",
        "auction_time": "10:00:00",
        "status": "active",
    },
    {
        "case_number": "ONBID-2024-002",
        "court_name": ONBID_COURT_NAME,
        "property_type": "오피스텔",
        "address": "부산광역시 해운대구 우동 센텀시티 오피스텔 15층",
        "building_name": "센텀시티오피스텔",
        "appraisal_value": 450000000,
        "minimum_sale_price": 315000000,
        "bid_deposit": 31500000,
        "auction_date": "2024-12-26",
        "auction_time": "14:00:00",
        "status": "active",
    },
    {
        "case_number": "ONBID-2024-003",
        "court_name": ONBID_COURT_NAME,
        "property_type": "상가",
        "address": "인천광역시 남동구 구월동 구월시장 내 점포",
        "appraisal_value": 280000000,
        "minimum_sale_price": 196000000,
        "bid_deposit": 19600000,
        "auction_date": "2024-12-27",
        "auction_time": "11:00:00",
        "status": "active",
    },
    {
        "case_number": "ONBID-2024-004",
        "court_name": ONBID_COURT_NAME,
        "property_type": "단독주택",
        "address": "대구광역시 수성구 범어동 단독주택",
        "appraisal_value": 620000000,
        "minimum_sale_price": 434000000,
        "bid_deposit": 43400000,
        "auction_date": "2024-12-28",
        "auction_time": "10:30:00",
        "status": "active",
    },
    {
        "case_number": "ONBID-2024-005",
        "court_name": ONBID_COURT_NAME,
        "property_type": "토지",
        "address": "경기도 성남시 분당구 정자동 토지",
        "appraisal_value": 890000000,
        "minimum_sale_price": 623000000,
        "bid_deposit": 62300000,
        "auction_date": "2024-12-30",
        "auction_time": "15:00:00",
        "status": "active",
    },
]


def parse_onbid_response(xml_text: str) -> Tuple[List[Dict[str, str]], Optional[int]]:
    """
    Parse an Onbid XML response.

    Args:
        xml_text: Response body

    Returns:
        (items as flat tag/text mappings, totalCount or None)

    Raises:
        FetchError: Non-retryable, for malformed XML or a non-success result code
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise FetchError(
            f"Malformed Onbid response: {e}",
            source_site=ONBID_SOURCE_SITE,
            retryable=False
        ) from e

    result_code = (root.findtext("header/resultCode") or "").strip()
    if result_code != SUCCESS_RESULT_CODE:
        result_msg = (root.findtext("header/resultMsg") or "").strip()
        raise FetchError(
            f"Onbid API returned {result_code or 'no result code'}: {result_msg}",
            source_site=ONBID_SOURCE_SITE,
            retryable=False
        )

    items = []
    for item in root.iterfind("body/items/item"):
        record = {
            child.tag: child.text.strip()
            for child in item
            if child.text and child.text.strip()
        }
        if record:
            record.setdefault("court_name", ONBID_COURT_NAME)
            items.append(record)

    total_text = (root.findtext("body/totalCount") or "").strip()
    total_count = int(total_text) if total_text.isdigit() else None
    return items, total_count


class OnbidApiClient(SourceAdapter):
    """
    Structured-API source adapter for Onbid.

    One GET per cursor (pageNo = cursor + 1). Transport errors and 5xx
    responses are retried with linear backoff; API error codes are not.
    """

    source_site = ONBID_SOURCE_SITE

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        rows_per_page: Optional[int] = None,
        category_code: Optional[str] = None,
        timeout: Optional[int] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the Onbid client.

        Args:
            api_key: Service key issued by data.go.kr
            base_url: Override the default API URL (for testing)
            rows_per_page: Items per page
            category_code: Onbid category filter (B = real estate)
            timeout: Per-request timeout in seconds
            max_attempts: Attempt budget per page
            retry_delay: Base backoff delay in seconds
            session: Pre-built requests session
            sleep: Sleep function (injectable for tests)
        """
        self.api_key = api_key
        self.base_url = base_url or settings.onbid_api_base_url
        self.rows_per_page = rows_per_page or settings.onbid_rows_per_page
        self.category_code = category_code or settings.onbid_category_code
        self.timeout = timeout or settings.fetch_timeout_seconds
        self.max_attempts = max_attempts or settings.fetch_max_attempts
        self.retry_delay = settings.fetch_retry_delay_seconds if retry_delay is None else retry_delay
        self.session = session
        self._owns_session = session is None
        self._sleep = sleep
        logger.info("onbid_client_initialized", base_url=self.base_url, rows_per_page=self.rows_per_page)

    def open(self) -> None:
        if self.session is None:
            self.session = requests.Session()
            self.session.headers.update({"User-Agent": settings.crawler_user_agent})
            self._owns_session = True

    def close(self) -> None:
        if self.session is not None and self._owns_session:
            self.session.close()
            self.session = None

    def fetch(self, cursor: int) -> FetchResult:
        """
        Fetch one page of items.

        Args:
            cursor: Zero-based page index

        Returns:
            RECORDS document, or END_OF_STREAM when the page is empty or past totalCount
        """
        self.open()
        params = {
            "serviceKey": self.api_key,
            "numOfRows": self.rows_per_page,
            "pageNo": cursor + 1,
            "cateGoryCd": self.category_code,
        }

        response = retry_fetch(
            lambda: self._request(params),
            source_site=self.source_site,
            max_attempts=self.max_attempts,
            retry_delay=self.retry_delay,
            retry_on=(requests.RequestException,),
            sleep=self._sleep
        )

        items, total_count = parse_onbid_response(response.text)
        logger.info(
            "onbid_page_fetched",
            page_no=cursor + 1,
            items=len(items),
            total_count=total_count
        )

        if not items:
            return END_OF_STREAM
        if total_count is not None and cursor * self.rows_per_page >= total_count:
            return END_OF_STREAM

        return RawDocument(
            source_site=self.source_site,
            content=items,
            kind=DocumentKind.RECORDS,
            page_index=cursor,
            origin_url=ONBID_HOMEPAGE,
        )

    def _request(self, params: dict) -> requests.Response:
        response = self.session.get(self.base_url, params=params, timeout=self.timeout)
        if response.status_code >= 500:
            raise FetchError(
                f"Onbid API server error {response.status_code}",
                source_site=self.source_site,
                retryable=True
            )
        if response.status_code >= 400:
            raise FetchError(
                f"Onbid API rejected request with {response.status_code}",
                source_site=self.source_site,
                retryable=False
            )
        return response
