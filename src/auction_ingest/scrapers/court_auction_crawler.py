"""
Court Auction Crawler

Drives the court auction site (courtauction.go.kr) in a headless browser.
The site renders its results with scripts and its markup changes without
notice, so every control is located through an ordered list of selectors.
"""
import time
from datetime import date
from typing import Callable, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from config.settings import settings
from src.auction_ingest.models.listing import DocumentKind, RawDocument
from src.auction_ingest.scrapers.base import END_OF_STREAM, FetchResult, SourceAdapter, retry_fetch
from src.auction_ingest.utils.logger import get_logger

logger = get_logger(__name__)

COURT_AUCTION_SOURCE_SITE = "courtauction"

REAL_ESTATE_LINK_SELECTORS = (
    'a[href*="RetrieveRealEstateAuctionDetail"]',
    'a:has-text("부동산")',
)
COURT_SELECT_SELECTORS = (
    "#srnID",
    'select[name="srnID"]',
)
DATE_FROM_SELECTORS = (
    "#termStartDt",
    'input[name="termStartDt"]',
)
DATE_TO_SELECTORS = (
    "#termEndDt",
    'input[name="termEndDt"]',
)
SEARCH_BUTTON_SELECTORS = (
    'input[alt="검색"]',
    'button[type="submit"]',
    ".search_btn",
    'input[type="submit"]',
    ".btn-search",
)
NEXT_PAGE_SELECTORS = (
    'a:has-text("다음")',
    'img[alt="다음"]',
    ".page_next a",
    "a.next",
)


class CourtAuctionCrawler(SourceAdapter):
    """
    Rendering crawler for the court auction search.

    Cursor 0 submits the search for the configured court; each later cursor
    clicks the next-page control. One browser session lives for the adapter
    lifetime.
    """

    source_site = COURT_AUCTION_SOURCE_SITE

    def __init__(
        self,
        court_name: Optional[str] = None,
        base_url: Optional[str] = None,
        search_path: Optional[str] = None,
        headless: Optional[bool] = None,
        navigation_timeout_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        target_date: Optional[date] = None,
        playwright_factory: Callable = sync_playwright,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.court_name = court_name or settings.courtauction_court_name
        self.base_url = (base_url or settings.courtauction_base_url).rstrip("/")
        self.search_path = search_path or settings.courtauction_search_path
        self.headless = settings.crawler_headless if headless is None else headless
        self.navigation_timeout_ms = navigation_timeout_ms or settings.crawler_navigation_timeout_ms
        self.max_attempts = max_attempts or settings.fetch_max_attempts
        self.retry_delay = settings.fetch_retry_delay_seconds if retry_delay is None else retry_delay
        self.target_date = target_date
        self._playwright_factory = playwright_factory
        self._sleep = sleep

        self._playwright_manager = None
        self._playwright = None
        self._browser = None
        self.page = None

        logger.info(
            "court_auction_crawler_initialized",
            base_url=self.base_url,
            court_name=self.court_name,
            headless=self.headless
        )

    @property
    def search_url(self) -> str:
        return f"{self.base_url}{self.search_path}"

    def open(self) -> None:
        if self.page is not None:
            return
        self._playwright_manager = self._playwright_factory()
        self._playwright = self._playwright_manager.start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self.headless)
            context = self._browser.new_context(user_agent=settings.crawler_user_agent, locale="ko-KR")
            self.page = context.new_page()
            self.page.set_default_timeout(self.navigation_timeout_ms)
        except BaseException as e:
            logger.error("browser_session_open_failed", source_site=self.source_site, error=str(e))
            self.close()
            raise
        logger.info("browser_session_opened", source_site=self.source_site)

    def close(self) -> None:
        try:
            if self._browser is not None:
                self._browser.close()
        finally:
            if self._playwright is not None:
                self._playwright.stop()
            self._browser = None
            self._playwright = None
            self._playwright_manager = None
            self.page = None
            logger.info("browser_session_closed", source_site=self.source_site)

    def fetch(self, cursor: int) -> FetchResult:
        """
        Render the results page for a cursor.

        A page without a results table is still returned; the extractor
        decides whether it holds rows.
        """
        self.open()

        if cursor == 0:
            self._with_retry(self._open_search_results)
        else:
            advanced = self._with_retry(self._go_to_next_page)
            if not advanced:
                logger.info("no_next_page", source_site=self.source_site, cursor=cursor)
                return END_OF_STREAM

        return RawDocument(
            source_site=self.source_site,
            content=self.page.content(),
            kind=DocumentKind.HTML,
            page_index=cursor,
            origin_url=self.page.url,
        )

    def _with_retry(self, operation: Callable):
        return retry_fetch(
            operation,
            source_site=self.source_site,
            max_attempts=self.max_attempts,
            retry_delay=self.retry_delay,
            retry_on=(PlaywrightError,),
            sleep=self._sleep
        )

    def _first_present(self, selectors: Sequence[str]):
        """First locator among selectors that matches an element, else None."""
        for selector in selectors:
            locator = self.page.locator(selector)
            if locator.count() > 0:
                return locator.first
        return None

    def _open_search_results(self) -> None:
        self._navigate_to_search_form()
        self._select_court()
        if self.target_date:
            self._fill_date_window(self.target_date)
        self._submit_search()

    def _navigate_to_search_form(self) -> None:
        self.page.goto(self.base_url, wait_until="domcontentloaded")
        link = self._first_present(REAL_ESTATE_LINK_SELECTORS)
        if link is not None:
            link.click()
            self.page.wait_for_load_state("domcontentloaded")
        else:
            logger.debug("real_estate_link_missing", fallback_url=self.search_url)
            self.page.goto(self.search_url, wait_until="domcontentloaded")

    def _select_court(self) -> None:
        court_select = self._first_present(COURT_SELECT_SELECTORS)
        if court_select is None:
            logger.warning("court_select_missing", court_name=self.court_name)
            return
        court_select.select_option(label=self.court_name)

    def _fill_date_window(self, target_date: date) -> None:
        value = target_date.strftime("%Y.%m.%d")
        for selectors in (DATE_FROM_SELECTORS, DATE_TO_SELECTORS):
            field = self._first_present(selectors)
            if field is not None:
                field.fill(value)

    def _submit_search(self) -> None:
        button = self._first_present(SEARCH_BUTTON_SELECTORS)
        if button is None:
            logger.warning("search_button_missing", url=self.page.url)
            return
        button.click()
        self.page.wait_for_load_state("networkidle")

    def _go_to_next_page(self) -> bool:
        next_control = self._first_present(NEXT_PAGE_SELECTORS)
        if next_control is None:
            return False
        next_control.click()
        self.page.wait_for_load_state("networkidle")
        return True
