"""
Unit tests for court_auction_crawler module
"""
import pytest
from datetime import date
from unittest.mock import MagicMock, Mock

from playwright.sync_api import Error as PlaywrightError

from src.auction_ingest.models.listing import DocumentKind
from src.auction_ingest.scrapers.base import END_OF_STREAM, FetchError
from src.auction_ingest.scrapers.court_auction_crawler import CourtAuctionCrawler

RESULTS_HTML = "<html><body><table><tr><td>2024타경12345</td></tr></table></body></html>"


def make_locator(present: bool) -> MagicMock:
    locator = MagicMock()
    locator.count.return_value = 1 if present else 0
    return locator


class FakeBrowser:
    """Wires a MagicMock playwright factory to a page whose locators are configurable."""

    def __init__(self, present_selectors=()):
        self.factory = MagicMock()
        playwright = self.factory.return_value.start.return_value
        self.playwright = playwright
        self.browser = playwright.chromium.launch.return_value
        self.page = self.browser.new_context.return_value.new_page.return_value
        self.page.content.return_value = RESULTS_HTML
        self.page.url = "https://www.courtauction.go.kr/results"

        self.locators = {selector: make_locator(True) for selector in present_selectors}
        self.page.locator.side_effect = lambda selector: self.locators.setdefault(selector, make_locator(False))

    def crawler(self, **kwargs) -> CourtAuctionCrawler:
        return CourtAuctionCrawler(
            court_name="서울중앙지방법원",
            base_url="https://www.courtauction.go.kr/",
            search_path="/search",
            headless=True,
            navigation_timeout_ms=5000,
            max_attempts=2,
            retry_delay=1,
            playwright_factory=self.factory,
            sleep=kwargs.pop("sleep", Mock()),
            **kwargs
        )


class TestCourtAuctionCrawler:
    """Tests for CourtAuctionCrawler"""

    def test_first_page_submits_search(self):
        fake = FakeBrowser(['a:has-text("부동산")', "#srnID", 'input[alt="검색"]'])
        crawler = fake.crawler()

        with crawler:
            document = crawler.fetch(0)

        assert document.kind == DocumentKind.HTML
        assert document.content == RESULTS_HTML
        assert document.origin_url == "https://www.courtauction.go.kr/results"
        fake.page.goto.assert_called_once_with("https://www.courtauction.go.kr", wait_until="domcontentloaded")
        fake.locators["#srnID"].first.select_option.assert_called_once_with(label="서울중앙지방법원")
        fake.locators['input[alt="검색"]'].first.click.assert_called_once()
        fake.page.set_default_timeout.assert_called_once_with(5000)

    def test_missing_link_falls_back_to_search_url(self):
        fake = FakeBrowser()
        crawler = fake.crawler()

        crawler.fetch(0)

        assert fake.page.goto.call_args_list[-1].args == ("https://www.courtauction.go.kr/search",)

    def test_target_date_fills_window(self):
        fake = FakeBrowser(["#termStartDt", "#termEndDt"])
        crawler = fake.crawler(target_date=date(2024, 12, 15))

        crawler.fetch(0)

        fake.locators["#termStartDt"].first.fill.assert_called_once_with("2024.12.15")
        fake.locators["#termEndDt"].first.fill.assert_called_once_with("2024.12.15")

    def test_next_page(self):
        fake = FakeBrowser(['a:has-text("다음")'])
        crawler = fake.crawler()

        document = crawler.fetch(1)

        assert document.page_index == 1
        fake.locators['a:has-text("다음")'].first.click.assert_called_once()

    def test_no_next_page_ends_stream(self):
        fake = FakeBrowser()
        crawler = fake.crawler()

        assert crawler.fetch(3) is END_OF_STREAM

    def test_navigation_error_is_retried(self):
        fake = FakeBrowser()
        fake.page.goto.side_effect = [PlaywrightError("Timeout 5000ms exceeded"), None, None]
        sleep = Mock()
        crawler = fake.crawler(sleep=sleep)

        document = crawler.fetch(0)

        assert document.content == RESULTS_HTML
        sleep.assert_called_once_with(1)

    def test_navigation_budget_exhausted(self):
        fake = FakeBrowser()
        fake.page.goto.side_effect = PlaywrightError("net::ERR_CONNECTION_REFUSED")
        crawler = fake.crawler()

        with pytest.raises(FetchError) as exc_info:
            crawler.fetch(0)

        assert exc_info.value.attempts == 2

    def test_close_releases_browser(self):
        fake = FakeBrowser()
        crawler = fake.crawler()

        with crawler:
            crawler.fetch(0)

        fake.browser.close.assert_called_once()
        fake.playwright.stop.assert_called_once()
        assert crawler.page is None

    def test_failed_launch_stops_playwright(self):
        fake = FakeBrowser()
        fake.playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")
        crawler = fake.crawler()

        with pytest.raises(PlaywrightError):
            with crawler:
                pass

        fake.playwright.stop.assert_called_once()
        fake.browser.close.assert_not_called()
        assert crawler.page is None

    def test_failed_page_closes_browser(self):
        fake = FakeBrowser()
        fake.browser.new_context.return_value.new_page.side_effect = PlaywrightError("Target closed")
        crawler = fake.crawler()

        with pytest.raises(PlaywrightError):
            with crawler:
                pass

        fake.browser.close.assert_called_once()
        fake.playwright.stop.assert_called_once()

    def test_close_stops_playwright_when_browser_close_fails(self):
        fake = FakeBrowser()
        fake.browser.close.side_effect = PlaywrightError("already closed")
        crawler = fake.crawler()
        crawler.open()

        with pytest.raises(PlaywrightError):
            crawler.close()

        fake.playwright.stop.assert_called_once()
