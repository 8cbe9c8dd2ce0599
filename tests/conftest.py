"""
Shared fixtures: a fake Playwright page / session serving HTML fixtures.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from rental_scraper.error_handler import ErrorHandler, RetryPolicy
from rental_scraper.walker import CardWalker


FIXTURES = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


async def no_sleep(_seconds):
    return None


FAST_EXTRACT_POLICY = RetryPolicy(max_attempts=2, backoff=0, timeout_ms=50, sleep=no_sleep)
FAST_DETAIL_POLICY = RetryPolicy(max_attempts=1, backoff=0, timeout_ms=50, sleep=no_sleep)


class FakeContext:
    def __init__(self, cookies: Optional[List[Dict]] = None):
        self._cookies = cookies or []

    async def cookies(self):
        return list(self._cookies)


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str, index: int = 0):
        self.page = page
        self.selector = selector
        self.index = index

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self.page, self.selector, index)

    async def scroll_into_view_if_needed(self):
        return None

    async def wait_for(self, state: str = "visible", timeout: int = 0):
        if len(self.page.soup().select(self.selector)) <= self.index:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {self.selector}")

    async def click(self, timeout: int = 0):
        if self.page.click_error is not None:
            raise self.page.click_error
        self.page.clicks.append(self.index)
        self.page.current_html = self.page.detail_html or ""


class FakePage:
    """
    Minimal stand-in for playwright.async_api.Page.

    goto() always lands on list_html, clicking a "view deal" button lands on
    detail_html, selectors are matched against the current HTML.
    """

    def __init__(
        self,
        list_html: str,
        detail_html: Optional[str] = None,
        cookies: Optional[List[Dict]] = None,
        content_failures: int = 0,
        click_error: Optional[Exception] = None,
        on_goto: Optional[Callable[["FakePage"], None]] = None,
    ):
        self.list_html = list_html
        self.detail_html = detail_html
        self.current_html = ""
        self.content_failures = content_failures
        self.click_error = click_error
        self.on_goto = on_goto
        self.context = FakeContext(cookies)
        self.visited: List[str] = []
        self.clicks: List[int] = []
        self.closed = False

    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.current_html, "html.parser")

    async def goto(self, url: str, wait_until: str = "load", timeout: int = 0):
        self.visited.append(url)
        self.current_html = self.list_html
        if self.on_goto:
            self.on_goto(self)

    async def wait_for_selector(self, selector: str, state: str = "visible", timeout: int = 0):
        if self.soup().select_one(selector) is None:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def content(self) -> str:
        if self.content_failures > 0:
            self.content_failures -= 1
            raise PlaywrightError("Execution context was destroyed, most likely because of a navigation")
        return self.current_html

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def screenshot(self, **kwargs):
        return b""

    async def close(self):
        self.closed = True


class FakeSession:
    """Stand-in for BrowserSession handing out FakePages"""

    def __init__(self, page_factory: Callable[[], FakePage], error_handler=None, headless=None,
                 enter_error: Optional[Exception] = None):
        self.page_factory = page_factory
        self.enter_error = enter_error
        self.pages: List[FakePage] = []
        self.cookies_seen: List[List[Dict]] = []
        self.entered = False
        self.closed = False

    async def __aenter__(self):
        self.entered = True
        if self.enter_error is not None:
            self.closed = True
            raise self.enter_error
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def new_page(self, cookies=None):
        self.cookies_seen.append(list(cookies or []))
        page = self.page_factory()
        self.pages.append(page)
        return page


def fast_walker(ctx, error_handler=None) -> CardWalker:
    return CardWalker(
        ctx,
        error_handler=error_handler,
        extract_policy=FAST_EXTRACT_POLICY,
        detail_policy=FAST_DETAIL_POLICY,
    )


@pytest.fixture
def error_handler(tmp_path):
    return ErrorHandler(str(tmp_path / "output"))


@pytest.fixture
def list_html():
    return load_fixture("list_two_cards.html")


@pytest.fixture
def deals_html():
    return load_fixture("list_with_deals.html")


@pytest.fixture
def detail_html():
    return load_fixture("detail_page.html")


@pytest.fixture
def empty_html():
    return load_fixture("empty_results.html")
