"""
Card walker: scrapes one (car name, rental period) scenario card by card
"""

from typing import Mapping, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeout

from rental_scraper import config
from rental_scraper.error_handler import (
    ErrorHandler,
    RetryPolicy,
    ScrapeCancelled,
    classify_error,
    retry_async,
)
from rental_scraper.extractor import CardSnapshot, enrich_record, extract_card, parse_html
from rental_scraper.models import ListingRecord, RentalPeriod, RunContext, ScenarioResult
from rental_scraper.planner import build_search_url


DEFAULT_EXTRACT_POLICY = RetryPolicy(
    max_attempts=config.EXTRACT_ATTEMPTS,
    backoff=config.EXTRACT_RETRY_DELAY,
    timeout_ms=config.CARD_WAIT_TIMEOUT,
)
DEFAULT_DETAIL_POLICY = RetryPolicy(
    max_attempts=1,
    backoff=config.DETAIL_SETTLE_DELAY,
    timeout_ms=config.DETAIL_SECTION_TIMEOUT,
)


class CardWalker:
    """
    Walks the result cards of one search URL.

    For every card index the results list is (re)loaded, the card is read
    from the page HTML and, when it has a "view deal" button, the detail page
    is opened to fill mileage and insurance terms. The walk ends at the card
    cap, at the first missing card, when the list stops loading, or when the
    run is cancelled.
    """

    def __init__(
        self,
        ctx: RunContext,
        error_handler: Optional[ErrorHandler] = None,
        selectors: Mapping[str, str] = config.SELECTORS,
        detail_selectors: Mapping[str, str] = config.DETAIL_SELECTORS,
        max_cards: int = config.MAX_CARDS,
        extract_policy: RetryPolicy = DEFAULT_EXTRACT_POLICY,
        detail_policy: RetryPolicy = DEFAULT_DETAIL_POLICY,
        navigation_timeout: int = config.NAVIGATION_TIMEOUT,
    ):
        self.ctx = ctx
        self.error_handler = error_handler or ErrorHandler(getattr(config, 'OUTPUT_FOLDER', 'output'))
        self.selectors = selectors
        self.detail_selectors = detail_selectors
        self.max_cards = max_cards
        self.extract_policy = extract_policy
        self.detail_policy = detail_policy
        self.navigation_timeout = navigation_timeout

    async def scrape_scenario(self, page, car_name: str, period: RentalPeriod) -> ScenarioResult:
        """Scrape up to max_cards listings; ScrapeCancelled propagates to the caller"""
        url = build_search_url(car_name, period)
        scenario = f"{car_name} ({period.label})"
        records = []

        try:
            for index in range(self.max_cards):
                self.ctx.raise_if_cancelled()

                self.error_handler.log_info(f"Loading main page for car {index + 1} in {scenario}")
                try:
                    await self._load_list(page, url)
                except Exception as e:
                    if not records:
                        raise
                    self.error_handler.log_warning(f"Results list stopped loading for {scenario}: {str(e)}")
                    break

                snapshot = await self._read_card(page, index, car_name, period.label)
                if snapshot is None:
                    self.error_handler.log_info(f"No more cards found for {scenario} at index {index}")
                    break

                if snapshot.has_detail:
                    await self._visit_detail(page, snapshot.record, index)
                else:
                    self.error_handler.log_info(f"No View Deal button found for car {index + 1}")

                records.append(snapshot.record)
        except ScrapeCancelled:
            raise
        except Exception as e:
            message = classify_error(e)
            self.error_handler.log_error("SCENARIO_ERROR", f"Scrape failed for {scenario}: {str(e)}")
            await self.error_handler.capture_screenshot(page, "SCENARIO_ERROR")
            return ScenarioResult(success=False, message=message)

        if not records:
            self.error_handler.log_warning(f"No data scraped for {scenario}")
            return ScenarioResult(success=False, message=f"No data found for {scenario}")

        self.error_handler.log_info(f"Scraped {len(records)} card(s) for {scenario}")
        return ScenarioResult(success=True, records=records)

    async def _load_list(self, page, url: str):
        """Navigate to the results list and wait until title, features and price are visible"""
        await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout)
        for key in ("title", "features", "price"):
            await page.wait_for_selector(
                self.selectors[key], state="visible", timeout=self.extract_policy.timeout_ms
            )

    async def _read_card(self, page, index: int, car_name: str, period_label: str) -> Optional[CardSnapshot]:
        async def read():
            html = await page.content()
            return extract_card(
                parse_html(html), index, car_name, period_label, self.selectors, self.max_cards
            )

        def on_retry(attempt: int, error: Exception):
            self.error_handler.log_warning(
                f"Error reading card {index + 1} (attempt {attempt}): {str(error)}. Retrying..."
            )

        try:
            return await retry_async(self.extract_policy, read, on_retry=on_retry)
        except ScrapeCancelled:
            raise
        except Exception as e:
            self.error_handler.log_error("EXTRACTION_ERROR", f"Giving up on card {index + 1}: {str(e)}")
            return None

    async def _visit_detail(self, page, record: ListingRecord, index: int):
        """Follow the card's "view deal" button; failures leave the record's detail fields at N/A"""
        try:
            button = page.locator(self.selectors["detail_button"]).nth(index)
            await button.scroll_into_view_if_needed()
            await button.wait_for(state="visible", timeout=config.BUTTON_VISIBLE_TIMEOUT)
            self.error_handler.log_info(f"Clicking View Deal for car {index + 1}")
            await button.click(timeout=config.BUTTON_CLICK_TIMEOUT)
            await self.detail_policy.sleep(self.detail_policy.backoff)

            try:
                await page.wait_for_selector(
                    self.detail_selectors["island"], state="visible", timeout=self.detail_policy.timeout_ms
                )
            except PlaywrightTimeout:
                self.error_handler.log_warning(f"Mileage section not found for car {index + 1}")

            enrich_record(record, parse_html(await page.content()))
            self.error_handler.log_info(
                f"Scraped detail page for car {index + 1}: "
                f"Mileage=\"{record.mileage}\", Insurance=\"{record.insurance_options}\""
            )

            self.ctx.cookies = await page.context.cookies()
        except Exception as e:
            await self.error_handler.handle_playwright_error(page, e, f"detail page for car {index + 1}")
            record.mileage = config.NOT_AVAILABLE
            record.insurance_options = config.NOT_AVAILABLE
