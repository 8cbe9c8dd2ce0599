"""
Browser session management: one Chromium process and one shared context per run
"""

from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from rental_scraper import config
from rental_scraper.error_handler import ErrorHandler, async_retry_with_backoff


class BrowserSession:
    """Async context manager owning the Playwright browser, context and pages"""

    def __init__(self, error_handler: Optional[ErrorHandler] = None, headless: Optional[bool] = None):
        self.error_handler = error_handler or ErrorHandler(getattr(config, 'OUTPUT_FOLDER', 'output'))
        self.headless = getattr(config, 'HEADLESS_MODE', True) if headless is None else headless
        self.playwright = None
        self.browser = None
        self.context = None

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self):
        self.error_handler.log_info("Initializing browser...")
        self.playwright = await async_playwright().start()
        self.browser = await self._launch()

        self.context = await self.browser.new_context(
            user_agent=getattr(config, 'USER_AGENT', None),
            locale=getattr(config, 'LOCALE', 'en-US'),
            viewport=getattr(config, 'VIEWPORT', {"width": 1920, "height": 1080}),
        )
        await self.context.set_extra_http_headers(dict(getattr(config, 'EXTRA_HTTP_HEADERS', {})))
        self.error_handler.log_info("Browser initialized successfully")

    @async_retry_with_backoff(max_retries=config.LAUNCH_RETRIES, initial_delay=2.0, exceptions=(PlaywrightError,))
    async def _launch(self):
        return await self.playwright.chromium.launch(
            headless=self.headless,
            slow_mo=getattr(config, 'SLOW_MO', 0),
        )

    async def new_page(self, cookies: Optional[List[Dict[str, Any]]] = None):
        """Open a page in the shared context, replaying cookies harvested earlier in the run"""
        if self.context is None:
            raise RuntimeError("Browser session is not started")
        if cookies:
            await self.context.add_cookies(cookies)
        page = await self.context.new_page()
        page.set_default_timeout(getattr(config, 'TIMEOUT', 30000))
        return page

    async def close(self):
        """Close pages, context, browser and Playwright; teardown errors are logged, not raised"""
        cleanup_errors = []

        if self.context is not None:
            for page in list(self.context.pages):
                try:
                    await page.close()
                except Exception as e:
                    cleanup_errors.append(f"Error closing page: {str(e)}")
            try:
                await self.context.close()
            except Exception as e:
                cleanup_errors.append(f"Error closing context: {str(e)}")
            self.context = None

        if self.browser is not None:
            try:
                await self.browser.close()
            except Exception as e:
                cleanup_errors.append(f"Error closing browser: {str(e)}")
            self.browser = None

        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                cleanup_errors.append(f"Error stopping playwright: {str(e)}")
            self.playwright = None

        for error in cleanup_errors:
            self.error_handler.log_error("CLEANUP_ERROR", error)
        if not cleanup_errors:
            self.error_handler.log_info("Browser closed")
