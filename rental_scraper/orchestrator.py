"""
Scrape orchestration across car names and rental periods
"""

from datetime import datetime
from typing import Callable, List, Optional

from rental_scraper import config
from rental_scraper.error_handler import CANCELLED_MESSAGE, ErrorHandler, ScrapeCancelled
from rental_scraper.models import RunContext, ScrapeOutcome, ScrapeRequest
from rental_scraper.planner import compute_base_time, plan_periods
from rental_scraper.session import BrowserSession
from rental_scraper.walker import CardWalker


class ScrapeOrchestrator:
    """Runs every (car name, period) scenario of a request, one after the other"""

    def __init__(
        self,
        ctx: RunContext,
        error_handler: Optional[ErrorHandler] = None,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
        walker_factory: Callable[..., CardWalker] = CardWalker,
        clock: Callable[[], datetime] = datetime.now,
        headless: Optional[bool] = None,
    ):
        self.ctx = ctx
        self.error_handler = error_handler or ErrorHandler(getattr(config, 'OUTPUT_FOLDER', 'output'))
        self.session_factory = session_factory
        self.walker_factory = walker_factory
        self.clock = clock
        self.headless = headless

    def _cancelled(self, errors: List[str]) -> ScrapeOutcome:
        self.error_handler.log_warning("Scraping cancelled by user")
        return ScrapeOutcome(
            success=False,
            message=CANCELLED_MESSAGE,
            records=list(self.ctx.records),
            errors=errors,
            cancelled=True,
        )

    async def run(self, request: ScrapeRequest) -> ScrapeOutcome:
        validation_errors = request.validate()
        if validation_errors:
            message = "; ".join(validation_errors)
            self.error_handler.log_warning(f"Invalid scrape request: {message}")
            return ScrapeOutcome(success=False, message=message, errors=validation_errors)

        base_time = compute_base_time(self.clock())
        periods = plan_periods(request, base_time)
        self.error_handler.log_info(f"Base time is {base_time.isoformat()}")

        errors: List[str] = []
        try:
            async with self.session_factory(error_handler=self.error_handler, headless=self.headless) as session:
                walker = self.walker_factory(self.ctx, error_handler=self.error_handler)

                for car_name in request.car_names:
                    if self.ctx.cancelled:
                        return self._cancelled(errors)

                    page = None
                    try:
                        page = await session.new_page(self.ctx.cookies)
                        for period in periods:
                            result = await walker.scrape_scenario(page, car_name, period)
                            if result.success:
                                self.ctx.records.extend(result.records)
                            else:
                                errors.append(
                                    f"{period.kind.capitalize()} scrape failed for {car_name}: {result.message}"
                                )
                    except ScrapeCancelled:
                        return self._cancelled(errors)
                    except Exception as e:
                        self.error_handler.log_error("CAR_ERROR", f"Failed to scrape {car_name}", e)
                        errors.append(f"Failed to scrape {car_name}: {str(e)}")
                    finally:
                        if page is not None:
                            try:
                                await page.close()
                            except Exception as e:
                                self.error_handler.log_error("CLEANUP_ERROR", f"Error closing page: {str(e)}")
        except Exception as e:
            self.error_handler.log_error("SESSION_ERROR", "Browser session failed", e)
            return ScrapeOutcome(
                success=False,
                message=str(e) or type(e).__name__,
                records=list(self.ctx.records),
                errors=errors,
            )

        if not self.ctx.records:
            return ScrapeOutcome(
                success=False,
                message="; ".join(errors) if errors else "No data scraped",
                errors=errors,
            )

        message = (
            f"Scraping completed with errors: {'; '.join(errors)}"
            if errors
            else "Scraping completed successfully"
        )
        self.error_handler.log_info(f"{message} ({len(self.ctx.records)} record(s))")
        return ScrapeOutcome(success=True, message=message, records=list(self.ctx.records), errors=errors)
