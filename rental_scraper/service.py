"""
Process-wide scraper state used by the CLI and the Streamlit app
"""

from pathlib import Path
from typing import Dict, List, Optional

from rental_scraper import config
from rental_scraper.data_handler import DataHandler
from rental_scraper.error_handler import ErrorHandler
from rental_scraper.models import ListingRecord, RunContext, ScrapeOutcome, ScrapeRequest
from rental_scraper.orchestrator import ScrapeOrchestrator


class ScraperService:
    """
    Keeps the results of the latest scrape run so they can be filtered and
    exported after the run, and exposes cancellation of the run in progress.
    """

    def __init__(self, output_folder: str = config.OUTPUT_FOLDER, headless: Optional[bool] = None,
                 orchestrator_factory=ScrapeOrchestrator):
        self.error_handler = ErrorHandler(output_folder)
        self.data_handler = DataHandler(output_folder, error_handler=self.error_handler)
        self.headless = headless
        self.orchestrator_factory = orchestrator_factory
        self.records: List[ListingRecord] = []
        self._context: Optional[RunContext] = None

    @property
    def running(self) -> bool:
        return self._context is not None

    async def scrape(self, request: ScrapeRequest) -> ScrapeOutcome:
        ctx = RunContext()
        self._context = ctx
        # Results are visible while the run is in progress
        self.records = ctx.records
        try:
            orchestrator = self.orchestrator_factory(ctx, error_handler=self.error_handler, headless=self.headless)
            return await orchestrator.run(request)
        finally:
            self._context = None

    def restore_last_run(self) -> int:
        """Reload the records of the most recent saved run; ignored while a run is in progress"""
        if self.running:
            return len(self.records)
        self.records = self.data_handler.load_records()
        self.error_handler.log_info(f"Restored {len(self.records)} record(s) from {self.data_handler.json_path}")
        return len(self.records)

    def cancel(self) -> Dict[str, object]:
        if self._context is not None:
            self._context.cancel()
        return {"success": True, "message": "Scraping cancellation requested"}

    def years(self) -> List[str]:
        return sorted({r.year for r in self.records if r.year != config.NOT_AVAILABLE})

    def car_names(self) -> List[str]:
        return sorted({r.car_name for r in self.records})

    def filter_records(self, car_names: Optional[List[str]] = None, year: Optional[str] = None) -> List[ListingRecord]:
        filtered = self.records
        if car_names and car_names[0] != "":
            filtered = [r for r in filtered if r.car_name in car_names]
        if year:
            filtered = [r for r in filtered if r.year == str(year)]
        return list(filtered)

    def export_excel(self, car_names: Optional[List[str]] = None, year: Optional[str] = None) -> Optional[Path]:
        filtered = self.filter_records(car_names, year)
        if not filtered:
            self.error_handler.log_warning("No data matches the selected filters")
            return None
        return self.data_handler.export_to_excel(filtered, car_names, year)
