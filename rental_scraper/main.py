"""
Command-line entry point for the Yango Drive rental scraper
"""

import argparse
import asyncio
import signal
import sys
from datetime import date, timedelta
from typing import List, Optional

from rental_scraper import config
from rental_scraper.models import ScrapeRequest
from rental_scraper.service import ScraperService


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    tomorrow = date.today() + timedelta(days=1)
    parser = argparse.ArgumentParser(description="Scrape Yango Drive rental listings and export them to Excel")
    parser.add_argument("car_names", help='Comma separated car names, e.g. "Toyota Camry, Nissan Sunny"')
    parser.add_argument("--daily", action="store_true", help="Scrape the pickup to drop-off period")
    parser.add_argument("--weekly", action="store_true", help="Scrape a 7 day rental from the pickup date")
    parser.add_argument("--monthly", action="store_true", help="Scrape a monthly rental (needs --months)")
    parser.add_argument("--pickup", type=date.fromisoformat, default=tomorrow, help="Pickup date (YYYY-MM-DD)")
    parser.add_argument("--dropoff", type=date.fromisoformat, default=tomorrow + timedelta(days=2),
                        help="Drop-off date (YYYY-MM-DD)")
    parser.add_argument("--months", type=int, default=0, help="Monthly rental duration in months")
    parser.add_argument("--show-browser", action="store_true", help="Run Chromium with a visible window")
    parser.add_argument("--output", default=config.OUTPUT_FOLDER, help="Output folder")
    parser.add_argument("--filter-car", action="append", default=[], help="Only export this car name (repeatable)")
    parser.add_argument("--year", default=None, help="Only export listings of this model year")
    args = parser.parse_args(argv)

    if not (args.daily or args.weekly or args.monthly):
        args.daily = True
    return args


class ScraperApp:
    """Main application class with graceful shutdown on interrupt"""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.service = ScraperService(args.output, headless=not args.show_browser)

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown"""
        def signal_handler(signum, frame):
            self.service.cancel()
            self.service.error_handler.log_warning(f"Received signal {signum}. Cancelling scrape...")
            print("\n\n⚠️  Interrupt received. Finishing the current step and shutting down gracefully...")

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def build_request(self) -> ScrapeRequest:
        return ScrapeRequest(
            car_names=[name.strip() for name in self.args.car_names.split(",") if name.strip()],
            daily=self.args.daily,
            weekly=self.args.weekly,
            monthly=self.args.monthly,
            pickup_date=self.args.pickup,
            drop_off_date=self.args.dropoff,
            months=self.args.months,
        )

    def run(self) -> int:
        print("=" * 70)
        print(" " * 20 + "YANGO DRIVE RENTAL SCRAPER")
        print("=" * 70)

        self._setup_signal_handlers()
        request = self.build_request()
        print(f"🔄 Scraping {len(request.car_names)} car name(s)...")

        outcome = asyncio.run(self.service.scrape(request))
        self.service.data_handler.save_to_json(outcome)

        if outcome.cancelled:
            print(f"⚠️  {outcome.message}")
            return 130
        if not outcome.success:
            print(f"✗ {outcome.message}")
            return 1

        print(f"✓ {outcome.message}")
        print(f"✓ {len(outcome.records)} listing(s) scraped")

        summary = self.service.data_handler.summarize(self.service.records)
        if not summary.empty:
            print("\n" + "=" * 60)
            print("DATA SUMMARY")
            print("=" * 60)
            print(summary.to_string(index=False))

        excel_path = self.service.export_excel(self.args.filter_car, self.args.year)
        if excel_path is None:
            print("⚠️  No data matches the selected filters, nothing exported")
            return 1
        print(f"\n✓ Excel output: {excel_path}")
        print(f"Log file: {self.service.error_handler.log_file}")
        return 0


def main(argv: Optional[List[str]] = None):
    """Entry point"""
    app = ScraperApp(parse_args(argv))
    sys.exit(app.run())


if __name__ == "__main__":
    main()
