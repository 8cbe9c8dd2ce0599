"""
Data handler for spreadsheet export, JSON run snapshots and summaries
"""

import io
import json
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from rental_scraper import config
from rental_scraper.error_handler import ErrorHandler
from rental_scraper.models import ListingRecord, ScrapeOutcome


COLUMNS = list(ListingRecord.COLUMNS.values())


def format_car_name_for_file(car_name: str) -> str:
    return re.sub(r"\s+", "_", car_name.lower()).replace("/", "_")


def extract_amount(text: Any) -> Optional[float]:
    """Extract the numeric amount from a price string such as 'AED 1,250.50'"""
    if text is None or text == config.NOT_AVAILABLE:
        return None
    cleaned = str(text).replace(",", "")
    match = re.search(r"\d+(\.\d+)?", cleaned)
    return float(match.group(0)) if match else None


def records_to_dataframe(records: Iterable[ListingRecord]) -> pd.DataFrame:
    return pd.DataFrame([record.to_dict() for record in records], columns=COLUMNS)


def build_export_filename(car_names: Optional[List[str]] = None, year: Optional[str] = None) -> str:
    parts = []
    if car_names and car_names[0] != "":
        parts.append("_".join(format_car_name_for_file(name) for name in car_names))
    else:
        parts.append("all_cars")
    if year:
        parts.append(str(year))
    return f"car_data_{'_'.join(parts)}_{int(time.time() * 1000)}.xlsx"


class DataHandler:
    def __init__(self, output_folder: str = config.OUTPUT_FOLDER, json_filename: str = config.JSON_FILENAME,
                 error_handler: Optional[ErrorHandler] = None):
        """Initialize data handler with error handling"""
        self.output_folder = Path(output_folder)
        self.json_path = self.output_folder / json_filename
        self.error_handler = error_handler or ErrorHandler(str(self.output_folder))

        try:
            self.output_folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.error_handler.handle_file_error(e, str(self.output_folder), "create")
            raise

    def export_to_excel(self, records: List[ListingRecord], car_names: Optional[List[str]] = None,
                        year: Optional[str] = None) -> Optional[Path]:
        """Write records to an .xlsx workbook; returns the file path, or None when nothing was written"""
        if not records:
            self.error_handler.log_warning("No data to export")
            return None

        df = records_to_dataframe(records)
        excel_path = self.output_folder / build_export_filename(car_names, year)

        # Write to temporary file first, then rename
        temp_path = excel_path.with_name(excel_path.stem + ".tmp.xlsx")
        try:
            df.to_excel(temp_path, index=False, sheet_name=config.EXCEL_SHEET_NAME, engine="openpyxl")
            temp_path.replace(excel_path)
            self.error_handler.log_info(f"Data saved to Excel: {excel_path}")
            return excel_path
        except OSError as e:
            self.error_handler.handle_file_error(e, str(temp_path), "write")
            if temp_path.exists():
                temp_path.unlink()
            return None

    def to_excel_bytes(self, records: List[ListingRecord]) -> bytes:
        buffer = io.BytesIO()
        records_to_dataframe(records).to_excel(
            buffer, index=False, sheet_name=config.EXCEL_SHEET_NAME, engine="openpyxl"
        )
        return buffer.getvalue()

    def save_to_json(self, outcome: ScrapeOutcome) -> bool:
        """Append a snapshot of a scrape run to the JSON history file"""
        snapshot = outcome.to_dict()
        snapshot['saved_at'] = datetime.now().isoformat()
        if outcome.cancelled or outcome.errors:
            snapshot['_partial'] = True

        existing_data = []
        if self.json_path.exists():
            try:
                with open(self.json_path, 'r', encoding='utf-8') as f:
                    existing_data = json.load(f)
                if not isinstance(existing_data, list):
                    existing_data = [existing_data] if existing_data else []
            except json.JSONDecodeError as e:
                # Backup corrupted file
                backup_path = self.json_path.with_suffix('.json.backup')
                self.json_path.replace(backup_path)
                self.error_handler.log_error(
                    "JSON_CORRUPTION",
                    f"Corrupted JSON file backed up to {backup_path}. Starting fresh.",
                    e
                )
                existing_data = []
            except OSError as e:
                self.error_handler.handle_file_error(e, str(self.json_path), "read")
                return False

        existing_data.append(snapshot)

        temp_path = self.json_path.with_suffix('.json.tmp')
        try:
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(existing_data, f, indent=4, ensure_ascii=False)
            temp_path.replace(self.json_path)
            self.error_handler.log_info(f"Run snapshot saved to JSON: {self.json_path}")
            return True
        except OSError as e:
            self.error_handler.handle_file_error(e, str(temp_path), "write")
            if temp_path.exists():
                temp_path.unlink()
            return False

    def load_records(self) -> List[ListingRecord]:
        """Records of the most recent run stored in the JSON history file"""
        if not self.json_path.exists():
            return []
        try:
            with open(self.json_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.error_handler.handle_file_error(e, str(self.json_path), "read")
            return []
        if isinstance(data, dict):
            data = [data]
        if not data:
            return []
        return [ListingRecord.from_dict(row) for row in data[-1].get('data', [])]

    def summarize(self, records: List[ListingRecord]) -> pd.DataFrame:
        """Listing count and min / average actual price per car name and period"""
        df = records_to_dataframe(records)
        if df.empty:
            return pd.DataFrame(columns=["Car Name", "Period", "Listings", "Min Price", "Avg Price"])

        df["Price Value"] = pd.to_numeric(df["Actual Price"].map(extract_amount), errors="coerce")
        summary = (
            df.groupby(["Car Name", "Period"], sort=True)
            .agg(**{
                "Listings": ("Actual Price", "size"),
                "Min Price": ("Price Value", "min"),
                "Avg Price": ("Price Value", "mean"),
            })
            .reset_index()
        )
        return summary
