"""
Data structures shared by the scraper: records, periods, requests and run state
"""

import re
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from rental_scraper.config import NOT_AVAILABLE
from rental_scraper.error_handler import ScrapeCancelled


INVALID_CAR_NAME_CHARS = re.compile(r"[^A-Za-z0-9 -]")

PERIOD_KINDS = ("daily", "weekly", "monthly")


@dataclass
class ListingRecord:
    """One scraped vehicle offer. Missing values hold the "N/A" sentinel."""

    car_name: str = NOT_AVAILABLE
    model: str = NOT_AVAILABLE
    year: str = NOT_AVAILABLE
    description: str = NOT_AVAILABLE
    cross_price: str = NOT_AVAILABLE
    actual_price: str = NOT_AVAILABLE
    total: str = NOT_AVAILABLE
    mileage: str = NOT_AVAILABLE
    insurance_options: str = NOT_AVAILABLE
    original_vehicle: str = NOT_AVAILABLE
    period: str = NOT_AVAILABLE

    # attribute name -> spreadsheet column
    COLUMNS = {
        "car_name": "Car Name",
        "model": "Model",
        "year": "Year",
        "description": "Description",
        "cross_price": "Cross Price",
        "actual_price": "Actual Price",
        "total": "Total",
        "mileage": "Mileage",
        "insurance_options": "Insurance & Options",
        "original_vehicle": "Original Vehicle",
        "period": "Period",
    }

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or (isinstance(value, str) and not value.strip()):
                setattr(self, f.name, NOT_AVAILABLE)

    def to_dict(self) -> Dict[str, str]:
        return {column: getattr(self, attr) for attr, column in self.COLUMNS.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListingRecord":
        kwargs = {}
        for attr, column in cls.COLUMNS.items():
            value = data.get(column, data.get(attr))
            kwargs[attr] = str(value) if value is not None else NOT_AVAILABLE
        return cls(**kwargs)


@dataclass(frozen=True)
class RentalPeriod:
    kind: str
    start: datetime
    end: datetime
    label: str
    is_monthly: bool
    duration_months: int = 0

    def __post_init__(self):
        if self.kind not in PERIOD_KINDS:
            raise ValueError(f"Unknown rental period kind: {self.kind}")
        if self.end <= self.start:
            raise ValueError(
                f"Rental period end {self.end.isoformat()} must be after start {self.start.isoformat()}"
            )

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    @property
    def since_ms(self) -> int:
        return int(self.start.timestamp() * 1000)

    @property
    def until_ms(self) -> int:
        return int(self.end.timestamp() * 1000)


def validate_car_name(car_name: Optional[str]) -> Optional[str]:
    """Return a validation message, or None when the name is usable"""
    if not car_name or len(car_name) < 3:
        return f'Car name "{car_name or ""}" must be at least 3 characters long'
    if INVALID_CAR_NAME_CHARS.search(car_name):
        return (
            f'Car name "{car_name}" contains invalid characters. '
            "Use letters, numbers, spaces, or hyphens only."
        )
    return None


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class ScrapeRequest:
    car_names: List[str]
    daily: bool = False
    weekly: bool = False
    monthly: bool = False
    pickup_date: Optional[date] = None
    drop_off_date: Optional[date] = None
    months: int = 0

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ScrapeRequest":
        """Build a request from the JSON shape used by the web front-end"""
        monthly_data = payload.get("monthlyData") or {}
        car_names = payload.get("carNames") or []
        if isinstance(car_names, str):
            car_names = car_names.split(",")
        return cls(
            car_names=[name.strip() for name in car_names if name and name.strip()],
            daily=bool(payload.get("dailyCheck")),
            weekly=bool(payload.get("weeklyCheck")),
            monthly=bool(payload.get("monthlyCheck")),
            pickup_date=_parse_date(payload.get("pickupDate")),
            drop_off_date=_parse_date(payload.get("dropOffDate")),
            months=int(monthly_data.get("months") or 0),
        )

    def validate(self) -> List[str]:
        """Collect every validation problem so they can be reported together"""
        errors = []
        if not self.car_names:
            errors.append("Please enter at least one car name")
        for car_name in self.car_names:
            message = validate_car_name(car_name)
            if message:
                errors.append(message)

        if not (self.daily or self.weekly or self.monthly):
            errors.append("Select at least one rental period (daily, weekly or monthly)")
        if self.pickup_date is None:
            errors.append("Pickup date is required")
        if (self.daily or self.monthly) and self.drop_off_date is None:
            errors.append("Drop-off date is required")
        if self.pickup_date and self.drop_off_date:
            if self.daily and self.drop_off_date <= self.pickup_date:
                errors.append("Drop-off date must be after pickup date")
            elif self.monthly and self.drop_off_date < self.pickup_date:
                errors.append("Drop-off date cannot be before pickup date")
        if self.months < 0:
            errors.append("Months must be a positive number")
        return errors


@dataclass
class ScenarioResult:
    success: bool
    records: List[ListingRecord] = field(default_factory=list)
    message: str = ""


@dataclass
class ScrapeOutcome:
    success: bool
    message: str
    records: List[ListingRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": [record.to_dict() for record in self.records],
            "errors": list(self.errors),
            "cancelled": self.cancelled,
        }


@dataclass
class RunContext:
    """State owned by one scrape run and threaded through every component"""

    records: List[ListingRecord] = field(default_factory=list)
    cookies: List[Dict[str, Any]] = field(default_factory=list)
    _cancelled: bool = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self):
        if self._cancelled:
            raise ScrapeCancelled()
