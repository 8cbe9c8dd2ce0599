"""
Rental period planning and search URL construction
"""

import math
import re
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from urllib.parse import urlencode

import pandas as pd

from rental_scraper import config
from rental_scraper.models import RentalPeriod, ScrapeRequest


LABEL_FORMAT = "%Y-%m-%d %H:%M:%S"


def compute_base_time(now: Optional[datetime] = None, offset_hours: int = config.BASE_TIME_OFFSET_HOURS) -> time:
    """Time of day shared by every timestamp of one run"""
    now = now or datetime.now()
    return (now + timedelta(hours=offset_hours)).time().replace(microsecond=0)


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic, clamped to the end of shorter months"""
    return (pd.Timestamp(day) + pd.DateOffset(months=months)).date()


def _monthly_flags(start: datetime, end: datetime):
    hours = (end - start).total_seconds() / 3600
    is_monthly = hours >= config.MONTHLY_THRESHOLD_HOURS
    months = math.ceil(hours / config.MONTHLY_THRESHOLD_HOURS) if is_monthly else 0
    return is_monthly, months


def _range_label(start: datetime, end: datetime) -> str:
    return f"{start.strftime(LABEL_FORMAT)} - {end.strftime(LABEL_FORMAT)}"


def daily_period(pickup: date, drop_off: date, base_time: time) -> RentalPeriod:
    start = datetime.combine(pickup, base_time)
    end = datetime.combine(drop_off, base_time)
    is_monthly, months = _monthly_flags(start, end)
    return RentalPeriod("daily", start, end, _range_label(start, end), is_monthly, months)


def weekly_period(pickup: date, base_time: time) -> RentalPeriod:
    start = datetime.combine(pickup, base_time)
    end = datetime.combine(pickup + timedelta(days=7), base_time)
    is_monthly, months = _monthly_flags(start, end)
    return RentalPeriod("weekly", start, end, _range_label(start, end), is_monthly, months)


def monthly_period(pickup: date, drop_off: date, months: int, base_time: time) -> RentalPeriod:
    start = datetime.combine(pickup, base_time)
    end = datetime.combine(add_months(drop_off, months), base_time)
    label = f"{months} Month{'s' if months > 1 else ''} from {start.strftime(LABEL_FORMAT)}"
    return RentalPeriod("monthly", start, end, label, True, months)


def plan_periods(request: ScrapeRequest, base_time: time) -> List[RentalPeriod]:
    """Periods to scrape for every car name, in daily, weekly, monthly order"""
    periods = []
    if request.daily:
        periods.append(daily_period(request.pickup_date, request.drop_off_date, base_time))
    if request.weekly:
        periods.append(weekly_period(request.pickup_date, base_time))
    if request.monthly and request.months > 0:
        periods.append(monthly_period(request.pickup_date, request.drop_off_date, request.months, base_time))
    return periods


def format_car_name_for_url(car_name: str) -> str:
    return re.sub(r"\s+", "/", car_name.strip().lower())


def build_search_url(car_name: str, period: RentalPeriod, base_url: str = config.SEARCH_BASE_URL) -> str:
    params = [
        ("since", period.since_ms),
        ("until", period.until_ms),
        ("duration_months", period.duration_months),
    ]
    if period.is_monthly:
        params.append(("is_monthly", "true"))
    params += [("sort_by", "price"), ("sort_order", "asc")]
    return f"{base_url.rstrip('/')}/{format_car_name_for_url(car_name)}?{urlencode(params)}"
