# carrental/services/validators.py
"""
Pure input validators for bookings.

Each validator collects every violated rule instead of stopping at the
first one, so the caller can show all problems at once.
"""
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, List, Mapping, Optional

from carrental.core.errors import InvalidInterval

MIN_BOOKING_HOURS = 1
MAX_BOOKING_DAYS = 30
LICENSE_MIN_VALID_DAYS = 30

_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


@dataclass(frozen=True)
class Duration:
    hours: int
    days: int


@dataclass(frozen=True)
class RentalInterval:
    start_date: date
    end_date: date
    start_time: time
    end_time: time

    @property
    def start(self) -> datetime:
        return datetime.combine(self.start_date, self.start_time)

    @property
    def end(self) -> datetime:
        return datetime.combine(self.end_date, self.end_time)


@dataclass
class IntervalCheck:
    interval: Optional[RentalInterval] = None
    duration: Optional[Duration] = None
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def parse_time_of_day(value: Any) -> Optional[time]:
    """Accept a ``time`` or an ``HH:MM`` string; None when malformed."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        return None
    m = _TIME_RE.match(value.strip())
    if not m:
        return None
    return time(int(m.group(1)), int(m.group(2)))


def check_interval(
    start_date: date,
    end_date: date,
    start_time: Any,
    end_time: Any,
    *,
    now: datetime,
) -> IntervalCheck:
    result = IntervalCheck()

    start_t = parse_time_of_day(start_time)
    end_t = parse_time_of_day(end_time)
    if start_t is None:
        result.errors.append("Start time must be in HH:MM format (00:00-23:59)")
    if end_t is None:
        result.errors.append("End time must be in HH:MM format (00:00-23:59)")
    if start_t is None or end_t is None:
        return result

    interval = RentalInterval(start_date, end_date, start_t, end_t)
    start, end = interval.start, interval.end

    if start <= now:
        result.errors.append("Start date and time must be in the future")
    if end <= start:
        result.errors.append("End date and time must be after start date and time")

    span = end - start
    if span < timedelta(hours=MIN_BOOKING_HOURS):
        result.errors.append("Booking must be at least 1 hour long")
    if span > timedelta(days=MAX_BOOKING_DAYS):
        result.errors.append(f"Booking cannot be more than {MAX_BOOKING_DAYS} days long")

    if result.is_valid:
        seconds = span.total_seconds()
        result.interval = interval
        result.duration = Duration(
            hours=math.ceil(seconds / 3600),
            days=math.ceil(seconds / 86400),
        )
    return result


def validate_interval(
    start_date: date,
    end_date: date,
    start_time: Any,
    end_time: Any,
    *,
    now: datetime,
) -> IntervalCheck:
    """Like check_interval but raises InvalidInterval listing every violation."""
    result = check_interval(start_date, end_date, start_time, end_time, now=now)
    if not result.is_valid:
        raise InvalidInterval(result.errors)
    return result


def check_driver_license(
    license_number: Optional[str],
    license_expiry: Optional[date],
    *,
    now: datetime,
) -> List[str]:
    errors: List[str] = []

    if not license_number or not license_number.strip():
        errors.append("Driver license number is required")

    if license_expiry is None:
        errors.append("Driver license expiry date is required")
        return errors

    expiry = datetime.combine(license_expiry, time.min)
    if expiry <= now:
        errors.append("Driver license has expired")
    # measured from today, not from the booking start
    if expiry <= now + timedelta(days=LICENSE_MIN_VALID_DAYS):
        errors.append("Driver license expires too soon for this booking")
    return errors


def check_location(location: Optional[Mapping[str, Any]], label: str) -> List[str]:
    location = location or {}
    errors: List[str] = []
    for key in ("address", "city", "country"):
        value = location.get(key)
        if not value or not str(value).strip():
            errors.append(f"{label} {key} is required")
    return errors
