# carrental/services/availability.py
"""
Availability of a car for a date window.

Checks run in a fixed order and the first failing one is reported, so a car
that is in maintenance says so even if it is also booked.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from carrental.core.errors import AvailabilityConflict
from carrental.db import crud_bookings, crud_cars
from carrental.db.models import Booking, Car

logger = logging.getLogger(__name__)

CAR_NOT_FOUND = "car_not_found"
CAR_INACTIVE = "car_inactive"
CAR_UNAVAILABLE = "car_unavailable"
BLACKOUT = "blackout"
MAINTENANCE = "maintenance"
ALREADY_BOOKED = "already_booked"

_STATUS_TEXT = {
    "inactive": "inactive",
    "maintenance": "in maintenance",
    "rented": "rented",
}


@dataclass
class Availability:
    available: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    car: Optional[Car] = None
    conflicting_bookings: List[Dict[str, Any]] = field(default_factory=list)

    def raise_for_conflict(self) -> None:
        if not self.available:
            raise AvailabilityConflict(
                self.message,
                reason=self.reason,
                conflicting_bookings=self.conflicting_bookings,
            )


def _booking_window(b: Booking) -> Dict[str, Any]:
    return {
        "id": b.id,
        "startDate": b.start_date.isoformat(),
        "endDate": b.end_date.isoformat(),
        "startTime": b.start_time.strftime("%H:%M"),
        "endTime": b.end_time.strftime("%H:%M"),
        "status": b.status,
    }


def _unavailable(reason: str, message: str, car: Optional[Car] = None, **extra) -> Availability:
    return Availability(available=False, reason=reason, message=message, car=car, **extra)


async def check_availability(
    db: AsyncSession,
    car_id: int,
    start_date: date,
    end_date: date,
    exclude_booking_id: Optional[int] = None,
    *,
    car: Optional[Car] = None,
) -> Availability:
    """
    Decide whether car_id can be booked for [start_date, end_date].

    ``car`` may be passed when the caller already holds the row (e.g. locked
    FOR UPDATE); otherwise it is loaded here. ``exclude_booking_id`` keeps a
    booking being edited from conflicting with itself.
    """
    if car is None:
        car = await crud_cars.get_car(db, car_id)
    if car is None:
        return _unavailable(CAR_NOT_FOUND, "Car not found")

    if car.status != "active":
        text = _STATUS_TEXT.get(car.status, car.status)
        return _unavailable(CAR_INACTIVE, f"Car is currently {text}", car)

    if not car.is_available:
        return _unavailable(CAR_UNAVAILABLE, "Car is not available for booking", car)

    if await crud_cars.overlapping_periods(db, car.id, "blackout", start_date, end_date):
        return _unavailable(BLACKOUT, "Car is not available for the selected dates", car)

    if await crud_cars.overlapping_periods(db, car.id, "maintenance", start_date, end_date):
        return _unavailable(
            MAINTENANCE,
            "Car is scheduled for maintenance during the selected dates",
            car,
        )

    conflicts = await crud_bookings.list_conflicting_bookings(
        db, car.id, start_date, end_date, exclude_booking_id
    )
    if conflicts:
        logger.debug("car %s has %d conflicting bookings", car.id, len(conflicts))
        return _unavailable(
            ALREADY_BOOKED,
            "Car is already booked for the selected dates",
            car,
            conflicting_bookings=[_booking_window(b) for b in conflicts],
        )

    return Availability(available=True, car=car)
