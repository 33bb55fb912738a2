from datetime import date

import pytest

from carrental.db import crud_cars
from carrental.services.availability import (
    ALREADY_BOOKED,
    BLACKOUT,
    CAR_INACTIVE,
    CAR_NOT_FOUND,
    CAR_UNAVAILABLE,
    MAINTENANCE,
    check_availability,
)
from carrental.core.errors import AvailabilityConflict

from conftest import add_booking


async def _blackout(db, car, start, end, kind="blackout"):
    return await crud_cars.add_unavailable_period(
        db, car, kind=kind, start_date=start, end_date=end, reason="owner away"
    )


async def test_free_car_is_available(db, car):
    result = await check_availability(db, car.id, date(2030, 1, 10), date(2030, 1, 12))
    assert result.available
    assert result.reason is None
    assert result.car.id == car.id


async def test_missing_car(db):
    result = await check_availability(db, 999, date(2030, 1, 10), date(2030, 1, 12))
    assert not result.available
    assert result.reason == CAR_NOT_FOUND
    assert result.message == "Car not found"


@pytest.mark.parametrize(
    "start, end, available",
    [
        (date(2030, 1, 14), date(2030, 1, 16), False),
        (date(2030, 1, 15), date(2030, 1, 17), False),
        (date(2030, 1, 5), date(2030, 1, 10), False),
        (date(2030, 1, 16), date(2030, 1, 20), True),
        (date(2030, 1, 1), date(2030, 1, 9), True),
    ],
)
async def test_blackout_overlap_is_inclusive(db, car, start, end, available):
    await _blackout(db, car, date(2030, 1, 10), date(2030, 1, 15))
    result = await check_availability(db, car.id, start, end)
    assert result.available is available
    if not available:
        assert result.reason == BLACKOUT
        assert result.message == "Car is not available for the selected dates"


async def test_inactive_status_is_reported_first(db, make_car, renter):
    car = await make_car(status="maintenance", is_available=False)
    await _blackout(db, car, date(2030, 1, 10), date(2030, 1, 15))
    await add_booking(db, car, renter, date(2030, 1, 10), date(2030, 1, 12))

    result = await check_availability(db, car.id, date(2030, 1, 10), date(2030, 1, 12))
    assert result.reason == CAR_INACTIVE
    assert result.message == "Car is currently in maintenance"


async def test_unavailable_flag(db, make_car):
    car = await make_car(is_available=False)
    result = await check_availability(db, car.id, date(2030, 1, 10), date(2030, 1, 12))
    assert result.reason == CAR_UNAVAILABLE


async def test_blackout_before_maintenance_before_bookings(db, car, renter):
    await add_booking(db, car, renter, date(2030, 1, 10), date(2030, 1, 12))
    await _blackout(db, car, date(2030, 1, 11), date(2030, 1, 11), kind="maintenance")

    result = await check_availability(db, car.id, date(2030, 1, 10), date(2030, 1, 12))
    assert result.reason == MAINTENANCE
    assert result.message == "Car is scheduled for maintenance during the selected dates"

    await _blackout(db, car, date(2030, 1, 12), date(2030, 1, 12))
    result = await check_availability(db, car.id, date(2030, 1, 10), date(2030, 1, 12))
    assert result.reason == BLACKOUT


async def test_overlapping_booking_is_listed(db, car, renter):
    booking = await add_booking(db, car, renter, date(2030, 1, 10), date(2030, 1, 12), "confirmed")

    # touching the last day still conflicts
    result = await check_availability(db, car.id, date(2030, 1, 12), date(2030, 1, 14))
    assert result.reason == ALREADY_BOOKED
    assert result.message == "Car is already booked for the selected dates"
    assert result.conflicting_bookings == [
        {
            "id": booking.id,
            "startDate": "2030-01-10",
            "endDate": "2030-01-12",
            "startTime": "10:00",
            "endTime": "10:00",
            "status": "confirmed",
        }
    ]

    with pytest.raises(AvailabilityConflict) as exc:
        result.raise_for_conflict()
    assert exc.value.status_code == 409
    assert exc.value.to_body()["conflictingBookings"][0]["id"] == booking.id


@pytest.mark.parametrize("status", ["completed", "cancelled", "no-show"])
async def test_terminal_bookings_do_not_block(db, car, renter, status):
    await add_booking(db, car, renter, date(2030, 1, 10), date(2030, 1, 12), status)
    result = await check_availability(db, car.id, date(2030, 1, 10), date(2030, 1, 12))
    assert result.available


async def test_excluded_booking_does_not_conflict_with_itself(db, car, renter):
    booking = await add_booking(db, car, renter, date(2030, 1, 10), date(2030, 1, 12), "active")
    result = await check_availability(
        db, car.id, date(2030, 1, 11), date(2030, 1, 13), exclude_booking_id=booking.id
    )
    assert result.available


async def test_other_cars_bookings_are_ignored(db, car, make_car, renter):
    other = await make_car()
    await add_booking(db, other, renter, date(2030, 1, 10), date(2030, 1, 12))
    result = await check_availability(db, car.id, date(2030, 1, 10), date(2030, 1, 12))
    assert result.available
