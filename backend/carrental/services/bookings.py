# carrental/services/bookings.py
"""
Booking lifecycle: create, update, cancel and the status transitions

    pending -> confirmed -> active -> completed
    pending | confirmed -> cancelled
    pending | confirmed -> no-show   (admin only)

Writes that depend on availability (create, changing the dates of a
booking) lock the car row with SELECT ... FOR UPDATE and re-check
availability inside the same transaction that writes. On MySQL the
session runs at READ COMMITTED (see db.session), so once the lock is
granted the conflict queries see every booking committed by the request
that held it. Backends that ignore FOR UPDATE (SQLite) are covered by a
compare-and-set on the car's booking_version: the loser's claim updates
no row and the write is rejected.

Status changes, edits and ratings are conditional UPDATEs on the status
the request observed (and rating IS NULL for ratings), so a booking that
changed underneath a request is never overwritten.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from carrental.core.access import authorize
from carrental.core.errors import (
    AlreadyRated,
    AvailabilityConflict,
    InvalidStateTransition,
    NotFound,
    ValidationError,
)
from carrental.db import crud_bookings, crud_cars
from carrental.db.models import Booking, Car
from carrental.schemas.booking import (
    BookingComplete,
    BookingCreate,
    BookingEstimateRequest,
    BookingRate,
    BookingStart,
    BookingUpdate,
)
from carrental.services.availability import ALREADY_BOOKED, check_availability
from carrental.services.pricing import PriceBreakdown, RateCard, calculate_price, money
from carrental.services.validators import (
    Duration,
    check_driver_license,
    check_interval,
    check_location,
    parse_time_of_day,
    validate_interval,
)

logger = logging.getLogger(__name__)

UPDATABLE_STATUSES = ("pending", "confirmed")
CANCEL_NOTICE_HOURS = 24
FULL_REFUND_HOURS = 48
PARTIAL_REFUND_RATE = Decimal("0.5")


@dataclass
class Estimate:
    available: bool
    pricing: PriceBreakdown
    duration: Duration
    reason: Optional[str] = None
    message: Optional[str] = None
    conflicting_bookings: List[Dict[str, Any]] = field(default_factory=list)


@asynccontextmanager
async def _transaction(db: AsyncSession):
    try:
        yield
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def _get_booking_or_404(db: AsyncSession, booking_id: int) -> Booking:
    booking = await crud_bookings.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found")
    return booking


async def _get_car_or_404(db: AsyncSession, car_id: int) -> Car:
    car = await crud_cars.get_car(db, car_id)
    if car is None:
        raise NotFound("Car not found")
    return car


async def _lock_available_car(
    db: AsyncSession,
    car_id: int,
    start_date,
    end_date,
    exclude_booking_id: Optional[int] = None,
) -> Car:
    """
    Lock the car, verify it is free for the dates and claim its
    booking_version. Must run inside _transaction.
    """
    car = await crud_cars.lock_car(db, car_id)
    if car is None:
        raise NotFound("Car not found")
    seen_version = car.booking_version

    availability = await check_availability(
        db, car.id, start_date, end_date, exclude_booking_id, car=car
    )
    if not availability.available:
        logger.warning(
            "car %s unavailable for %s..%s: %s",
            car.id, start_date, end_date, availability.reason,
        )
        availability.raise_for_conflict()

    if not await crud_cars.bump_booking_version(db, car, seen_version):
        logger.warning("concurrent booking write on car %s, rejecting", car.id)
        raise AvailabilityConflict(
            "Car availability changed while booking, please try again",
            reason=ALREADY_BOOKED,
        )
    return car


async def _write_if_unchanged(
    db: AsyncSession,
    booking: Booking,
    values: Dict[str, Any],
    error: Exception,
    *,
    unrated: bool = False,
) -> None:
    """Apply values only if the booking still has the status read earlier."""
    if not await crud_bookings.update_if_status(
        db, booking.id, booking.status, values, unrated=unrated
    ):
        logger.warning("booking %s changed concurrently, rejecting write", booking.id)
        raise error


def _price_columns(price: PriceBreakdown) -> Dict[str, Any]:
    return {
        "insurance_type": price.insurance_type,
        "base_price": price.base_price,
        "insurance_cost": price.insurance_cost,
        "taxes": price.taxes,
        "fees": price.fees,
        "discount": price.discount,
        "total_price": price.total_price,
    }


def _driver_errors(driver, now: datetime) -> List[str]:
    return check_driver_license(driver.license_number, driver.license_expiry, now=now)


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json")


# ---------------------------
# Cancellation policy
# ---------------------------

def hours_until_start(booking: Booking, now: datetime) -> float:
    return (booking.start_at - now).total_seconds() / 3600


def can_be_cancelled(booking: Booking, now: datetime) -> bool:
    if booking.status == "pending":
        return True
    return booking.status == "confirmed" and hours_until_start(booking, now) > CANCEL_NOTICE_HOURS


def refund_amount(booking: Booking, now: datetime) -> Decimal:
    if not can_be_cancelled(booking, now):
        return Decimal("0.00")
    hours = hours_until_start(booking, now)
    total = Decimal(booking.total_price)
    if hours >= FULL_REFUND_HOURS:
        return money(total)
    if hours >= CANCEL_NOTICE_HOURS:
        return money(total * PARTIAL_REFUND_RATE)
    return Decimal("0.00")


# ---------------------------
# Operations
# ---------------------------

async def estimate_booking(
    db: AsyncSession,
    payload: BookingEstimateRequest,
    *,
    now: Optional[datetime] = None,
) -> Estimate:
    """Quote a prospective booking. Reads only."""
    now = now or datetime.now()
    check = validate_interval(
        payload.start_date, payload.end_date, payload.start_time, payload.end_time, now=now
    )
    car = await _get_car_or_404(db, payload.car_id)

    availability = await check_availability(
        db, car.id, check.interval.start_date, check.interval.end_date, car=car
    )
    pricing = calculate_price(RateCard.from_car(car), check.duration, payload.insurance_type)
    return Estimate(
        available=availability.available,
        pricing=pricing,
        duration=check.duration,
        reason=availability.reason,
        message=availability.message,
        conflicting_bookings=availability.conflicting_bookings,
    )


async def create_booking(
    db: AsyncSession,
    actor,
    payload: BookingCreate,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    now = now or datetime.now()

    check = check_interval(
        payload.start_date, payload.end_date, payload.start_time, payload.end_time, now=now
    )
    errors = list(check.errors)
    errors += _driver_errors(payload.driver_details, now)
    errors += check_location(_dump(payload.pickup_location), "Pickup")
    errors += check_location(_dump(payload.dropoff_location), "Dropoff")
    if errors:
        raise ValidationError(errors)

    interval, duration = check.interval, check.duration

    async with _transaction(db):
        car = await _lock_available_car(db, payload.car_id, interval.start_date, interval.end_date)
        price = calculate_price(RateCard.from_car(car), duration, payload.insurance_type)

        booking = Booking(
            user_id=actor.id,
            car_id=car.id,
            start_date=interval.start_date,
            end_date=interval.end_date,
            start_time=interval.start_time,
            end_time=interval.end_time,
            duration_hours=duration.hours,
            duration_days=duration.days,
            pickup_location=_dump(payload.pickup_location),
            dropoff_location=_dump(payload.dropoff_location),
            driver_details=_dump(payload.driver_details),
            payment_method=payload.payment_method,
            special_requests=payload.special_requests,
            currency=price.currency,
            status="pending",
            payment_status="unpaid",
            **_price_columns(price),
        )
        db.add(booking)

    await db.refresh(booking)
    logger.info("booking %s created by user %s for car %s", booking.id, actor.id, car.id)
    return booking


async def get_booking(db: AsyncSession, actor, booking_id: int) -> Booking:
    booking = await _get_booking_or_404(db, booking_id)
    car = await crud_cars.get_car(db, booking.car_id)
    authorize(actor, "booking:view", booking=booking, car=car)
    return booking


async def update_booking(
    db: AsyncSession,
    actor,
    booking_id: int,
    payload: BookingUpdate,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    now = now or datetime.now()
    booking = await _get_booking_or_404(db, booking_id)
    authorize(actor, "booking:update", booking=booking)

    if booking.status not in UPDATABLE_STATUSES:
        raise InvalidStateTransition("Cannot update booking in current status")

    data = payload.model_dump(exclude_unset=True)
    errors: List[str] = []

    requested = (
        data.get("start_date") or booking.start_date,
        data.get("end_date") or booking.end_date,
        data.get("start_time") or booking.start_time,
        data.get("end_time") or booking.end_time,
    )
    current = (booking.start_date, booking.end_date, booking.start_time, booking.end_time)
    parsed = requested[:2] + tuple(parse_time_of_day(t) for t in requested[2:])

    # resubmitting the same interval is not a date change
    check = None
    if parsed != current:
        check = check_interval(*requested, now=now)
        errors += check.errors

    if payload.pickup_location is not None:
        errors += check_location(_dump(payload.pickup_location), "Pickup")
    if payload.dropoff_location is not None:
        errors += check_location(_dump(payload.dropoff_location), "Dropoff")
    if payload.driver_details is not None:
        errors += _driver_errors(payload.driver_details, now)
    if errors:
        raise ValidationError(errors)

    values: Dict[str, Any] = {}
    if payload.pickup_location is not None:
        values["pickup_location"] = _dump(payload.pickup_location)
    if payload.dropoff_location is not None:
        values["dropoff_location"] = _dump(payload.dropoff_location)
    if payload.driver_details is not None:
        values["driver_details"] = _dump(payload.driver_details)
    if payload.payment_method is not None:
        values["payment_method"] = payload.payment_method
    if "special_requests" in data:
        values["special_requests"] = payload.special_requests

    async with _transaction(db):
        if check is not None:
            interval, duration = check.interval, check.duration
            car = await _lock_available_car(
                db, booking.car_id, interval.start_date, interval.end_date, booking.id
            )
            price = calculate_price(RateCard.from_car(car), duration, booking.insurance_type)
            if price.currency != booking.currency:
                raise ValidationError(
                    ["Car pricing currency changed since booking was made; cancel and rebook instead"]
                )
            values.update(
                start_date=interval.start_date,
                end_date=interval.end_date,
                start_time=interval.start_time,
                end_time=interval.end_time,
                duration_hours=duration.hours,
                duration_days=duration.days,
                **_price_columns(price),
            )

        if values:
            await _write_if_unchanged(
                db, booking, values,
                InvalidStateTransition("Cannot update booking in current status"),
            )

    await db.refresh(booking)
    logger.info("booking %s updated by user %s", booking.id, actor.id)
    return booking


async def cancel_booking(
    db: AsyncSession,
    actor,
    booking_id: int,
    reason: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Tuple[Booking, Decimal]:
    """Cancel and return the refund owed. The refund is not paid out here."""
    now = now or datetime.now()
    booking = await _get_booking_or_404(db, booking_id)
    authorize(actor, "booking:cancel", booking=booking)

    if not can_be_cancelled(booking, now):
        raise InvalidStateTransition("Booking cannot be cancelled at this time")

    refund = refund_amount(booking, now)
    cancellation = {
        "reason": reason or "Cancelled by user",
        "cancelled_at": now.isoformat(),
        "cancelled_by": actor.id,
        "refund_amount": str(refund),
    }
    async with _transaction(db):
        await _write_if_unchanged(
            db, booking, {"status": "cancelled", "cancellation": cancellation},
            InvalidStateTransition("Booking cannot be cancelled at this time"),
        )

    await db.refresh(booking)
    logger.info("booking %s cancelled by user %s, refund %s", booking.id, actor.id, refund)
    return booking, refund


async def confirm_booking(db: AsyncSession, actor, booking_id: int) -> Booking:
    booking = await _get_booking_or_404(db, booking_id)
    car = await _get_car_or_404(db, booking.car_id)
    authorize(actor, "booking:confirm", booking=booking, car=car)

    if booking.status != "pending":
        raise InvalidStateTransition("Only pending bookings can be confirmed")

    async with _transaction(db):
        await _write_if_unchanged(
            db, booking, {"status": "confirmed"},
            InvalidStateTransition("Only pending bookings can be confirmed"),
        )

    await db.refresh(booking)
    logger.info("booking %s confirmed by user %s", booking.id, actor.id)
    return booking


async def start_booking(
    db: AsyncSession,
    actor,
    booking_id: int,
    payload: BookingStart,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    """Hand the car over: confirmed -> active with the pre-rental inspection."""
    now = now or datetime.now()
    booking = await _get_booking_or_404(db, booking_id)
    car = await _get_car_or_404(db, booking.car_id)
    authorize(actor, "booking:start", booking=booking, car=car)

    if booking.status != "confirmed":
        raise InvalidStateTransition("Only confirmed bookings can be started")

    start_record = {
        "mileage": payload.mileage if payload.mileage is not None else car.mileage,
        "fuel_level": payload.fuel_level,
        "notes": payload.inspection,
        "inspector_id": actor.id,
        "inspected_at": now.isoformat(),
    }
    async with _transaction(db):
        await _write_if_unchanged(
            db, booking, {"status": "active", "start_record": start_record},
            InvalidStateTransition("Only confirmed bookings can be started"),
        )

    await db.refresh(booking)
    logger.info("booking %s started by user %s", booking.id, actor.id)
    return booking


async def complete_booking(
    db: AsyncSession,
    actor,
    booking_id: int,
    payload: BookingComplete,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    now = now or datetime.now()
    booking = await _get_booking_or_404(db, booking_id)
    car = await _get_car_or_404(db, booking.car_id)
    authorize(actor, "booking:complete", booking=booking, car=car)

    if booking.status != "active":
        raise InvalidStateTransition("Only active bookings can be completed")

    completion = {
        "mileage": payload.mileage,
        "fuel_level": payload.fuel_level,
        "notes": payload.inspection,
        "damages": [d.model_dump() for d in payload.damages],
        "inspector_id": actor.id,
        "inspected_at": now.isoformat(),
    }
    async with _transaction(db):
        await _write_if_unchanged(
            db, booking, {"status": "completed", "completion": completion},
            InvalidStateTransition("Only active bookings can be completed"),
        )

        car = await crud_cars.lock_car(db, booking.car_id)
        car.total_bookings += 1
        if payload.mileage is not None and payload.mileage > car.mileage:
            car.mileage = payload.mileage
        db.add(car)

    await db.refresh(booking)
    logger.info("booking %s completed by user %s", booking.id, actor.id)
    return booking


def _rating_errors(payload: BookingRate) -> List[str]:
    if payload.car_rating is None or payload.service_rating is None:
        return ["Car rating and service rating are required"]
    errors = []
    if not 1 <= payload.car_rating <= 5:
        errors.append("Car rating must be between 1 and 5")
    if not 1 <= payload.service_rating <= 5:
        errors.append("Service rating must be between 1 and 5")
    return errors


async def rate_booking(
    db: AsyncSession,
    actor,
    booking_id: int,
    payload: BookingRate,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    now = now or datetime.now()
    errors = _rating_errors(payload)
    if errors:
        raise ValidationError(errors)

    booking = await _get_booking_or_404(db, booking_id)
    authorize(actor, "booking:rate", booking=booking)

    if booking.status != "completed":
        raise InvalidStateTransition("Only completed bookings can be rated")
    if booking.rating is not None:
        raise AlreadyRated()

    rating = {
        "car_rating": payload.car_rating,
        "service_rating": payload.service_rating,
        "comment": payload.comment,
        "rated_at": now.isoformat(),
    }
    async with _transaction(db):
        await _write_if_unchanged(db, booking, {"rating": rating}, AlreadyRated(), unrated=True)

        car = await crud_cars.lock_car(db, booking.car_id)
        total = car.rating_average * car.rating_count + payload.car_rating
        car.rating_count += 1
        car.rating_average = total / car.rating_count
        db.add(car)

    await db.refresh(booking)
    logger.info("booking %s rated %s by user %s", booking.id, payload.car_rating, actor.id)
    return booking


async def mark_no_show(db: AsyncSession, actor, booking_id: int) -> Booking:
    booking = await _get_booking_or_404(db, booking_id)
    authorize(actor, "booking:no-show", booking=booking)

    if booking.status not in UPDATABLE_STATUSES:
        raise InvalidStateTransition("Only pending or confirmed bookings can be marked as no-show")

    async with _transaction(db):
        await _write_if_unchanged(
            db, booking, {"status": "no-show"},
            InvalidStateTransition("Only pending or confirmed bookings can be marked as no-show"),
        )

    await db.refresh(booking)
    logger.info("booking %s marked no-show by admin %s", booking.id, actor.id)
    return booking
