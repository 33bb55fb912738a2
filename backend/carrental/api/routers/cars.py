# carrental/api/routers/cars.py
import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carrental.api.dependencies import get_current_user
from carrental.core.access import authorize
from carrental.core.errors import NotFound, ValidationError
from carrental.db.session import get_db
from carrental.db import crud_bookings, crud_cars
from carrental.schemas.car import (
    CarAvailabilityUpdate,
    CarBase,
    CarCreate,
    CarDetail,
    RateCardIn,
    UnavailablePeriodIn,
    UnavailablePeriodOut,
)

logger = logging.getLogger(__name__)
router = APIRouter()

PLATE_TAKEN = "License plate is already registered"


def _car(car) -> dict:
    return CarBase.model_validate(car).model_dump(by_alias=True)


def _rate_columns(pricing: RateCardIn) -> dict:
    return {
        "hourly_rate": pricing.hourly,
        "daily_rate": pricing.daily,
        "weekly_rate": pricing.weekly,
        "monthly_rate": pricing.monthly,
        "currency": pricing.currency,
    }


async def _owned_car(db: AsyncSession, car_id: int, user):
    car = await crud_cars.get_car(db, car_id)
    if not car:
        raise NotFound("Car not found")
    authorize(user, "car:manage", car=car)
    return car


@router.get("/cars")
async def list_cars(
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    transmission: Optional[str] = None,
    fuel_type: Optional[str] = Query(None, alias="fuelType"),
    seats: Optional[int] = Query(None, ge=1),
    available: bool = False,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    sort_by: Literal["createdAt", "price", "rating", "year"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
):
    """
    Public search. startDate/endDate drop cars that are booked or blacked
    out on any of those days.
    """
    filters = {
        "search": search,
        "category": category,
        "location": location,
        "min_price": min_price,
        "max_price": max_price,
        "transmission": transmission,
        "fuel_type": fuel_type,
        "seats": seats,
        "available": available,
        "start_date": start_date,
        "end_date": end_date,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }
    items, total = await crud_cars.list_cars(db, filters=filters, page=page, per_page=limit)
    return {
        "success": True,
        "count": len(items),
        "total": total,
        "totalPages": (total + limit - 1) // limit,
        "currentPage": page,
        "cars": [_car(c) for c in items],
    }


@router.get("/car/{car_id}")
async def get_car(car_id: int, db: AsyncSession = Depends(get_db)):
    car = await crud_cars.get_car_detail(db, car_id)
    if not car:
        raise NotFound("Car not found")
    return {"success": True, "car": CarDetail.model_validate(car).model_dump(by_alias=True)}


@router.get("/car/{car_id}/availability")
async def get_car_availability(
    car_id: int,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    """
    Calendar view for a date window: blackout overlap plus the bookings
    holding the car. Status and maintenance are left to the estimate.
    """
    car = await crud_cars.get_car(db, car_id)
    if not car:
        raise NotFound("Car not found")

    blackouts = await crud_cars.overlapping_periods(db, car.id, "blackout", start_date, end_date)
    bookings = await crud_bookings.list_conflicting_bookings(db, car.id, start_date, end_date)
    return {
        "success": True,
        "available": bool(car.is_available) and not blackouts,
        "conflictingBookings": [
            {
                "id": b.id,
                "startDate": b.start_date.isoformat(),
                "endDate": b.end_date.isoformat(),
                "startTime": b.start_time.strftime("%H:%M"),
                "endTime": b.end_time.strftime("%H:%M"),
                "status": b.status,
            }
            for b in bookings
        ],
    }


@router.get("/car-categories")
async def get_categories(db: AsyncSession = Depends(get_db)):
    return {"success": True, "categories": await crud_cars.list_categories(db)}


@router.get("/car-locations")
async def get_locations(db: AsyncSession = Depends(get_db)):
    return {"success": True, "locations": await crud_cars.list_locations(db)}


@router.get("/my-cars")
async def my_cars(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    items = await crud_cars.list_cars_for_owner(db, current_user.id)
    return {"success": True, "count": len(items), "cars": [_car(c) for c in items]}


@router.post("/car", status_code=201)
async def create_car(
    body: CarCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    authorize(current_user, "car:create")
    data = body.model_dump(exclude={"pricing"})
    data["license_plate"] = data["license_plate"].strip().upper()
    if await crud_cars.get_car_by_plate(db, data["license_plate"]):
        raise ValidationError([PLATE_TAKEN])

    try:
        car = await crud_cars.create_car(
            db,
            owner_id=current_user.id,
            **data,
            **_rate_columns(body.pricing),
        )
    except IntegrityError:
        # another listing may have taken the plate since the check above
        await db.rollback()
        if await crud_cars.get_car_by_plate(db, data["license_plate"]):
            raise ValidationError([PLATE_TAKEN])
        raise
    logger.info("car %s listed by user %s", car.id, current_user.id)
    return {"success": True, "message": "Car listed successfully", "car": _car(car)}


@router.put("/car/{car_id}/pricing")
async def update_pricing(
    car_id: int,
    body: RateCardIn,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    """
    Replace the rate card. Existing bookings keep the price they were made at.
    """
    car = await _owned_car(db, car_id, current_user)
    car = await crud_cars.set_rate_card(db, car, _rate_columns(body))
    return {"success": True, "message": "Pricing updated", "car": _car(car)}


@router.put("/car/{car_id}/availability")
async def update_availability(
    car_id: int,
    body: CarAvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    car = await _owned_car(db, car_id, current_user)
    car = await crud_cars.update_car(db, car, body.model_dump())
    return {"success": True, "message": "Availability updated", "car": _car(car)}


@router.post("/car/{car_id}/unavailable", status_code=201)
async def add_unavailable_period(
    car_id: int,
    body: UnavailablePeriodIn,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    """
    Add a blackout or maintenance window. Bookings already overlapping it are
    left alone; new bookings for those days are refused.
    """
    car = await _owned_car(db, car_id, current_user)
    period = await crud_cars.add_unavailable_period(
        db,
        car,
        kind=body.kind,
        start_date=body.start_date,
        end_date=body.end_date,
        reason=body.reason,
    )
    return {
        "success": True,
        "period": UnavailablePeriodOut.model_validate(period).model_dump(by_alias=True),
    }


@router.delete("/car/{car_id}/unavailable/{period_id}")
async def remove_unavailable_period(
    car_id: int,
    period_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    await _owned_car(db, car_id, current_user)
    period = await crud_cars.get_unavailable_period(db, car_id, period_id)
    if not period:
        raise NotFound("Unavailable period not found")
    await crud_cars.delete_unavailable_period(db, period)
    return {"success": True, "message": "deleted"}
