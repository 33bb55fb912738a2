# carrental/db/crud_cars.py
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from carrental.db.models import (
    BLOCKING_STATUSES,
    Booking,
    Car,
    CarUnavailablePeriod,
)

_SORT_COLUMNS = {
    "createdAt": Car.created_at,
    "price": Car.daily_rate,
    "rating": Car.rating_average,
    "year": Car.year,
}


async def get_car(db: AsyncSession, car_id: int) -> Car | None:
    res = await db.execute(select(Car).where(Car.id == car_id))
    return res.scalars().first()


async def get_car_by_plate(db: AsyncSession, license_plate: str) -> Car | None:
    res = await db.execute(select(Car).where(Car.license_plate == license_plate))
    return res.scalars().first()


async def get_car_detail(db: AsyncSession, car_id: int) -> Car | None:
    """
    Car with owner and unavailable periods loaded eagerly so schema
    validation never triggers a lazy load.
    """
    stmt = (
        select(Car)
        .options(selectinload(Car.owner), selectinload(Car.unavailable_periods))
        .where(Car.id == car_id)
    )
    res = await db.execute(stmt)
    return res.scalars().first()


async def lock_car(db: AsyncSession, car_id: int) -> Car | None:
    """
    SELECT ... FOR UPDATE on the car row. Fresh values are forced into the
    identity map so booking_version is the committed one.
    """
    stmt = (
        select(Car)
        .where(Car.id == car_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    res = await db.execute(stmt)
    return res.scalars().first()


async def bump_booking_version(db: AsyncSession, car: Car, seen_version: int) -> bool:
    """
    Compare-and-set on the car's booking_version. False means another
    booking write for this car committed since seen_version was read.
    """
    res = await db.execute(
        update(Car)
        .where(Car.id == car.id, Car.booking_version == seen_version)
        .values(booking_version=seen_version + 1)
    )
    return res.rowcount == 1


async def overlapping_periods(
    db: AsyncSession,
    car_id: int,
    kind: str,
    start_date: date,
    end_date: date,
) -> List[CarUnavailablePeriod]:
    # inclusive overlap: touching endpoints conflict
    stmt = (
        select(CarUnavailablePeriod)
        .where(CarUnavailablePeriod.car_id == car_id)
        .where(CarUnavailablePeriod.kind == kind)
        .where(CarUnavailablePeriod.start_date <= end_date)
        .where(CarUnavailablePeriod.end_date >= start_date)
        .order_by(CarUnavailablePeriod.start_date)
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def list_cars(
    db: AsyncSession,
    filters: dict = None,
    page: int = 1,
    per_page: int = 12,
) -> Tuple[List[Car], int]:
    filters = filters or {}
    where_clauses = []

    search = filters.get("search")
    if search:
        like = f"%{search}%"
        where_clauses.append(
            or_(
                Car.make.ilike(like),
                Car.model.ilike(like),
                Car.city.ilike(like),
                Car.state.ilike(like),
            )
        )
    if filters.get("category"):
        where_clauses.append(Car.category == filters["category"].lower())
    location = filters.get("location")
    if location:
        like = f"%{location}%"
        where_clauses.append(
            or_(Car.city.ilike(like), Car.state.ilike(like), Car.country.ilike(like))
        )
    if filters.get("min_price") is not None:
        where_clauses.append(Car.daily_rate >= filters["min_price"])
    if filters.get("max_price") is not None:
        where_clauses.append(Car.daily_rate <= filters["max_price"])
    if filters.get("transmission"):
        where_clauses.append(Car.transmission == filters["transmission"])
    if filters.get("fuel_type"):
        where_clauses.append(Car.fuel_type == filters["fuel_type"])
    if filters.get("seats") is not None:
        where_clauses.append(Car.seats >= filters["seats"])
    if filters.get("available"):
        where_clauses.append(Car.is_available.is_(True))
        where_clauses.append(Car.status == "active")

    start, end = filters.get("start_date"), filters.get("end_date")
    if start and end:
        booked = select(Booking.car_id).where(
            Booking.status.in_(BLOCKING_STATUSES),
            Booking.start_date <= end,
            Booking.end_date >= start,
        )
        blacked_out = select(CarUnavailablePeriod.car_id).where(
            CarUnavailablePeriod.kind == "blackout",
            CarUnavailablePeriod.start_date <= end,
            CarUnavailablePeriod.end_date >= start,
        )
        where_clauses.append(Car.id.not_in(booked))
        where_clauses.append(Car.id.not_in(blacked_out))

    stmt = select(Car)
    if where_clauses:
        stmt = stmt.where(and_(*where_clauses))

    column = _SORT_COLUMNS.get(filters.get("sort_by") or "createdAt", Car.created_at)
    if filters.get("sort_order") == "asc":
        stmt = stmt.order_by(column.asc(), Car.id.asc())
    else:
        stmt = stmt.order_by(column.desc(), Car.id.desc())

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    offset = (page - 1) * per_page
    res = await db.execute(stmt.offset(offset).limit(per_page))
    return list(res.scalars().all()), int(total)


async def list_cars_for_owner(db: AsyncSession, owner_id: int) -> List[Car]:
    res = await db.execute(
        select(Car).where(Car.owner_id == owner_id).order_by(Car.id.desc())
    )
    return list(res.scalars().all())


async def list_categories(db: AsyncSession) -> List[Dict[str, Any]]:
    """
    Every category that has at least one listing, with the number of
    bookable (active & available) cars in it.
    """
    all_categories = await db.execute(select(Car.category).distinct())
    counts_res = await db.execute(
        select(Car.category, func.count(Car.id).label("count"))
        .where(Car.status == "active")
        .where(Car.is_available.is_(True))
        .group_by(Car.category)
    )
    counts = {r.category: int(r.count) for r in counts_res.all()}
    items = [{"name": c, "count": counts.get(c, 0)} for c in all_categories.scalars().all()]
    items.sort(key=lambda item: (-item["count"], item["name"]))
    return items


async def list_locations(db: AsyncSession, limit: int = 20) -> List[Dict[str, Any]]:
    stmt = (
        select(Car.city, Car.state, Car.country, func.count(Car.id).label("count"))
        .where(Car.status == "active")
        .where(Car.is_available.is_(True))
        .group_by(Car.city, Car.state, Car.country)
        .order_by(func.count(Car.id).desc())
        .limit(limit)
    )
    res = await db.execute(stmt)
    return [
        {
            "city": r.city,
            "state": r.state,
            "country": r.country,
            "count": int(r.count),
            "display": f"{r.city}, {r.state}, {r.country}",
        }
        for r in res.all()
    ]


async def create_car(db: AsyncSession, **kwargs) -> Car:
    car = Car(**kwargs)
    db.add(car)
    await db.commit()
    await db.refresh(car)
    return car


async def update_car(db: AsyncSession, car: Car, data: dict) -> Car:
    for k, v in data.items():
        if v is not None:
            setattr(car, k, v)
    db.add(car)
    await db.commit()
    await db.refresh(car)
    return car


async def add_unavailable_period(
    db: AsyncSession,
    car: Car,
    *,
    kind: str,
    start_date: date,
    end_date: date,
    reason: Optional[str] = None,
) -> CarUnavailablePeriod:
    period = CarUnavailablePeriod(
        car_id=car.id,
        kind=kind,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
    )
    db.add(period)
    await db.commit()
    await db.refresh(period)
    return period


async def get_unavailable_period(
    db: AsyncSession, car_id: int, period_id: int
) -> CarUnavailablePeriod | None:
    res = await db.execute(
        select(CarUnavailablePeriod).where(
            CarUnavailablePeriod.id == period_id,
            CarUnavailablePeriod.car_id == car_id,
        )
    )
    return res.scalars().first()


async def delete_unavailable_period(db: AsyncSession, period: CarUnavailablePeriod):
    await db.delete(period)
    await db.commit()
    return True


async def set_rate_card(db: AsyncSession, car: Car, rates: dict) -> Car:
    """
    Unlike update_car, None clears the optional weekly/monthly rates.
    """
    for k, v in rates.items():
        setattr(car, k, v)
    db.add(car)
    await db.commit()
    await db.refresh(car)
    return car
