# carrental/db/crud_bookings.py

from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carrental.db.models import BLOCKING_STATUSES, Booking, Car


async def get_booking(db: AsyncSession, booking_id: int) -> Booking | None:
    res = await db.execute(select(Booking).where(Booking.id == booking_id))
    return res.scalars().first()


async def update_if_status(
    db: AsyncSession,
    booking_id: int,
    expected_status: str,
    values: dict,
    *,
    unrated: bool = False,
) -> bool:
    """
    Conditional UPDATE: writes only while the row still has expected_status
    (and no rating, with unrated=True). False means another request changed
    the booking first. The in-memory object is not touched; refresh it.
    """
    stmt = (
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if unrated:
        stmt = stmt.where(Booking.rating.is_(None))
    res = await db.execute(stmt)
    return res.rowcount == 1


async def list_conflicting_bookings(
    db: AsyncSession,
    car_id: int,
    start_date: date,
    end_date: date,
    exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    """
    Bookings on car_id that still hold the car and overlap the dates
    (inclusive on both ends).
    """
    stmt = (
        select(Booking)
        .where(Booking.car_id == car_id)
        .where(Booking.status.in_(BLOCKING_STATUSES))
        .where(Booking.start_date <= end_date)
        .where(Booking.end_date >= start_date)
        .order_by(Booking.start_date, Booking.id)
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def list_bookings_for_user(
    db: AsyncSession,
    user_id: int,
    status: Optional[str] = None,
    page: int = 1,
    per_page: int = 10,
) -> Tuple[List[Booking], int]:
    stmt = select(Booking).where(Booking.user_id == user_id)
    if status:
        stmt = stmt.where(Booking.status == status)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        stmt.order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    res = await db.execute(stmt)
    return list(res.scalars().all()), int(total)


async def list_bookings_for_owner(
    db: AsyncSession,
    owner_id: int,
    status: Optional[str] = None,
) -> List[Booking]:
    """
    All bookings for cars owned by owner_id
    """
    stmt = (
        select(Booking)
        .join(Car, Booking.car_id == Car.id)
        .where(Car.owner_id == owner_id)
        .order_by(Booking.id.desc())
    )
    if status:
        stmt = stmt.where(Booking.status == status)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def list_bookings(
    db: AsyncSession,
    status: Optional[str] = None,
    page: int = 1,
    per_page: int = 20,
) -> Tuple[List[Booking], int]:
    """Every booking, newest first; admin view."""
    stmt = select(Booking)
    if status:
        stmt = stmt.where(Booking.status == status)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    res = await db.execute(
        stmt.order_by(Booking.id.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return list(res.scalars().all()), int(total)
