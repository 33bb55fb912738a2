from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select

from carrental.api.dependencies import require_role
from carrental.core.errors import NotFound
from carrental.db.session import get_db
from carrental.db.models import User, Car, Booking
from carrental.db import crud_bookings, crud_users
from carrental.schemas.booking import BookingOut
from carrental.schemas.user import UserBase, UserRoleUpdate


router = APIRouter()


@router.get("/stats")
async def admin_stats(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role("admin")),
):
    users_count = (await db.execute(select(func.count(User.id)))).scalar_one()
    cars_count = (await db.execute(select(func.count(Car.id)))).scalar_one()
    bookings_count = (await db.execute(select(func.count(Booking.id)))).scalar_one()
    by_status = await db.execute(
        select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
    )
    return {
        "total_users": users_count,
        "total_cars": cars_count,
        "total_bookings": bookings_count,
        "bookings_by_status": {status: int(count) for status, count in by_status.all()},
    }


@router.get("/users")
async def admin_users(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role("admin")),
):
    users = await crud_users.list_users(db)
    return {"data": [UserBase.model_validate(u) for u in users]}


@router.put("/users/{user_id}/role")
async def set_role(
    user_id: int,
    body: UserRoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role("admin")),
):
    user = await crud_users.update_user_role(db, user_id, body.role)
    if not user:
        raise NotFound("User not found")
    return UserBase.model_validate(user)


@router.get("/bookings")
async def admin_bookings(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_role("admin")),
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """All bookings, e.g. status=confirmed to find no-show candidates."""
    items, total = await crud_bookings.list_bookings(db, status=status, page=page, per_page=limit)
    return {
        "success": True,
        "total": total,
        "currentPage": page,
        "bookings": [
            BookingOut.model_validate(b).model_dump(by_alias=True, mode="json") for b in items
        ],
    }
