# carrental/api/routers/bookings.py
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carrental.api.dependencies import get_current_user, get_optional_user
from carrental.db.session import get_db
from carrental.db import crud_bookings
from carrental.schemas.booking import (
    BookingCancel,
    BookingComplete,
    BookingCreate,
    BookingEstimateRequest,
    BookingOut,
    BookingRate,
    BookingStart,
    BookingUpdate,
    DurationOut,
    PriceOut,
)
from carrental.services import bookings as booking_service

router = APIRouter()


def _out(booking) -> dict:
    return BookingOut.model_validate(booking).model_dump(by_alias=True, mode="json")


@router.post("/booking-estimate")
async def booking_estimate(
    body: BookingEstimateRequest,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_optional_user),
):
    estimate = await booking_service.estimate_booking(db, body)
    return {
        "success": True,
        "available": estimate.available,
        "availabilityReason": estimate.message,
        "reason": estimate.reason,
        "conflictingBookings": estimate.conflicting_bookings,
        "pricing": PriceOut.model_validate(estimate.pricing).model_dump(by_alias=True),
        "duration": DurationOut.model_validate(estimate.duration).model_dump(),
    }


@router.get("/bookings")
async def list_bookings(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    items, total = await crud_bookings.list_bookings_for_user(
        db, current_user.id, status=status, page=page, per_page=limit
    )
    return {
        "success": True,
        "count": len(items),
        "total": total,
        "totalPages": (total + limit - 1) // limit,
        "currentPage": page,
        "bookings": [_out(b) for b in items],
    }


@router.post("/bookings", status_code=201)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    booking = await booking_service.create_booking(db, current_user, body)
    return {
        "success": True,
        "message": "Booking created successfully",
        "booking": _out(booking),
    }


@router.get("/booking/{booking_id}")
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    booking = await booking_service.get_booking(db, current_user, booking_id)
    return {"success": True, "booking": _out(booking)}


@router.put("/booking/{booking_id}")
async def update_booking(
    booking_id: int,
    body: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    booking = await booking_service.update_booking(db, current_user, booking_id, body)
    return {
        "success": True,
        "message": "Booking updated successfully",
        "booking": _out(booking),
    }


@router.delete("/booking/{booking_id}")
async def cancel_booking(
    booking_id: int,
    body: Optional[BookingCancel] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    # reason is optional and the frontend may send no body at all
    reason = body.reason if body else None
    booking, refund = await booking_service.cancel_booking(
        db, current_user, booking_id, reason
    )
    return {
        "success": True,
        "message": "Booking cancelled successfully",
        "refundAmount": float(refund),
        "booking": _out(booking),
    }


@router.put("/booking/{booking_id}/confirm")
async def confirm_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    booking = await booking_service.confirm_booking(db, current_user, booking_id)
    return {
        "success": True,
        "message": "Booking confirmed successfully",
        "booking": _out(booking),
    }


@router.put("/booking/{booking_id}/start")
async def start_booking(
    booking_id: int,
    body: Optional[BookingStart] = Body(None),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    booking = await booking_service.start_booking(
        db, current_user, booking_id, body or BookingStart()
    )
    return {
        "success": True,
        "message": "Booking started successfully",
        "booking": _out(booking),
    }


@router.put("/booking/{booking_id}/complete")
async def complete_booking(
    booking_id: int,
    body: BookingComplete,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    booking = await booking_service.complete_booking(db, current_user, booking_id, body)
    return {
        "success": True,
        "message": "Booking completed successfully",
        "booking": _out(booking),
    }


@router.put("/booking/{booking_id}/rate")
async def rate_booking(
    booking_id: int,
    body: BookingRate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    booking = await booking_service.rate_booking(db, current_user, booking_id, body)
    return {
        "success": True,
        "message": "Booking rated successfully",
        "booking": _out(booking),
    }


@router.put("/booking/{booking_id}/no-show")
async def mark_no_show(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    booking = await booking_service.mark_no_show(db, current_user, booking_id)
    return {"success": True, "message": "Booking marked as no-show", "booking": _out(booking)}


@router.get("/owner/bookings")
async def owner_bookings(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    status: Optional[str] = None,
):
    """
    List all bookings for cars owned by the current user.
    """
    items = await crud_bookings.list_bookings_for_owner(db, current_user.id, status=status)
    return {"success": True, "bookings": [_out(b) for b in items]}
