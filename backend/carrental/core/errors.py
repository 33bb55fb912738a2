# carrental/core/errors.py
"""
Domain errors raised by the booking services.

Every error carries an HTTP status so the handlers in main.py can render it
without knowing the concrete class; routers never build HTTPException for
these cases themselves.
"""
from typing import Any, Dict, List, Optional


class BookingError(Exception):
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(BookingError):
    """Bad input; ``errors`` holds one human readable string per violated rule."""

    status_code = 400
    default_message = "Validation error"

    def __init__(self, errors: List[str], message: Optional[str] = None):
        super().__init__(message)
        self.errors = list(errors)

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["errors"] = self.errors
        return body


class InvalidInterval(ValidationError):
    default_message = "Invalid booking dates"


class AvailabilityConflict(BookingError):
    status_code = 409
    default_message = "Car is not available for the selected dates"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        reason: str = "unavailable",
        conflicting_bookings: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.conflicting_bookings = conflicting_bookings or []

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["reason"] = self.reason
        if self.conflicting_bookings:
            body["conflictingBookings"] = self.conflicting_bookings
        return body


class NotFound(BookingError):
    status_code = 404
    default_message = "Not found"


class Forbidden(BookingError):
    status_code = 403
    default_message = "Not allowed"


class InvalidStateTransition(BookingError):
    status_code = 400
    default_message = "Operation not allowed in current booking status"


class AlreadyRated(BookingError):
    status_code = 400
    default_message = "Booking has already been rated"


class InternalError(BookingError):
    status_code = 500
    default_message = "Server error"
