# carrental/core/access.py
"""
Capability checks for booking and car mutations.

All ownership/admin rules live in RULES so they can be read (and tested)
in one place instead of being spread over the routers.
"""
from typing import Callable, Dict

from carrental.core.errors import Forbidden


def is_admin(actor) -> bool:
    return getattr(actor, "role", None) == "admin"


def _is_renter(actor, booking, car) -> bool:
    return booking is not None and booking.user_id == actor.id


def _is_car_owner(actor, booking, car) -> bool:
    return car is not None and car.owner_id == actor.id


def _renter_or_admin(actor, booking, car) -> bool:
    return is_admin(actor) or _is_renter(actor, booking, car)


def _car_owner_or_admin(actor, booking, car) -> bool:
    return is_admin(actor) or _is_car_owner(actor, booking, car)


def _any_party(actor, booking, car) -> bool:
    return (
        is_admin(actor)
        or _is_renter(actor, booking, car)
        or _is_car_owner(actor, booking, car)
    )


def _admin_only(actor, booking, car) -> bool:
    return is_admin(actor)


def _lister(actor, booking, car) -> bool:
    return getattr(actor, "role", None) in ("owner", "admin")


RULES: Dict[str, Callable] = {
    "booking:view": _any_party,
    "booking:update": _renter_or_admin,
    "booking:cancel": _renter_or_admin,
    "booking:confirm": _car_owner_or_admin,
    "booking:start": _car_owner_or_admin,
    "booking:complete": _car_owner_or_admin,
    # admins don't rate on the renter's behalf
    "booking:rate": _is_renter,
    "booking:no-show": _admin_only,
    "car:create": _lister,
    "car:manage": _car_owner_or_admin,
}

_MESSAGES = {
    "booking:view": "Not authorized to view this booking",
    "booking:update": "Not authorized to update this booking",
    "booking:cancel": "Not authorized to cancel this booking",
    "booking:confirm": "Not authorized to confirm this booking",
    "booking:start": "Not authorized to start this booking",
    "booking:complete": "Not authorized to complete this booking",
    "booking:rate": "Not authorized to rate this booking",
    "booking:no-show": "Only admins can mark a booking as no-show",
    "car:create": "Only car owners can list cars",
    "car:manage": "Not authorized to manage this car",
}


def can(actor, action: str, *, booking=None, car=None) -> bool:
    rule = RULES[action]
    return actor is not None and bool(rule(actor, booking, car))


def authorize(actor, action: str, *, booking=None, car=None) -> None:
    """Raise Forbidden unless ``actor`` may perform ``action``."""
    if not can(actor, action, booking=booking, car=car):
        raise Forbidden(_MESSAGES.get(action))

