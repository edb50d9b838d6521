"""
Booking lifecycle rules.

Pure functions: they inspect a booking (ORM row or pydantic model, anything
with status / payment_status / car_id / driver_id / rating attributes) and
return a Transition describing the booking, car and driver writes. Nothing
here touches the database; TransactionManager applies the patches as one unit.
"""
from datetime import date
from typing import Optional

from booking_schemas import Transition
from errors import BookingValidationError, RatingError, TransitionError

STATUSES = ("pending", "confirmed", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed")
TERMINAL = ("completed", "cancelled")

# Normal (non-override) flow
TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


def rental_days(pickup: date, return_: date) -> int:
    """Whole days between the two dates, never less than 1."""
    return max(abs((return_ - pickup).days), 1)


def validate_dates(pickup: Optional[date], return_: Optional[date]):
    if pickup is None or return_ is None:
        raise BookingValidationError("Please fill all fields")
    if return_ <= pickup:
        raise BookingValidationError("Return date must be after pickup date")


def quote_total(pickup: date, return_: date, price_per_day: float) -> float:
    validate_dates(pickup, return_)
    return round(rental_days(pickup, return_) * float(price_per_day), 2)


def _availability(transition: Transition, available: bool, driver_id: Optional[str]):
    transition.car_patch = {"available": available}
    if driver_id:
        transition.driver_patches[driver_id] = {"available": available}


def apply_status_transition(booking, new_status: str, override: bool = False) -> Transition:
    """
    Work out the writes for moving `booking` to `new_status`.

    Entering `confirmed` occupies the car and the assigned driver. Leaving
    `confirmed`, or landing in `completed` / `cancelled` from anywhere,
    releases them. Without `override` only the TRANSITIONS table is allowed.
    """
    if new_status not in STATUSES:
        raise TransitionError(f"Unknown status '{new_status}'")

    current = booking.status
    transition = Transition()
    if new_status == current:
        return transition
    if not override and new_status not in TRANSITIONS[current]:
        raise TransitionError(f"Cannot move booking from {current} to {new_status}")

    transition.booking_patch["status"] = new_status
    if new_status == "confirmed":
        _availability(transition, False, booking.driver_id)
    elif current == "confirmed" or new_status in TERMINAL:
        _availability(transition, True, booking.driver_id)
    return transition


def apply_payment_status(booking, payment_status: str) -> Transition:
    """
    Record a payment status. `paid` promotes a pending booking to confirmed
    (with the usual occupy side effects); it never demotes a later status and
    never resurrects a cancelled booking.
    """
    if payment_status not in PAYMENT_STATUSES:
        raise TransitionError(f"Unknown payment status '{payment_status}'")

    transition = Transition()
    if payment_status == "paid" and booking.status == "pending":
        transition = apply_status_transition(booking, "confirmed")
    if payment_status != booking.payment_status:
        transition.booking_patch["payment_status"] = payment_status
    return transition


def apply_driver_assignment(booking, driver_id: Optional[str]) -> Transition:
    """
    Assign (or clear, with None) the booking's driver.

    While the booking is confirmed the previous driver is released and the new
    one occupied; otherwise only the booking row changes.
    """
    previous = booking.driver_id
    transition = Transition()
    if driver_id == previous:
        return transition

    transition.booking_patch["driver_id"] = driver_id
    if booking.status == "confirmed":
        if previous:
            transition.driver_patches[previous] = {"available": True}
        if driver_id:
            transition.driver_patches[driver_id] = {"available": False}
    return transition


def apply_rating(booking, rating: int, review_text: Optional[str] = None) -> Transition:
    """
    Rating patch for a completed booking. An existing rating is kept as is:
    the returned transition is empty.
    """
    if booking.status != "completed":
        raise RatingError("Only completed trips can be rated")
    if not 1 <= int(rating) <= 5:
        raise BookingValidationError("Rating must be between 1 and 5")

    transition = Transition()
    if booking.rating is not None:
        return transition
    transition.booking_patch = {"rating": int(rating), "review_text": review_text or None}
    return transition


def merge(first: Transition, second: Transition) -> Transition:
    """Combine two transitions; later patches win on the same key."""
    driver_patches = {k: dict(v) for k, v in first.driver_patches.items()}
    for driver_id, patch in second.driver_patches.items():
        driver_patches.setdefault(driver_id, {}).update(patch)
    return Transition(
        booking_patch={**first.booking_patch, **second.booking_patch},
        car_patch={**first.car_patch, **second.car_patch},
        driver_patches=driver_patches,
    )
