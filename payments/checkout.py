import logging
import re
from urllib.parse import quote

from sqlalchemy.orm import Session

import config
from booking_schemas import AdminBookingResult, Booking, BookingUpdate, Handoff, PaymentResult
from errors import BookingValidationError, InvoiceError, NotFoundError, TransitionError
from invoicing import InvoiceClient, InvoiceRequest
from persistence import crud
from persistence.models import BookingModel
from txn_manager import TransactionManager

logger = logging.getLogger(__name__)


def validate_phone(phone: str) -> str:
    """Heuristic check: at least MIN_PHONE_DIGITS digits. Returns the trimmed input."""
    phone = (phone or "").strip()
    if len(re.sub(r"\D", "", phone)) < config.MIN_PHONE_DIGITS:
        raise BookingValidationError("Please enter a valid contact number.")
    return phone


def short_booking_id(booking_id: str) -> str:
    return booking_id.split("-")[0].upper()


def build_whatsapp_link(operator_number: str, booking: BookingModel, phone: str) -> str:
    """Deep link to the operator chat, pre-filled with the booking facts."""
    car_name = booking.car.name if booking.car else "Car"
    message = (
        "Hello! I've requested a booking.\n\n"
        f"*Car:* {car_name}\n"
        f"*Booking ID:* {short_booking_id(booking.id)}\n"
        f"*Total:* ${booking.total_price:g}\n"
        f"*Contact:* {phone}\n\n"
        "Please provide payment instructions."
    )
    number = re.sub(r"\D", "", operator_number or "")
    return f"https://wa.me/{number}?text={quote(message)}"


def submit_for_review(db: Session, booking_id: str, user_id: str, phone: str,
                      operator_number: str = None) -> Handoff:
    """
    Manual handoff: save the customer's contact number, leave the booking
    pending/pending for an administrator to confirm, and hand back the
    WhatsApp link the client should open.
    """
    phone = validate_phone(phone)
    booking = crud.get_booking_by_id(db, booking_id)
    if booking.user_id != user_id:
        raise NotFoundError("Booking not found")
    if booking.status != "pending":
        raise TransitionError(f"Booking is already {booking.status}")

    try:
        profile = crud.get_profile(db, booking.user_id)
        if profile is not None:
            profile.phone = phone
        booking.status = "pending"
        booking.payment_status = "pending"
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)

    url = build_whatsapp_link(operator_number or config.OPERATOR_WHATSAPP, booking, phone)
    logger.info("booking %s submitted for review", booking.id)
    return Handoff(booking=Booking.model_validate(booking), whatsapp_url=url)


def _issue_invoice(booking: BookingModel, invoices: InvoiceClient = None):
    """Returns (invoice, error); an invoice failure never undoes the payment."""
    try:
        return (invoices or InvoiceClient()).generate(InvoiceRequest.from_booking(booking)), None
    except InvoiceError as e:
        logger.warning("invoice for booking %s failed: %s", booking.id, e.message)
        return None, "Failed to generate invoice. Please try again."


def confirm_payment(db: Session, booking_id: str, payment_status: str = "paid",
                    expected_status: str = None, force: bool = False,
                    invoices: InvoiceClient = None) -> PaymentResult:
    """
    Record a payment status through the lifecycle rules. When the booking ends
    up paid, an invoice is generated; an invoice failure is reported in the
    result and never rolls the payment back.
    """
    booking = TransactionManager(db).set_payment_status(
        booking_id, payment_status, expected_status=expected_status, force=force)
    result = PaymentResult(booking=Booking.model_validate(booking))
    if booking.payment_status == "paid":
        result.invoice, result.invoice_error = _issue_invoice(booking, invoices)
    return result


def update_booking(db: Session, booking_id: str, update: BookingUpdate,
                   invoices: InvoiceClient = None) -> AdminBookingResult:
    """Admin override. Setting the payment to paid issues the invoice as confirm_payment does."""
    booking = TransactionManager(db).update_booking(booking_id, update)
    result = AdminBookingResult.model_validate(crud.model_to_pydantic(booking).model_dump())
    if update.payment_status is not None and booking.payment_status == "paid":
        result.invoice, result.invoice_error = _issue_invoice(booking, invoices)
    return result
