from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import reports
from booking_schemas import (
    Booking, BookingCreate, BookingDetail, CustomerBookings, Handoff, InvoiceDownload, Profile, ProfileUpdate,
    RatingIn, RatingResult, Settings, SubmitForReview,
)
from invoicing import InvoiceClient, InvoiceRequest, invoice_filename
from payments.checkout import submit_for_review
from persistence import crud
from persistence.db import get_db
from persistence.models import BookingModel, ProfileModel
from txn_manager import TransactionManager

from .deps import get_invoice_client, get_site_settings, open_for_customer

router = APIRouter(prefix="/api", tags=["customer"])


def _own_booking(db: Session, booking_id: str, user: ProfileModel) -> BookingModel:
    booking = crud.get_booking_by_id(db, booking_id)
    if booking.user_id != user.id:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@router.get("/profile", response_model=Profile)
def read_profile(user: ProfileModel = Depends(open_for_customer)):
    return user


@router.patch("/profile", response_model=Profile)
def edit_profile(payload: ProfileUpdate, user: ProfileModel = Depends(open_for_customer),
                 db: Session = Depends(get_db)):
    return crud.update_profile(db, user, payload)


@router.post("/bookings", response_model=BookingDetail, status_code=201)
def create_booking(payload: BookingCreate, user: ProfileModel = Depends(open_for_customer),
                   db: Session = Depends(get_db)):
    booking = crud.create_booking(db, user.id, payload)
    return crud.model_to_pydantic(booking)


@router.get("/bookings", response_model=CustomerBookings)
def my_bookings(user: ProfileModel = Depends(open_for_customer), db: Session = Depends(get_db)):
    items = [crud.model_to_pydantic(b) for b in crud.list_bookings(db, user_id=user.id)]
    return CustomerBookings(total_paid=reports.total_paid(db, user.id), items=items)


@router.get("/bookings/{booking_id}", response_model=BookingDetail)
def booking_details(booking_id: str, user: ProfileModel = Depends(open_for_customer),
                    db: Session = Depends(get_db)):
    return crud.model_to_pydantic(_own_booking(db, booking_id, user))


@router.post("/bookings/{booking_id}/submit", response_model=Handoff)
def submit_booking(booking_id: str, payload: SubmitForReview,
                   user: ProfileModel = Depends(open_for_customer),
                   settings: Settings = Depends(get_site_settings),
                   db: Session = Depends(get_db)):
    _own_booking(db, booking_id, user)
    return submit_for_review(db, booking_id, user.id, payload.phone, operator_number=settings.whatsapp_number)


@router.post("/bookings/{booking_id}/rating", response_model=RatingResult)
def rate_booking(booking_id: str, payload: RatingIn, user: ProfileModel = Depends(open_for_customer),
                 db: Session = Depends(get_db)):
    booking = _own_booking(db, booking_id, user)
    stored = TransactionManager(db).apply_rating(booking, payload.rating, payload.review_text)
    return RatingResult(booking=Booking.model_validate(booking), stored=stored)


@router.get("/bookings/{booking_id}/invoice", response_model=InvoiceDownload)
def download_invoice(booking_id: str, user: ProfileModel = Depends(open_for_customer),
                     db: Session = Depends(get_db), invoices: InvoiceClient = Depends(get_invoice_client)):
    booking = _own_booking(db, booking_id, user)
    if booking.payment_status != "paid":
        raise HTTPException(status_code=409, detail="Invoice is available once payment is confirmed")
    result = invoices.generate(InvoiceRequest.from_booking(booking))
    return InvoiceDownload(filename=invoice_filename(booking.id), pdf=result["pdf"])
