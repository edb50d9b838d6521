from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

import reports
from booking_schemas import (
    AdminBookingResult, AvailabilityFix, AvailabilityIn, BookingDetail, BookingUpdate, Car, CarIn, CarUpdate,
    DashboardStats, Driver, DriverIn, DriverRosterEntry, DriverUpdate, Inquiry, InquiryList, PaymentResult,
    PaymentUpdate, RevenueReport, ReviewSummary, Settings, SettingsUpdate,
)
from invoicing import InvoiceClient
from payments import checkout
from persistence import crud
from persistence.db import get_db
from txn_manager import TransactionManager

from .deps import get_invoice_client, require_admin

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# --- reports ---

@router.get("/dashboard", response_model=DashboardStats)
def dashboard(db: Session = Depends(get_db)):
    return reports.dashboard(db)


@router.get("/revenue", response_model=RevenueReport)
def revenue(db: Session = Depends(get_db)):
    return reports.revenue(db)


@router.get("/reviews", response_model=ReviewSummary)
def reviews(db: Session = Depends(get_db)):
    return reports.reviews(db)


# --- bookings ---

@router.get("/bookings", response_model=List[BookingDetail])
def list_bookings(status: Optional[str] = None, db: Session = Depends(get_db)):
    return [crud.model_to_pydantic(b) for b in crud.list_bookings(db, status=status)]


@router.patch("/bookings/{booking_id}", response_model=AdminBookingResult)
def update_booking(booking_id: str, payload: BookingUpdate, db: Session = Depends(get_db),
                   invoices: InvoiceClient = Depends(get_invoice_client)):
    return checkout.update_booking(db, booking_id, payload, invoices=invoices)


@router.post("/bookings/{booking_id}/payment", response_model=PaymentResult)
def record_payment(booking_id: str, payload: PaymentUpdate, db: Session = Depends(get_db),
                   invoices: InvoiceClient = Depends(get_invoice_client)):
    return checkout.confirm_payment(db, booking_id, payload.payment_status,
                                    expected_status=payload.expected_status, force=payload.force,
                                    invoices=invoices)


@router.delete("/bookings/{booking_id}", status_code=204)
def delete_booking(booking_id: str, db: Session = Depends(get_db)):
    crud.delete_booking(db, booking_id)
    return Response(status_code=204)


# --- cars ---

@router.get("/cars", response_model=List[Car])
def list_cars(db: Session = Depends(get_db)):
    return crud.list_cars(db)


@router.post("/cars", response_model=Car, status_code=201)
def add_car(payload: CarIn, db: Session = Depends(get_db)):
    return crud.create_car(db, payload)


@router.patch("/cars/{car_id}", response_model=Car)
def edit_car(car_id: str, payload: CarUpdate, db: Session = Depends(get_db)):
    return crud.update_car(db, car_id, payload)


@router.delete("/cars/{car_id}", status_code=204)
def delete_car(car_id: str, db: Session = Depends(get_db)):
    crud.delete_car(db, car_id)
    return Response(status_code=204)


@router.put("/cars/{car_id}/availability", response_model=Car)
def toggle_car(car_id: str, payload: AvailabilityIn, db: Session = Depends(get_db)):
    return crud.set_car_availability(db, car_id, payload.available)


# --- drivers ---

@router.get("/drivers", response_model=List[DriverRosterEntry])
def list_drivers(db: Session = Depends(get_db)):
    return crud.driver_roster(db)


@router.get("/drivers/available", response_model=List[Driver])
def available_drivers(db: Session = Depends(get_db)):
    return crud.list_drivers(db, available_only=True)


@router.post("/drivers", response_model=Driver, status_code=201)
def add_driver(payload: DriverIn, db: Session = Depends(get_db)):
    return crud.create_driver(db, payload)


@router.patch("/drivers/{driver_id}", response_model=Driver)
def edit_driver(driver_id: str, payload: DriverUpdate, db: Session = Depends(get_db)):
    return crud.update_driver(db, driver_id, payload)


@router.delete("/drivers/{driver_id}", status_code=204)
def delete_driver(driver_id: str, db: Session = Depends(get_db)):
    crud.delete_driver(db, driver_id)
    return Response(status_code=204)


@router.put("/drivers/{driver_id}/availability", response_model=Driver)
def toggle_driver(driver_id: str, payload: AvailabilityIn, db: Session = Depends(get_db)):
    return crud.set_driver_availability(db, driver_id, payload.available)


# --- inquiries & settings ---

@router.get("/inquiries", response_model=InquiryList)
def list_inquiries(db: Session = Depends(get_db)):
    items = crud.list_inquiries(db)
    return InquiryList(unread=sum(1 for i in items if i.status == "unread"),
                       items=[Inquiry.model_validate(i) for i in items])


@router.post("/inquiries/{inquiry_id}/read", response_model=Inquiry)
def mark_read(inquiry_id: str, db: Session = Depends(get_db)):
    return crud.mark_inquiry_read(db, inquiry_id)


@router.patch("/settings", response_model=Settings)
def update_settings(payload: SettingsUpdate, db: Session = Depends(get_db)):
    return crud.update_settings(db, payload)


@router.post("/maintenance/reconcile-availability", response_model=List[AvailabilityFix])
def reconcile_availability(db: Session = Depends(get_db)):
    return TransactionManager(db).reconcile_availability()
