from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import reports
from booking_schemas import Car, Inquiry, InquiryIn, LandingStats, Review, Settings
from errors import InvoiceError
from invoicing import InvoiceRequest, generate_invoice
from persistence import crud
from persistence.db import get_db

from .deps import get_site_settings, open_for_public

router = APIRouter(prefix="/api", tags=["public"])
functions = APIRouter(prefix="/functions", tags=["functions"])


@router.get("/settings", response_model=Settings)
def read_settings(settings: Settings = Depends(get_site_settings)):
    return settings


@router.get("/cars", response_model=List[Car], dependencies=[Depends(open_for_public)])
def browse_cars(search: Optional[str] = None, trip_type: Optional[str] = None, db: Session = Depends(get_db)):
    return crud.list_cars(db, available_only=True, search=search, trip_type=trip_type)


@router.get("/cars/{car_id}", response_model=Car, dependencies=[Depends(open_for_public)])
def car_details(car_id: str, db: Session = Depends(get_db)):
    return crud.get_car(db, car_id)


@router.get("/stats", response_model=LandingStats, dependencies=[Depends(open_for_public)])
def landing_stats(db: Session = Depends(get_db)):
    return reports.landing_stats(db)


@router.get("/testimonials", response_model=List[Review], dependencies=[Depends(open_for_public)])
def testimonials(db: Session = Depends(get_db)):
    return reports.testimonials(db)


@router.post("/inquiries", response_model=Inquiry, status_code=201, dependencies=[Depends(open_for_public)])
def send_inquiry(payload: InquiryIn, db: Session = Depends(get_db)):
    return crud.create_inquiry(db, payload)


@functions.post("/generate-invoice")
def generate_invoice_function(payload: InvoiceRequest):
    try:
        return generate_invoice(payload)
    except InvoiceError as e:
        return JSONResponse(status_code=400, content={"error": e.message})
