import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from booking_schemas import (
    BookingCreate, BookingDetail, CarIn, CarUpdate, DriverIn, DriverRosterEntry, DriverUpdate,
    InquiryIn, ProfileUpdate, SettingsUpdate,
)
from errors import NotFoundError, ResourceConflictError, TransitionError
from lifecycle import TERMINAL, quote_total

from .models import (
    SETTINGS_ID, BookingModel, CarModel, DriverModel, InquiryModel, ProfileModel, SettingsModel,
)

logger = logging.getLogger(__name__)


# --- lookups ---

def get_booking_by_id(db: Session, booking_id: str, for_update: bool = False) -> BookingModel:
    query = db.query(BookingModel).filter(BookingModel.id == booking_id)
    if for_update:
        query = query.with_for_update()
    booking = query.first()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def get_car(db: Session, car_id: str) -> CarModel:
    car = db.get(CarModel, car_id)
    if not car:
        raise NotFoundError("Car not found")
    return car


def get_driver(db: Session, driver_id: str) -> DriverModel:
    driver = db.get(DriverModel, driver_id)
    if not driver:
        raise NotFoundError("Driver not found")
    return driver


def get_profile(db: Session, user_id: str) -> Optional[ProfileModel]:
    return db.get(ProfileModel, user_id)


def confirmed_booking_for(db: Session, car_id: str = None, driver_id: str = None,
                          exclude: str = None) -> Optional[BookingModel]:
    """First confirmed booking holding the given car or driver, other than `exclude`."""
    query = db.query(BookingModel).filter(BookingModel.status == "confirmed")
    if car_id is not None:
        query = query.filter(BookingModel.car_id == car_id)
    if driver_id is not None:
        query = query.filter(BookingModel.driver_id == driver_id)
    if exclude is not None:
        query = query.filter(BookingModel.id != exclude)
    return query.first()


def model_to_pydantic(db_booking: BookingModel) -> BookingDetail:
    detail = BookingDetail.model_validate(db_booking)
    detail.car_name = db_booking.car.name if db_booking.car else None
    detail.customer_name = db_booking.customer.full_name if db_booking.customer else None
    detail.driver_name = db_booking.driver.name if db_booking.driver else None
    return detail


# --- bookings ---

def create_booking(db: Session, user_id: str, payload: BookingCreate) -> BookingModel:
    car = get_car(db, payload.car_id)
    if not car.available:
        raise ResourceConflictError("Car is not available", resource="car", resource_id=car.id)

    total = quote_total(payload.pickup_date, payload.return_date, car.price_per_day)
    booking = BookingModel(
        user_id=user_id,
        car_id=car.id,
        pickup_date=payload.pickup_date,
        return_date=payload.return_date,
        pickup_location=payload.pickup_location,
        total_price=total,
        status="pending",
        payment_status="pending",
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    logger.info("booking %s created for car %s (%s)", booking.id, car.id, total)
    return booking


def list_bookings(db: Session, user_id: str = None, status: str = None) -> List[BookingModel]:
    query = db.query(BookingModel)
    if user_id is not None:
        query = query.filter(BookingModel.user_id == user_id)
    if status is not None:
        query = query.filter(BookingModel.status == status)
    return query.order_by(BookingModel.created_at.desc()).all()


def delete_booking(db: Session, booking_id: str):
    booking = get_booking_by_id(db, booking_id)
    if booking.status not in TERMINAL:
        raise TransitionError("Only completed or cancelled bookings can be deleted")
    db.delete(booking)
    db.commit()
    logger.info("booking %s deleted", booking_id)


# --- cars ---

def list_cars(db: Session, available_only: bool = False, search: str = None,
              trip_type: str = None) -> List[CarModel]:
    query = db.query(CarModel)
    if available_only:
        query = query.filter(CarModel.available.is_(True))
    if trip_type and trip_type != "all":
        query = query.filter(CarModel.trip_type == trip_type)
    cars = query.order_by(CarModel.created_at.desc()).all()
    if search:
        cars = [c for c in cars if search.lower() in c.name.lower()]
    return cars


def create_car(db: Session, payload: CarIn) -> CarModel:
    car = CarModel(**payload.model_dump())
    db.add(car)
    db.commit()
    db.refresh(car)
    return car


def update_car(db: Session, car_id: str, payload: CarUpdate) -> CarModel:
    car = get_car(db, car_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(car, field, value)
    db.commit()
    db.refresh(car)
    return car


def delete_car(db: Session, car_id: str):
    car = get_car(db, car_id)
    if db.query(BookingModel).filter(BookingModel.car_id == car_id).first():
        raise ResourceConflictError(
            "Car has bookings on record; mark it unavailable instead", resource="car", resource_id=car_id)
    db.delete(car)
    db.commit()


def set_car_availability(db: Session, car_id: str, available: bool) -> CarModel:
    car = get_car(db, car_id)
    holder = confirmed_booking_for(db, car_id=car_id) if available else None
    if holder:
        raise ResourceConflictError(
            "Car is on a confirmed booking", resource="car", resource_id=car_id, booking_id=holder.id)
    car.available = available
    db.commit()
    db.refresh(car)
    return car


# --- drivers ---

def list_drivers(db: Session, available_only: bool = False) -> List[DriverModel]:
    query = db.query(DriverModel)
    if available_only:
        query = query.filter(DriverModel.available.is_(True))
    return query.order_by(DriverModel.created_at.desc()).all()


def driver_roster(db: Session) -> List[DriverRosterEntry]:
    on_trip = {
        b.driver_id: b.car.name if b.car else None
        for b in db.query(BookingModel)
        .filter(BookingModel.status == "confirmed", BookingModel.driver_id.isnot(None))
    }
    roster = []
    for driver in list_drivers(db):
        entry = DriverRosterEntry.model_validate(driver)
        if driver.id in on_trip:
            entry.on_trip = True
            entry.on_trip_car = on_trip[driver.id]
        roster.append(entry)
    return roster


def create_driver(db: Session, payload: DriverIn) -> DriverModel:
    driver = DriverModel(**payload.model_dump())
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return driver


def update_driver(db: Session, driver_id: str, payload: DriverUpdate) -> DriverModel:
    driver = get_driver(db, driver_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(driver, field, value)
    db.commit()
    db.refresh(driver)
    return driver


def delete_driver(db: Session, driver_id: str):
    driver = get_driver(db, driver_id)
    holder = confirmed_booking_for(db, driver_id=driver_id)
    if holder:
        raise ResourceConflictError(
            "Driver is on a confirmed booking", resource="driver", resource_id=driver_id, booking_id=holder.id)
    for booking in driver.bookings:
        booking.driver_id = None
    db.delete(driver)
    db.commit()


def set_driver_availability(db: Session, driver_id: str, available: bool) -> DriverModel:
    driver = get_driver(db, driver_id)
    holder = confirmed_booking_for(db, driver_id=driver_id) if available else None
    if holder:
        raise ResourceConflictError(
            "Driver is on a confirmed booking", resource="driver", resource_id=driver_id, booking_id=holder.id)
    driver.available = available
    db.commit()
    db.refresh(driver)
    return driver


# --- profiles ---

def update_profile(db: Session, profile: ProfileModel, payload: ProfileUpdate) -> ProfileModel:
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)
    db.commit()
    db.refresh(profile)
    return profile


def count_customers(db: Session) -> int:
    return db.query(func.count(ProfileModel.id)).filter(ProfileModel.role == "customer").scalar()


# --- settings ---

def get_settings(db: Session) -> SettingsModel:
    settings = db.get(SettingsModel, SETTINGS_ID)
    if settings is None:
        settings = SettingsModel(id=SETTINGS_ID)
        db.add(settings)
        db.commit()
        db.refresh(settings)
    return settings


def update_settings(db: Session, payload: SettingsUpdate) -> SettingsModel:
    settings = get_settings(db)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(settings, field, value)
    db.commit()
    db.refresh(settings)
    logger.info("settings updated: %s", sorted(payload.model_dump(exclude_unset=True)))
    return settings


# --- inquiries ---

def create_inquiry(db: Session, payload: InquiryIn) -> InquiryModel:
    inquiry = InquiryModel(**payload.model_dump(), status="unread")
    db.add(inquiry)
    db.commit()
    db.refresh(inquiry)
    return inquiry


def list_inquiries(db: Session) -> List[InquiryModel]:
    return db.query(InquiryModel).order_by(InquiryModel.created_at.desc()).all()


def mark_inquiry_read(db: Session, inquiry_id: str) -> InquiryModel:
    inquiry = db.get(InquiryModel, inquiry_id)
    if not inquiry:
        raise NotFoundError("Inquiry not found")
    inquiry.status = "read"
    db.commit()
    db.refresh(inquiry)
    return inquiry
