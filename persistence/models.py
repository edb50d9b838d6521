import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .db import Base

SETTINGS_ID = "global_config"


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)   # identity service user id
    full_name = Column(String(200))
    email = Column(String(200), index=True)
    phone = Column(String(32))
    role = Column(String(16), default="customer", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    bookings = relationship("BookingModel", back_populates="customer")


class CarModel(Base):
    __tablename__ = "cars"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    image_url = Column(Text)
    trip_type = Column(String(16), nullable=False, default="wedding")
    capacity = Column(Integer, nullable=False, default=4)
    price_per_day = Column(Float, nullable=False)
    description = Column(Text)
    available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    bookings = relationship("BookingModel", back_populates="car")


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    phone = Column(String(32), nullable=False)
    license_number = Column(String(64), nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    bookings = relationship("BookingModel", back_populates="driver")


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    car_id = Column(String(36), ForeignKey("cars.id"), index=True, nullable=False)
    driver_id = Column(String(36), ForeignKey("drivers.id", ondelete="SET NULL"), index=True, nullable=True)
    pickup_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=False)
    pickup_location = Column(String(200), nullable=False)
    total_price = Column(Float, nullable=False)
    status = Column(String(16), default="pending", nullable=False, index=True)
    payment_status = Column(String(16), default="pending", nullable=False)
    rating = Column(Integer, nullable=True)
    review_text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    customer = relationship("ProfileModel", back_populates="bookings")
    car = relationship("CarModel", back_populates="bookings")
    driver = relationship("DriverModel", back_populates="bookings")


class SettingsModel(Base):
    __tablename__ = "admin_settings"

    id = Column(String(32), primary_key=True, default=SETTINGS_ID)
    site_name = Column(String(200), nullable=False, default="Elite Car Rentals")
    currency_symbol = Column(String(8), nullable=False, default="$")
    support_email = Column(String(200))
    support_phone = Column(String(32))
    whatsapp_number = Column(String(32))
    maintenance_mode = Column(Boolean, nullable=False, default=False)


class InquiryModel(Base):
    __tablename__ = "contact_inquiries"

    id = Column(String(36), primary_key=True, default=new_id)
    full_name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False)
    subject = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(16), default="unread", nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
