"""
Run this script to walk through a full booking lifecycle against a
throwaway in-memory database:
 - add a car ($50/day) and a driver
 - customer books 2025-01-01 -> 2025-01-04 (3 days, 150)
 - customer submits for review -> WhatsApp handoff link
 - admin marks paid -> booking confirmed, car and driver taken, invoice rendered
 - admin completes the trip -> car and driver released
 - customer rates the trip, a second rating is ignored
"""

from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from booking_schemas import BookingCreate, CarIn, DriverIn
from payments.checkout import confirm_payment, submit_for_review
from persistence import crud
from persistence.db import init_db
from persistence.models import ProfileModel
from txn_manager import TransactionManager


def main():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    db = sessionmaker(bind=engine, autoflush=False)()

    db.add(ProfileModel(id="user_123", full_name="Jane Doe", role="customer"))
    db.commit()
    car = crud.create_car(db, CarIn(name="Mercedes S-Class", trip_type="wedding", price_per_day=50))
    driver = crud.create_driver(db, DriverIn(name="Sam", phone="0712345678", license_number="DL-001"))

    print("=== Booking ===")
    booking = crud.create_booking(db, "user_123", BookingCreate(
        car_id=car.id,
        pickup_date=date(2025, 1, 1),
        return_date=date(2025, 1, 4),
        pickup_location="Airport",
    ))
    print(f"- {booking.id}: total={booking.total_price} status={booking.status}/{booking.payment_status}")

    handoff = submit_for_review(db, booking.id, "user_123", "0712 345 678")
    print("- WhatsApp:", handoff.whatsapp_url)

    print("\n=== Payment ===")
    tm = TransactionManager(db)
    tm.assign_driver(booking.id, driver.id)
    result = confirm_payment(db, booking.id)
    print(f"- status={result.booking.status} car.available={car.available} driver.available={driver.available}")
    print("- invoice:", (result.invoice or {}).get("pdf", "")[:48] + "...", result.invoice_error or "")

    print("\n=== Completion ===")
    tm.transition_status(booking.id, "completed")
    db.refresh(car)
    db.refresh(driver)
    print(f"- car.available={car.available} driver.available={driver.available}")

    booking = crud.get_booking_by_id(db, booking.id)
    print("- first rating stored:", tm.apply_rating(booking, 4, "Great trip"))
    print("- second rating stored:", tm.apply_rating(booking, 1, "Changed my mind"))
    print("- rating:", booking.rating, booking.review_text)


if __name__ == "__main__":
    main()
