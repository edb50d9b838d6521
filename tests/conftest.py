from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.app import app
from booking_schemas import BookingCreate, CarIn, DriverIn
from persistence import crud
from persistence.db import get_db, init_db
from persistence.models import ProfileModel


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def customer(db):
    profile = ProfileModel(id="cust-1", full_name="Jane Doe", email="jane@example.com", role="customer")
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def admin(db):
    profile = ProfileModel(id="admin-1", full_name="Ops", email="ops@example.com", role="admin")
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def car(db):
    return crud.create_car(db, CarIn(name="Car X", trip_type="airport", capacity=4, price_per_day=50))


@pytest.fixture
def driver_a(db):
    return crud.create_driver(db, DriverIn(name="Driver A", phone="0700000001", license_number="A-1"))


@pytest.fixture
def driver_b(db):
    return crud.create_driver(db, DriverIn(name="Driver B", phone="0700000002", license_number="B-2"))


@pytest.fixture
def make_booking(db, customer, car):
    def _make(car_id=None, pickup=date(2025, 1, 1), ret=date(2025, 1, 4)):
        return crud.create_booking(db, customer.id, BookingCreate(
            car_id=car_id or car.id, pickup_date=pickup, return_date=ret, pickup_location="Airport"))
    return _make

