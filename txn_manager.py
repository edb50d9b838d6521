import logging
from types import SimpleNamespace
from typing import List, Optional

from sqlalchemy.orm import Session

import lifecycle
from booking_schemas import AvailabilityFix, BookingUpdate, Transition
from errors import ResourceConflictError, StaleTransitionError
from persistence import crud
from persistence.models import BookingModel, CarModel, DriverModel

logger = logging.getLogger(__name__)


class TransactionManager:
    """
    Applies booking lifecycle changes and their car/driver availability side
    effects as one database transaction (booking row locked -> guard ->
    booking write -> car write -> driver writes -> commit).
    If any step fails the session is rolled back and nothing is persisted.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- public operations ---

    def transition_status(self, booking_id: str, new_status: str, expected_status: str = None,
                          override: bool = False, force: bool = False) -> BookingModel:
        return self.update_booking(
            booking_id,
            BookingUpdate(status=new_status, expected_status=expected_status, force=force),
            override=override,
        )

    def set_payment_status(self, booking_id: str, payment_status: str,
                           expected_status: str = None, force: bool = False) -> BookingModel:
        return self.update_booking(
            booking_id,
            BookingUpdate(payment_status=payment_status, expected_status=expected_status, force=force),
        )

    def assign_driver(self, booking_id: str, driver_id: Optional[str], force: bool = False) -> BookingModel:
        update = BookingUpdate(driver_id=driver_id, unassign_driver=driver_id is None, force=force)
        return self.update_booking(booking_id, update)

    def update_booking(self, booking_id: str, update: BookingUpdate, override: bool = True) -> BookingModel:
        """
        Apply an admin update in the order driver -> payment -> status, each
        rule seeing the booking as left by the previous one.
        """
        try:
            booking = crud.get_booking_by_id(self.db, booking_id, for_update=True)
            if update.expected_status and booking.status != update.expected_status:
                raise StaleTransitionError(
                    f"Booking is {booking.status}, expected {update.expected_status}")

            state = SimpleNamespace(
                status=booking.status,
                payment_status=booking.payment_status,
                car_id=booking.car_id,
                driver_id=booking.driver_id,
                rating=booking.rating,
            )
            plan = Transition()
            if update.driver_id is not None or update.unassign_driver:
                if update.driver_id is not None:
                    crud.get_driver(self.db, update.driver_id)
                plan = self._step(plan, state, lifecycle.apply_driver_assignment(state, update.driver_id))
            if update.payment_status is not None:
                plan = self._step(plan, state, lifecycle.apply_payment_status(state, update.payment_status))
            if update.status is not None:
                plan = self._step(
                    plan, state, lifecycle.apply_status_transition(state, update.status, override=override))

            if plan.is_noop:
                self.db.rollback()
                return booking

            if state.status == "confirmed" and not update.force:
                self._check_conflicts(booking, state, plan)

            self._apply(booking, plan)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info("booking %s now %s/%s (driver=%s)",
                    booking.id, booking.status, booking.payment_status, booking.driver_id)
        return booking

    def apply_rating(self, booking: BookingModel, rating: int, review_text: str = None) -> bool:
        """
        Store the rating once. Returns False when one already existed.
        The write only matches a completed, unrated row, so of two overlapping
        submissions the later one finds nothing to update.
        """
        plan = lifecycle.apply_rating(booking, rating, review_text)
        if plan.is_noop:
            logger.info("booking %s already rated; ignoring new rating", booking.id)
            return False
        try:
            stored = (
                self.db.query(BookingModel)
                .filter(
                    BookingModel.id == booking.id,
                    BookingModel.status == "completed",
                    BookingModel.rating.is_(None),
                )
                .update(plan.booking_patch, synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)
        if not stored:
            # raises if the booking left completed in the meantime
            lifecycle.apply_rating(booking, rating, review_text)
            logger.info("booking %s rated concurrently; keeping rating %s", booking.id, booking.rating)
            return False
        return True

    def reconcile_availability(self) -> List[AvailabilityFix]:
        """
        Repair pass: recompute every car and driver flag from the confirmed
        bookings and fix rows that drifted.
        """
        confirmed = self.db.query(BookingModel).filter(BookingModel.status == "confirmed").all()
        busy_cars = {b.car_id for b in confirmed}
        busy_drivers = {b.driver_id for b in confirmed if b.driver_id}

        fixes = []
        try:
            for car in self.db.query(CarModel).all():
                expected = car.id not in busy_cars
                if car.available != expected:
                    car.available = expected
                    fixes.append(AvailabilityFix(resource="car", resource_id=car.id, available=expected))
            for driver in self.db.query(DriverModel).all():
                expected = driver.id not in busy_drivers
                if driver.available != expected:
                    driver.available = expected
                    fixes.append(AvailabilityFix(resource="driver", resource_id=driver.id, available=expected))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for fix in fixes:
            logger.warning("availability drift repaired: %s %s -> available=%s",
                           fix.resource, fix.resource_id, fix.available)
        return fixes

    # --- internals ---

    @staticmethod
    def _step(plan: Transition, state: SimpleNamespace, step: Transition) -> Transition:
        for field, value in step.booking_patch.items():
            setattr(state, field, value)
        return lifecycle.merge(plan, step)

    def _check_conflicts(self, booking: BookingModel, state: SimpleNamespace, plan: Transition):
        occupying = plan.car_patch.get("available") is False
        if occupying:
            holder = crud.confirmed_booking_for(self.db, car_id=state.car_id, exclude=booking.id)
            if holder:
                raise ResourceConflictError(
                    "Car is already on another confirmed booking",
                    resource="car", resource_id=state.car_id, booking_id=holder.id)
        for driver_id, patch in plan.driver_patches.items():
            if patch.get("available") is False:
                holder = crud.confirmed_booking_for(self.db, driver_id=driver_id, exclude=booking.id)
                if holder:
                    raise ResourceConflictError(
                        "Driver is already on another confirmed booking",
                        resource="driver", resource_id=driver_id, booking_id=holder.id)

    def _apply(self, booking: BookingModel, plan: Transition):
        for field, value in plan.booking_patch.items():
            setattr(booking, field, value)
        if plan.car_patch:
            car = crud.get_car(self.db, booking.car_id)
            self._patch_resource(car, plan.car_patch, car_id=car.id, exclude=booking.id)
        for driver_id, patch in plan.driver_patches.items():
            driver = crud.get_driver(self.db, driver_id)
            self._patch_resource(driver, patch, driver_id=driver_id, exclude=booking.id)

    def _patch_resource(self, resource, patch: dict, **holder_query):
        available = patch.get("available")
        if available and crud.confirmed_booking_for(self.db, **holder_query):
            # still held by another confirmed booking
            return
        for field, value in patch.items():
            setattr(resource, field, value)
