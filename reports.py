from collections import defaultdict
from typing import Iterable, List

from sqlalchemy.orm import Session

from booking_schemas import DashboardStats, LandingStats, MonthlyRevenue, RevenueReport, Review, ReviewSummary
from persistence import crud
from persistence.models import BookingModel, CarModel


def monthly_revenue(bookings: Iterable[BookingModel]) -> List[MonthlyRevenue]:
    totals = defaultdict(float)
    for b in bookings:
        totals[b.pickup_date.strftime("%Y-%m")] += float(b.total_price)
    return [MonthlyRevenue(month=m, revenue=round(v, 2)) for m, v in sorted(totals.items())]


def dashboard(db: Session) -> DashboardStats:
    bookings = db.query(BookingModel).all()
    completed = [b for b in bookings if b.status == "completed"]
    return DashboardStats(
        total_bookings=len(bookings),
        total_revenue=round(sum(float(b.total_price) for b in completed), 2),
        active_rentals=sum(1 for b in bookings if b.status == "confirmed"),
        pending=sum(1 for b in bookings if b.status == "pending"),
        monthly=monthly_revenue(completed),
    )


def revenue(db: Session) -> RevenueReport:
    completed = crud.list_bookings(db, status="completed")
    total = round(sum(float(b.total_price) for b in completed), 2)
    return RevenueReport(
        total_revenue=total,
        average_value=round(total / len(completed), 2) if completed else 0.0,
        completed_bookings=len(completed),
        monthly=monthly_revenue(completed),
    )


def _review(b: BookingModel) -> Review:
    return Review(
        booking_id=b.id,
        rating=b.rating,
        review_text=b.review_text,
        customer_name=b.customer.full_name if b.customer else None,
        car_name=b.car.name if b.car else None,
        updated_at=b.updated_at,
    )


def reviews(db: Session) -> ReviewSummary:
    rated = (
        db.query(BookingModel)
        .filter(BookingModel.rating.isnot(None))
        .order_by(BookingModel.updated_at.desc())
        .all()
    )
    average = round(sum(b.rating for b in rated) / len(rated), 1) if rated else 0.0
    return ReviewSummary(average_rating=average, total_reviews=len(rated), reviews=[_review(b) for b in rated])


def testimonials(db: Session, limit: int = 3) -> List[Review]:
    rated = (
        db.query(BookingModel)
        .filter(BookingModel.rating.isnot(None))
        .order_by(BookingModel.updated_at.desc())
        .limit(limit)
        .all()
    )
    return [_review(b) for b in rated]


def landing_stats(db: Session) -> LandingStats:
    return LandingStats(cars=db.query(CarModel).count(), users=crud.count_customers(db))


def total_paid(db: Session, user_id: str) -> float:
    paid = [b for b in crud.list_bookings(db, user_id=user_id) if b.payment_status == "paid"]
    return round(sum(float(b.total_price) for b in paid), 2)
