from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

BookingStatus = Literal["pending", "confirmed", "completed", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed"]
TripType = Literal["wedding", "airport", "long_trip"]
Role = Literal["customer", "admin"]
InquiryStatus = Literal["unread", "read"]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Fleet ---

class CarIn(BaseModel):
    name: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    trip_type: TripType = "wedding"
    capacity: int = Field(4, ge=1)
    price_per_day: float = Field(..., ge=0)
    description: Optional[str] = None
    available: bool = True


class CarUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    trip_type: Optional[TripType] = None
    capacity: Optional[int] = Field(None, ge=1)
    price_per_day: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None


class Car(ORMModel):
    id: str
    name: str
    image_url: Optional[str] = None
    trip_type: TripType
    capacity: int
    price_per_day: float
    description: Optional[str] = None
    available: bool
    created_at: Optional[datetime] = None


class DriverIn(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    license_number: str = Field(..., min_length=1)
    available: bool = True


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    license_number: Optional[str] = Field(None, min_length=1)


class Driver(ORMModel):
    id: str
    name: str
    phone: str
    license_number: str
    available: bool
    created_at: Optional[datetime] = None


class DriverRosterEntry(Driver):
    on_trip: bool = False
    on_trip_car: Optional[str] = None   # car name of the confirmed booking


class AvailabilityIn(BaseModel):
    available: bool


# --- Bookings ---

class BookingCreate(BaseModel):
    car_id: str
    pickup_date: date
    return_date: date
    pickup_location: str = Field(..., min_length=1)


class Booking(ORMModel):
    id: str
    user_id: str
    car_id: str
    driver_id: Optional[str] = None
    pickup_date: date
    return_date: date
    pickup_location: str
    total_price: float
    status: BookingStatus
    payment_status: PaymentStatus
    rating: Optional[int] = None
    review_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingDetail(Booking):
    car_name: Optional[str] = None
    customer_name: Optional[str] = None
    driver_name: Optional[str] = None


class BookingUpdate(BaseModel):
    """Admin override. Only the fields that are set are applied."""
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    driver_id: Optional[str] = None
    unassign_driver: bool = False
    expected_status: Optional[BookingStatus] = None   # compare-and-set guard
    force: bool = False                               # accept resource conflicts


class PaymentUpdate(BaseModel):
    payment_status: PaymentStatus = "paid"
    expected_status: Optional[BookingStatus] = None
    force: bool = False


class RatingIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = None


class SubmitForReview(BaseModel):
    phone: str


class Transition(BaseModel):
    """Patches produced by a lifecycle rule, applied together or not at all."""
    booking_patch: Dict[str, Any] = Field(default_factory=dict)
    car_patch: Dict[str, Any] = Field(default_factory=dict)
    driver_patches: Dict[str, Dict[str, Any]] = Field(default_factory=dict)  # driver_id -> patch

    @property
    def is_noop(self) -> bool:
        return not (self.booking_patch or self.car_patch or self.driver_patches)


class Handoff(BaseModel):
    booking: Booking
    whatsapp_url: str


class PaymentResult(BaseModel):
    booking: Booking
    invoice: Optional[Dict[str, str]] = None
    invoice_error: Optional[str] = None


class AdminBookingResult(BookingDetail):
    invoice: Optional[Dict[str, str]] = None   # set when the update marked the booking paid
    invoice_error: Optional[str] = None


class RatingResult(BaseModel):
    booking: Booking
    stored: bool   # False when a rating already existed and nothing changed


# --- People, settings, inquiries ---

class Profile(ORMModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Role = "customer"


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None


class Settings(ORMModel):
    site_name: str
    currency_symbol: str
    support_email: Optional[str] = None
    support_phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    maintenance_mode: bool = False


class SettingsUpdate(BaseModel):
    site_name: Optional[str] = Field(None, min_length=1)
    currency_symbol: Optional[str] = Field(None, min_length=1)
    support_email: Optional[str] = None
    support_phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    maintenance_mode: Optional[bool] = None


class InquiryIn(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class Inquiry(ORMModel):
    id: str
    full_name: str
    email: str
    subject: str
    message: str
    status: InquiryStatus
    created_at: Optional[datetime] = None


class InquiryList(BaseModel):
    unread: int
    items: List[Inquiry]


# --- Reports ---

class MonthlyRevenue(BaseModel):
    month: str   # YYYY-MM of the pickup date
    revenue: float


class DashboardStats(BaseModel):
    total_bookings: int
    total_revenue: float
    active_rentals: int
    pending: int
    monthly: List[MonthlyRevenue]


class RevenueReport(BaseModel):
    total_revenue: float
    average_value: float
    completed_bookings: int
    monthly: List[MonthlyRevenue]


class Review(BaseModel):
    booking_id: str
    rating: int
    review_text: Optional[str] = None
    customer_name: Optional[str] = None
    car_name: Optional[str] = None
    updated_at: Optional[datetime] = None


class ReviewSummary(BaseModel):
    average_rating: float
    total_reviews: int
    reviews: List[Review]


class LandingStats(BaseModel):
    cars: int
    users: int


class AvailabilityFix(BaseModel):
    resource: Literal["car", "driver"]
    resource_id: str
    available: bool   # value after the repair


class CustomerBookings(BaseModel):
    total_paid: float
    items: List[BookingDetail]


class InvoiceDownload(BaseModel):
    filename: str
    pdf: str   # data URI
