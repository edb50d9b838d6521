class RentalError(Exception):
    """Base class for every domain error raised by the rental desk."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BookingValidationError(RentalError):
    status_code = 422


class NotFoundError(RentalError):
    status_code = 404


class TransitionError(RentalError):
    """Status change not allowed from the booking's current state."""

    status_code = 409


class StaleTransitionError(TransitionError):
    """Booking status no longer matches what the caller expected."""


class ResourceConflictError(RentalError):
    """Car or driver is already committed to another confirmed booking."""

    status_code = 409

    def __init__(self, message: str, resource: str = None, resource_id: str = None, booking_id: str = None):
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id
        self.booking_id = booking_id


class RatingError(RentalError):
    status_code = 409


class InvoiceError(RentalError):
    status_code = 502
