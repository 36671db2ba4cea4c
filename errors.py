class BookingError(Exception):
    status_code = 500
    message = "Booking request failed"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(BookingError):
    status_code = 400
    message = "Invalid booking request"


class InvalidTimeFormat(ValidationError):
    message = "Times must be HH:MM"


class InvalidDuration(BookingError):
    status_code = 400
    message = "End time must be after start time"


class Conflict(BookingError):
    """The proposed interval overlaps an existing booking for the room.

    ``booking`` is the public view of the booking holding the slot.
    """

    status_code = 409
    message = "conflict"

    def __init__(self, booking, message: str):
        self.booking = booking
        super().__init__(message)


class NotFound(BookingError):
    status_code = 404
    message = "Booking not found"


class Forbidden(BookingError):
    status_code = 403
    message = "Invalid secret key"


class StoreError(BookingError):
    status_code = 500
    message = "store-error"


class StoreUnavailable(StoreError):
    status_code = 503
    message = "store-unreachable"
