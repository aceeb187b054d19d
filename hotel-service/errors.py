"""Errors raised by the booking flow.

Every error carries a stable ``code`` and a ``context`` dict with the counts
or status codes a caller needs to offer a corrective action. None of them
is retried automatically.
"""
from typing import Optional


class BookingError(Exception):
    """Base class for booking flow errors."""

    code = "booking_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.context}


# Date validation

class DateRangeError(BookingError):
    code = "invalid_dates"


class MissingDate(DateRangeError):
    code = "missing_date"

    def __init__(self, field: str):
        super().__init__(f"{field} date is required", field=field)


class InvalidDate(DateRangeError):
    code = "invalid_date"

    def __init__(self, value: str):
        super().__init__(f"Invalid date {value!r}, expected yyyy-MM-dd", value=value)


class CheckInInPast(DateRangeError):
    code = "check_in_in_past"

    def __init__(self, check_in, today):
        super().__init__(
            "Check-in date cannot be in the past",
            check_in=check_in.isoformat(),
            today=today.isoformat(),
        )


class InvalidRange(DateRangeError):
    code = "invalid_range"

    def __init__(self, check_in, check_out):
        super().__init__(
            "Check-out must be after check-in",
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
        )


# Upstream service failures

class UpstreamError(BookingError):
    code = "upstream_error"

    def __init__(self, message: str, status_code: Optional[int] = None, **context):
        super().__init__(message, upstream_status=status_code, **context)
        self.status_code = status_code


class AvailabilityServiceError(UpstreamError):
    code = "availability_unavailable"


class BookingServiceError(UpstreamError):
    code = "booking_failed"


class MissingRedirectTarget(UpstreamError):
    code = "missing_redirect_target"

    def __init__(self, status_code: Optional[int] = None):
        super().__init__("WhatsApp link not found in booking response", status_code)


class AuthenticationRequired(BookingError):
    code = "authentication_required"

    def __init__(self, message: str = "Session expired, please sign in again"):
        super().__init__(message)


# Quote rejections

class QuoteRejected(BookingError):
    code = "quote_rejected"


class CapacityExceeded(QuoteRejected):
    code = "capacity_exceeded"

    def __init__(self, guests: int, rooms: int, max_guests: int):
        super().__init__(
            f"Maximum {max_guests} guests for {rooms} room(s)",
            guests=guests,
            rooms=rooms,
            max_guests=max_guests,
        )


class ZeroAvailability(QuoteRejected):
    code = "zero_availability"

    def __init__(self, room_type: str):
        super().__init__(
            f"All {room_type} rooms are fully booked",
            room_type=room_type,
            available_rooms=0,
        )


class InsufficientInventory(QuoteRejected):
    code = "insufficient_inventory"

    def __init__(self, room_type: str, requested: int, available: int):
        super().__init__(
            f"Only {available} {room_type} room(s) available",
            room_type=room_type,
            requested_rooms=requested,
            available_rooms=available,
        )
        self.available = available


class MissingGuestName(BookingError):
    code = "missing_guest_name"

    def __init__(self):
        super().__init__("Guest name is required")
