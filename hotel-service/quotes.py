"""Booking quotes and the payloads handed to the booking endpoints.

A quote is a pure function of the request, one availability entry and the
number of nights. Any change to dates or room counts means computing a new
quote from scratch.
"""
import logging
import re
from typing import Optional

from errors import MissingGuestName
from models import (
    BookingQuote,
    BookingQuoteRequest,
    BookingSource,
    DateRange,
    GuestBookingPayload,
    GuestDetails,
    InventoryVerdict,
    ManualBookingPayload,
    ManualBookingStatus,
    RoomType,
    RoomTypeAvailability,
)

logger = logging.getLogger(__name__)

MAX_GUESTS_PER_ROOM = 4
COUNTRY_CODE = "62"

_NON_DIGITS = re.compile(r"\D")


def max_guests_for(rooms: int) -> int:
    return rooms * MAX_GUESTS_PER_ROOM


def inventory_verdict(rooms_requested: int, available_rooms: int) -> InventoryVerdict:
    if available_rooms == 0:
        return InventoryVerdict.ZERO
    if rooms_requested > available_rooms:
        return InventoryVerdict.INSUFFICIENT
    return InventoryVerdict.SATISFIABLE


def build_quote(
    request: BookingQuoteRequest,
    availability: Optional[RoomTypeAvailability],
    nights: int,
) -> BookingQuote:
    """Check capacity and inventory, then price the stay.

    A missing availability entry counts as zero rooms available. Capacity is
    checked first; when it fails nothing else is evaluated.
    """
    available_rooms = availability.available_rooms if availability else 0
    price = availability.current_price if availability else 0
    savings = availability.savings if availability else 0
    max_guests = max_guests_for(request.rooms_requested)

    quote = dict(
        room_type=request.room_type,
        nights=nights,
        rooms_requested=request.rooms_requested,
        guests=request.guests,
        max_guests=max_guests,
        price_per_night_per_room=price,
        available_rooms=available_rooms,
        savings_per_night=savings,
    )

    if request.guests > max_guests:
        logger.info(f"Quote rejected: {request.guests} guests exceed {max_guests} for {request.rooms_requested} room(s)")
        return BookingQuote(capacity_ok=False, availability_ok=False, **quote)

    verdict = inventory_verdict(request.rooms_requested, available_rooms)
    if verdict != InventoryVerdict.SATISFIABLE:
        logger.info(
            f"Quote rejected: {request.rooms_requested} {request.room_type.value} room(s) requested, "
            f"{available_rooms} available"
        )
        return BookingQuote(capacity_ok=True, availability_ok=False, inventory=verdict, **quote)

    rooms_nights = nights * request.rooms_requested
    return BookingQuote(
        capacity_ok=True,
        availability_ok=True,
        inventory=verdict,
        total_price=rooms_nights * price,
        total_savings=rooms_nights * savings,
        **quote,
    )


def require_quote(
    request: BookingQuoteRequest,
    availability: Optional[RoomTypeAvailability],
    nights: int,
) -> BookingQuote:
    """Like ``build_quote`` but raises the rejection instead of returning it."""
    quote = build_quote(request, availability, nights)
    quote.raise_for_rejection()
    return quote


def normalize_phone(raw: str) -> str:
    """Normalize an Indonesian phone number to the 62-prefixed digit form."""
    phone = _NON_DIGITS.sub("", raw or "")
    if phone.startswith("0"):
        phone = COUNTRY_CODE + phone[1:]
    if not phone.startswith(COUNTRY_CODE):
        phone = COUNTRY_CODE + phone
    return phone


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def build_guest_booking_payload(
    quote: BookingQuote,
    request: BookingQuoteRequest,
    guest: GuestDetails,
) -> GuestBookingPayload:
    """Assemble the guest booking body for an accepted quote."""
    quote.raise_for_rejection()
    return GuestBookingPayload(
        room_type=request.room_type,
        rooms=request.rooms_requested,
        name=guest.name.strip(),
        phone=normalize_phone(guest.phone),
        email=_clean_optional(guest.email),
        check_in=request.date_range.check_in,
        check_out=request.date_range.check_out,
        guests=request.guests,
        notes=_clean_optional(guest.notes),
    )


def build_manual_booking_payload(
    date_range: DateRange,
    room_type: RoomType,
    rooms: int,
    guests: int,
    name: str,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    notes: Optional[str] = None,
    source: BookingSource = BookingSource.ONSITE,
    ota_reference: Optional[str] = None,
    status: ManualBookingStatus = ManualBookingStatus.PENDING,
) -> ManualBookingPayload:
    """Assemble an admin manual booking.

    Staff bookings are not held to the guests-per-room limit. The phone is
    sent as typed.
    """
    name = (name or "").strip()
    if not name:
        raise MissingGuestName()

    source = BookingSource(source)
    status = ManualBookingStatus(status)
    return ManualBookingPayload(
        room_type=room_type,
        rooms=rooms,
        name=name,
        check_in=date_range.check_in,
        check_out=date_range.check_out,
        guests=guests,
        source=source,
        phone=_clean_optional(phone),
        email=_clean_optional(email),
        notes=_clean_optional(notes),
        ota_reference=_clean_optional(ota_reference) if source != BookingSource.ONSITE else None,
        status=status if status != ManualBookingStatus.PENDING else None,
    )
