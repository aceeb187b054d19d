from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from errors import (
    BookingError,
    CapacityExceeded,
    InsufficientInventory,
    ZeroAvailability,
)


class RoomType(str, Enum):
    SUPERIOR = "superior"
    DELUXE = "deluxe"
    EXECUTIVE = "executive"


class StockLevel(str, Enum):
    AVAILABLE = "available"
    LIMITED = "limited"
    FULL = "full"


class InventoryVerdict(str, Enum):
    """Outcome of comparing requested rooms against the inventory."""
    ZERO = "zero"
    INSUFFICIENT = "insufficient"
    SATISFIABLE = "satisfiable"


class BookingSource(str, Enum):
    ONSITE = "onsite"
    TRAVELOKA = "traveloka"
    AGODA = "agoda"
    TIKET_COM = "tiket.com"


class ManualBookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"


class DateRange(BaseModel):
    """Validated stay period. Build it through ``dates.validate_date_range``."""
    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @model_validator(mode="after")
    def check_order(self):
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days


class RoomTypeAvailability(BaseModel):
    """Inventory snapshot for one room type, as returned by the backend."""
    model_config = ConfigDict(frozen=True)

    room_type: RoomType
    base_price: int = Field(ge=0)
    current_price: int = Field(ge=0)
    discount_percent: int = Field(ge=0, le=100)
    available_rooms: int = Field(ge=0)
    total_rooms: int = Field(ge=1)

    @model_validator(mode="after")
    def check_invariants(self):
        if self.current_price > self.base_price:
            raise ValueError("current_price exceeds base_price")
        if self.available_rooms > self.total_rooms:
            raise ValueError("available_rooms exceeds total_rooms")
        return self

    @property
    def savings(self) -> int:
        return self.base_price - self.current_price


class BookingQuoteRequest(BaseModel):
    """Rooms and guests requested for a stay."""
    model_config = ConfigDict(frozen=True)

    date_range: DateRange
    room_type: RoomType
    rooms_requested: int = Field(ge=1)
    guests: int = Field(ge=1)


class BookingQuote(BaseModel):
    """Priced feasibility result for one quote request. Never persisted."""
    model_config = ConfigDict(frozen=True)

    room_type: RoomType
    nights: int
    rooms_requested: int
    guests: int
    max_guests: int
    price_per_night_per_room: int
    capacity_ok: bool
    availability_ok: bool
    available_rooms: int
    inventory: Optional[InventoryVerdict] = None
    total_price: Optional[int] = None
    savings_per_night: int = 0
    total_savings: Optional[int] = None

    @property
    def accepted(self) -> bool:
        return self.capacity_ok and self.availability_ok

    @property
    def error(self) -> Optional[BookingError]:
        """The rejection for this quote, or None when it was accepted."""
        if not self.capacity_ok:
            return CapacityExceeded(self.guests, self.rooms_requested, self.max_guests)
        if self.inventory == InventoryVerdict.ZERO:
            return ZeroAvailability(self.room_type.value)
        if self.inventory == InventoryVerdict.INSUFFICIENT:
            return InsufficientInventory(
                self.room_type.value, self.rooms_requested, self.available_rooms
            )
        return None

    def raise_for_rejection(self) -> None:
        error = self.error
        if error is not None:
            raise error


class GuestDetails(BaseModel):
    """Contact details typed by the guest."""
    name: str
    phone: str
    email: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name is required")
        return value

    @field_validator("phone")
    @classmethod
    def phone_has_digits(cls, value: str) -> str:
        if not any(ch.isdigit() for ch in value):
            raise ValueError("phone number must contain digits")
        return value


class GuestBookingPayload(BaseModel):
    """Body sent to the public guest booking endpoint."""
    room_type: RoomType
    rooms: int
    name: str
    phone: str
    email: Optional[str] = None
    check_in: date
    check_out: date
    guests: int
    notes: Optional[str] = None


class ManualBookingPayload(BaseModel):
    """Body sent to the admin manual booking endpoint (blank fields omitted)."""
    room_type: RoomType
    rooms: int
    name: str
    check_in: date
    check_out: date
    guests: int
    source: BookingSource = BookingSource.ONSITE
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    ota_reference: Optional[str] = None
    status: Optional[ManualBookingStatus] = None


# API models

class RoomTypeAvailabilityView(BaseModel):
    """Availability entry enriched for display."""
    room_type: RoomType
    base_price: int
    current_price: int
    discount_percent: int
    available_rooms: int
    total_rooms: int
    savings: int
    stock_level: StockLevel
    stay_price: int


class AvailabilityResponse(BaseModel):
    """Availability for a date range."""
    check_in: date
    check_out: date
    nights: int
    room_types: list[RoomTypeAvailabilityView]


class QuoteRequest(BaseModel):
    """Quote request as posted by the booking form."""
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    room_type: RoomType
    rooms: int = Field(1, ge=1)
    guests: int = Field(2, ge=1)


class QuoteResponse(BaseModel):
    """Quote with the rejection, if any, spelled out for the form."""
    quote: BookingQuote
    error: Optional[dict] = None


class BookingRequest(QuoteRequest, GuestDetails):
    """Booking request as posted by the booking form."""


class BookingResponse(BaseModel):
    """Booking response."""
    whatsapp_url: str
    quote: BookingQuote


class ManualBookingRequest(BaseModel):
    """Manual booking request from the admin screen."""
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    room_type: RoomType = RoomType.SUPERIOR
    rooms: int = Field(1, ge=1)
    guests: int = Field(1, ge=1)
    name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    source: BookingSource = BookingSource.ONSITE
    ota_reference: Optional[str] = None
    status: ManualBookingStatus = ManualBookingStatus.PENDING


class ManualBookingResponse(BaseModel):
    """Manual booking response."""
    booking_ids: list[int]
