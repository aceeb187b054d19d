import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from availability import describe_availability, find_room_type, query_admin_availability, query_availability
from backend_client import BackendClient
from config import settings
from credentials import AuthorizationHeaderProvider
from dates import resolve_today, validate_date_range
from errors import (
    AuthenticationRequired,
    BookingError,
    DateRangeError,
    QuoteRejected,
    UpstreamError,
)
from models import (
    AvailabilityResponse,
    BookingQuote,
    BookingQuoteRequest,
    BookingRequest,
    BookingResponse,
    GuestDetails,
    ManualBookingRequest,
    ManualBookingResponse,
    QuoteRequest,
    QuoteResponse,
    RoomType,
)
from quotes import build_guest_booking_payload, build_manual_booking_payload, build_quote, max_guests_for
from telemetry import BookingMetrics, setup_telemetry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Hotel Booking Service API",
    description="Room availability, booking quotes and guest bookings",
    version=settings.service_version,
    docs_url="/",
    redoc_url=None,
)

# Setup CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup OpenTelemetry
tracer, meter = setup_telemetry(app)

booking_metrics = BookingMetrics(meter)

ERROR_STATUS = [
    (DateRangeError, 400),
    (QuoteRejected, 409),
    (AuthenticationRequired, 401),
    (UpstreamError, 502),
]


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    status_code = next((status for cls, status in ERROR_STATUS if isinstance(exc, cls)), 400)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def get_server_today() -> date:
    return date.today()


def get_today(
    x_client_date: Optional[str] = Header(None),
    server_today: date = Depends(get_server_today),
) -> date:
    """Caller's local date from ``X-Client-Date`` (yyyy-MM-dd), else the server's."""
    return resolve_today(x_client_date, server_today)


async def get_backend_client(authorization: Optional[str] = Header(None)):
    """Backend client carrying the caller's session token, closed after the request."""
    client = BackendClient(credentials=AuthorizationHeaderProvider(authorization))
    try:
        yield client
    finally:
        await client.aclose()


def get_admin_client(client: BackendClient = Depends(get_backend_client)) -> BackendClient:
    if not client.credentials.get_token():
        raise AuthenticationRequired("Token not found, please sign in again")
    return client


def _outcome(quote: BookingQuote) -> str:
    if not quote.capacity_ok:
        return "capacity_exceeded"
    return quote.inventory.value


async def _quote(body: QuoteRequest, client: BackendClient, today: date) -> tuple[BookingQuoteRequest, BookingQuote]:
    """Validate, fetch availability and price one request from scratch."""
    date_range = validate_date_range(body.check_in, body.check_out, today=today)
    request = BookingQuoteRequest(
        date_range=date_range,
        room_type=body.room_type,
        rooms_requested=body.rooms,
        guests=body.guests,
    )

    # Capacity is decided before inventory, so skip the backend round trip.
    if request.guests > max_guests_for(request.rooms_requested):
        quote = build_quote(request, None, date_range.nights)
    else:
        snapshot = await query_availability(client, date_range, request.room_type)
        entry = find_room_type(snapshot, request.room_type)
        quote = build_quote(request, entry, date_range.nights)

    booking_metrics.record_quote(request.room_type.value, _outcome(quote))
    return request, quote


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend_url": settings.backend_base_url,
    }


@app.get("/api/availability", response_model=AvailabilityResponse)
async def check_availability(
    check_in: Optional[str] = Query(None, description="Check-in date (yyyy-MM-dd)"),
    check_out: Optional[str] = Query(None, description="Check-out date (yyyy-MM-dd)"),
    room_type: Optional[RoomType] = Query(None, alias="type", description="Room type filter"),
    client: BackendClient = Depends(get_backend_client),
    today: date = Depends(get_today),
):
    """
    Check room availability for a date range.
    Returns every room type the backend reports, optionally filtered by type.
    """
    with tracer.start_as_current_span("check_availability") as span:
        span.set_attribute("room_type", room_type.value if room_type else "all")

        date_range = validate_date_range(check_in, check_out, today=today)
        snapshot = await query_availability(client, date_range, room_type)

        booking_metrics.record_availability_check(room_type.value if room_type else "all", not snapshot)

        return AvailabilityResponse(
            check_in=date_range.check_in,
            check_out=date_range.check_out,
            nights=date_range.nights,
            room_types=[describe_availability(entry, date_range.nights) for entry in snapshot],
        )


@app.post("/api/quotes", response_model=QuoteResponse)
async def create_quote(
    body: QuoteRequest,
    client: BackendClient = Depends(get_backend_client),
    today: date = Depends(get_today),
):
    """
    Price a booking request.
    A rejected quote is still returned, with the reason in ``error``.
    """
    with tracer.start_as_current_span("create_quote") as span:
        span.set_attribute("room_type", body.room_type.value)
        span.set_attribute("rooms", body.rooms)
        span.set_attribute("guests", body.guests)

        _, quote = await _quote(body, client, today)
        span.set_attribute("quote.accepted", quote.accepted)

        error = quote.error
        return QuoteResponse(quote=quote, error=error.to_dict() if error else None)


@app.post("/api/bookings", response_model=BookingResponse)
async def book_room(
    body: BookingRequest,
    client: BackendClient = Depends(get_backend_client),
    today: date = Depends(get_today),
):
    """
    Book rooms for a guest.
    The quote is recomputed against fresh availability before the booking is sent.
    """
    with tracer.start_as_current_span("book_room") as span:
        span.set_attribute("room_type", body.room_type.value)
        span.set_attribute("rooms", body.rooms)

        request, quote = await _quote(body, client, today)
        guest = GuestDetails(name=body.name, phone=body.phone, email=body.email, notes=body.notes)
        payload = build_guest_booking_payload(quote, request, guest)

        whatsapp_url = await client.create_guest_booking(payload)

        booking_metrics.record_booking(request.room_type.value, "guest")
        logger.info(
            f"Booking sent: room_type={request.room_type.value}, rooms={request.rooms_requested}, "
            f"nights={quote.nights}, total={quote.total_price}"
        )

        return BookingResponse(whatsapp_url=whatsapp_url, quote=quote)


@app.get("/api/admin/availability", response_model=AvailabilityResponse)
async def admin_availability(
    check_in: Optional[str] = Query(None, description="Check-in date (yyyy-MM-dd)"),
    check_out: Optional[str] = Query(None, description="Check-out date (yyyy-MM-dd)"),
    room_type: Optional[RoomType] = Query(None, alias="type", description="Room type filter"),
    client: BackendClient = Depends(get_admin_client),
    today: date = Depends(get_today),
):
    """
    Availability board for staff, with stock levels per room type.
    """
    with tracer.start_as_current_span("admin_availability"):
        date_range = validate_date_range(check_in, check_out, today=today)
        snapshot = await query_admin_availability(client, date_range, room_type)

        return AvailabilityResponse(
            check_in=date_range.check_in,
            check_out=date_range.check_out,
            nights=date_range.nights,
            room_types=[describe_availability(entry, date_range.nights) for entry in snapshot],
        )


@app.post("/api/admin/bookings", response_model=ManualBookingResponse)
async def admin_manual_booking(
    body: ManualBookingRequest,
    client: BackendClient = Depends(get_admin_client),
    today: date = Depends(get_today),
):
    """
    Record a walk-in or OTA booking on behalf of a guest.
    """
    with tracer.start_as_current_span("admin_manual_booking") as span:
        span.set_attribute("source", body.source.value)

        date_range = validate_date_range(body.check_in, body.check_out, today=today)
        payload = build_manual_booking_payload(
            date_range,
            body.room_type,
            body.rooms,
            body.guests,
            body.name,
            phone=body.phone,
            email=body.email,
            notes=body.notes,
            source=body.source,
            ota_reference=body.ota_reference,
            status=body.status,
        )
        booking_ids = await client.create_manual_booking(payload)

        booking_metrics.record_booking(body.room_type.value, body.source.value)
        return ManualBookingResponse(booking_ids=booking_ids)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
