import logging
from typing import Optional, Type

import httpx
from opentelemetry import trace

from config import settings
from credentials import AnonymousCredentialProvider, CredentialProvider
from errors import (
    AuthenticationRequired,
    AvailabilityServiceError,
    BookingServiceError,
    MissingRedirectTarget,
    UpstreamError,
)
from models import GuestBookingPayload, ManualBookingPayload

logger = logging.getLogger(__name__)

PUBLIC_AVAILABILITY_PATH = "/public/availability"
ADMIN_AVAILABILITY_PATH = "/api/availability"
GUEST_BOOKINGS_PATH = "/public/guest-bookings"
MANUAL_BOOKINGS_PATH = "/api/bookings"


def _error_message(response: httpx.Response, default: str) -> str:
    """Pull the backend's ``{"error": ...}`` message out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


class BackendClient:
    """Client for the hotel backend REST service."""

    def __init__(
        self,
        base_url: str = None,
        credentials: Optional[CredentialProvider] = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.backend_base_url).rstrip("/")
        self.credentials = credentials or AnonymousCredentialProvider()
        self.tracer = trace.get_tracer(__name__)
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.backend_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        token = self.credentials.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[UpstreamError],
        failure_message: str,
        auth_required: bool = False,
        **kwargs,
    ) -> httpx.Response:
        """Send one request; no retries, failures surface to the caller.

        A 401 means an expired session only on paths that need a token; on
        public paths it is an ordinary upstream failure.
        """
        with self.tracer.start_as_current_span(f"backend {method} {path}") as span:
            span.set_attribute("http.method", method)
            span.set_attribute("backend.path", path)
            try:
                response = await self.client.request(method, path, headers=self._headers(), **kwargs)
            except httpx.TransportError as e:
                logger.error(f"Backend request {method} {path} failed: {e}")
                span.set_attribute("error", True)
                span.set_attribute("error.message", str(e))
                raise error_cls(failure_message) from e

            span.set_attribute("http.status_code", response.status_code)
            logger.debug(f"Backend {method} {path} -> {response.status_code}")

            if auth_required and response.status_code == httpx.codes.UNAUTHORIZED:
                logger.warning(f"Backend rejected credentials for {method} {path}")
                self.credentials.invalidate()
                raise AuthenticationRequired()

            if response.is_error:
                message = _error_message(response, failure_message)
                logger.error(f"Backend {method} {path} returned {response.status_code}: {message}")
                span.set_attribute("error", True)
                span.set_attribute("error.message", message)
                raise error_cls(message, response.status_code)

            return response

    async def _get_availability(self, path: str, params: dict, auth_required: bool = False):
        response = await self._request(
            "GET",
            path,
            AvailabilityServiceError,
            "Failed to fetch room availability",
            auth_required=auth_required,
            params=params,
        )
        try:
            return response.json()
        except ValueError:
            logger.error(f"Availability response from {path} is not JSON")
            raise AvailabilityServiceError(
                "Availability service returned a malformed response", response.status_code
            ) from None

    async def get_availability(self, params: dict):
        """Fetch the public availability listing as raw JSON."""
        return await self._get_availability(PUBLIC_AVAILABILITY_PATH, params)

    async def get_admin_availability(self, params: dict):
        """Fetch the admin availability listing as raw JSON (token required)."""
        return await self._get_availability(ADMIN_AVAILABILITY_PATH, params, auth_required=True)

    async def create_guest_booking(self, payload: GuestBookingPayload) -> str:
        """Create a guest booking and return the WhatsApp deep link."""
        response = await self._request(
            "POST",
            GUEST_BOOKINGS_PATH,
            BookingServiceError,
            "Failed to create booking",
            json=payload.model_dump(mode="json"),
        )
        try:
            body = response.json()
        except ValueError:
            body = None

        whatsapp_url = None
        if isinstance(body, dict):
            data = body.get("data")
            if isinstance(data, dict):
                whatsapp_url = data.get("whatsapp_url")
            whatsapp_url = whatsapp_url or body.get("whatsapp_url")

        if not whatsapp_url or not isinstance(whatsapp_url, str):
            logger.error("Booking response carried no WhatsApp link")
            raise MissingRedirectTarget(response.status_code)

        logger.info(f"Guest booking created: room_type={payload.room_type.value}, rooms={payload.rooms}")
        return whatsapp_url

    async def create_manual_booking(self, payload: ManualBookingPayload) -> list[int]:
        """Create an admin manual booking and return the new booking ids."""
        response = await self._request(
            "POST",
            MANUAL_BOOKINGS_PATH,
            BookingServiceError,
            "Failed to create manual booking",
            auth_required=True,
            json=payload.model_dump(mode="json", exclude_none=True),
        )
        try:
            body = response.json()
        except ValueError:
            body = None

        booking_ids = []
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            booking_ids = body["data"].get("booking_ids") or []

        logger.info(f"Manual booking created: ids={booking_ids}, source={payload.source.value}")
        return booking_ids
