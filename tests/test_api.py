"""API tests for the booking flow."""

from __future__ import annotations

from datetime import date

import pytest

from conftest import availability_entry
from main import app, get_server_today, get_today

pytestmark = pytest.mark.asyncio

WHATSAPP_URL = "https://wa.me/6281100000000?text=Booking"


def _booking_body(**overrides) -> dict:
    body = {
        "check_in": "2025-06-01",
        "check_out": "2025-06-03",
        "room_type": "deluxe",
        "rooms": 2,
        "guests": 8,
        "name": "Siti Rahma",
        "phone": "081234567890",
        "email": "",
        "notes": "  ",
    }
    body.update(overrides)
    return body


async def test_health(api_client) -> None:
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_availability(api_client, backend) -> None:
    backend.respond(
        "/public/availability",
        body={"data": [availability_entry("superior", available_rooms=0), availability_entry("deluxe")]},
    )

    response = await api_client.get(
        "/api/availability", params={"check_in": "2025-06-01", "check_out": "2025-06-03"}
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["nights"] == 2
    assert [item["room_type"] for item in payload["room_types"]] == ["superior", "deluxe"]
    assert payload["room_types"][0]["stock_level"] == "full"
    assert payload["room_types"][1]["stay_price"] == 1000000
    assert "type" not in backend.requests[0].url.params


async def test_availability_empty_is_ok(api_client, backend) -> None:
    backend.respond("/public/availability", body={"data": []})

    response = await api_client.get(
        "/api/availability",
        params={"check_in": "2025-06-01", "check_out": "2025-06-03", "type": "executive"},
    )

    assert response.status_code == 200
    assert response.json()["room_types"] == []
    assert backend.requests[0].url.params["type"] == "executive"


@pytest.mark.parametrize(
    ("params", "code"),
    [
        ({"check_out": "2025-06-03"}, "missing_date"),
        ({"check_in": "2025-05-01", "check_out": "2025-06-03"}, "check_in_in_past"),
        ({"check_in": "2025-06-03", "check_out": "2025-06-03"}, "invalid_range"),
        ({"check_in": "tomorrow", "check_out": "2025-06-03"}, "invalid_date"),
    ],
)
async def test_availability_rejects_bad_dates(api_client, backend, params, code) -> None:
    response = await api_client.get("/api/availability", params=params)

    assert response.status_code == 400
    assert response.json()["code"] == code
    assert backend.requests == []


async def test_availability_service_error(api_client, backend) -> None:
    backend.respond("/public/availability", status_code=500, body={"error": "boom"})

    response = await api_client.get(
        "/api/availability", params={"check_in": "2025-06-01", "check_out": "2025-06-03"}
    )

    assert response.status_code == 502
    assert response.json() == {"error": "boom", "code": "availability_unavailable", "upstream_status": 500}


async def test_availability_unauthorized_upstream(api_client, backend) -> None:
    backend.respond("/public/availability", status_code=401, body={"error": "unauthorized"})

    response = await api_client.get(
        "/api/availability", params={"check_in": "2025-06-01", "check_out": "2025-06-03"}
    )

    assert response.status_code == 502
    assert response.json()["code"] == "availability_unavailable"
    assert response.json()["upstream_status"] == 401


async def test_quote_accepted(api_client, backend) -> None:
    backend.respond("/public/availability", body={"data": [availability_entry("deluxe")]})

    response = await api_client.post("/api/quotes", json=_booking_body())

    assert response.status_code == 200
    payload = response.json()
    assert payload["error"] is None
    assert payload["quote"]["total_price"] == 2000000
    assert payload["quote"]["capacity_ok"] is True
    assert payload["quote"]["availability_ok"] is True


async def test_quote_capacity_exceeded_skips_backend(api_client, backend) -> None:
    response = await api_client.post("/api/quotes", json=_booking_body(guests=9))

    assert response.status_code == 200
    payload = response.json()
    assert payload["quote"]["capacity_ok"] is False
    assert payload["quote"]["total_price"] is None
    assert payload["error"]["code"] == "capacity_exceeded"
    assert backend.requests == []


@pytest.mark.parametrize(
    ("available", "code"),
    [(0, "zero_availability"), (1, "insufficient_inventory")],
)
async def test_quote_inventory_rejections(api_client, backend, available, code) -> None:
    backend.respond("/public/availability", body={"data": [availability_entry("deluxe", available_rooms=available)]})

    response = await api_client.post("/api/quotes", json=_booking_body())

    payload = response.json()
    assert payload["quote"]["availability_ok"] is False
    assert payload["error"]["code"] == code
    assert payload["error"]["available_rooms"] == available


async def test_quote_room_type_absent_from_listing(api_client, backend) -> None:
    backend.respond("/public/availability", body={"data": [availability_entry("superior")]})

    response = await api_client.post("/api/quotes", json=_booking_body())

    assert response.json()["error"]["code"] == "zero_availability"


async def test_booking(api_client, backend) -> None:
    backend.respond("/public/availability", body={"data": [availability_entry("deluxe")]})
    backend.respond("/public/guest-bookings", status_code=201, body={"data": {"whatsapp_url": WHATSAPP_URL}})

    response = await api_client.post("/api/bookings", json=_booking_body())

    assert response.status_code == 200
    assert response.json()["whatsapp_url"] == WHATSAPP_URL
    assert response.json()["quote"]["total_price"] == 2000000
    assert backend.paths() == ["/public/availability", "/public/guest-bookings"]
    sent = backend.last_json()
    assert sent["phone"] == "6281234567890"
    assert sent["email"] is None
    assert sent["notes"] is None
    assert sent["rooms"] == 2


async def test_booking_rechecks_inventory(api_client, backend) -> None:
    backend.respond("/public/availability", body={"data": [availability_entry("deluxe", available_rooms=1)]})

    response = await api_client.post("/api/bookings", json=_booking_body())

    assert response.status_code == 409
    assert response.json()["code"] == "insufficient_inventory"
    assert backend.paths() == ["/public/availability"]


async def test_booking_capacity_exceeded(api_client, backend) -> None:
    response = await api_client.post("/api/bookings", json=_booking_body(guests=9))

    assert response.status_code == 409
    assert response.json()["code"] == "capacity_exceeded"


async def test_booking_missing_whatsapp_url(api_client, backend) -> None:
    backend.respond("/public/availability", body={"data": [availability_entry("deluxe")]})
    backend.respond("/public/guest-bookings", status_code=201, body={"data": {"id": 7}})

    response = await api_client.post("/api/bookings", json=_booking_body())

    assert response.status_code == 502
    assert response.json()["code"] == "missing_redirect_target"


async def test_booking_requires_phone(api_client, backend) -> None:
    response = await api_client.post("/api/bookings", json=_booking_body(phone="-"))

    assert response.status_code == 422
    assert backend.requests == []


async def test_booking_forwards_session_token(api_client, backend) -> None:
    backend.respond("/public/availability", body={"data": [availability_entry("deluxe")]})
    backend.respond("/public/guest-bookings", body={"whatsapp_url": WHATSAPP_URL})

    response = await api_client.post(
        "/api/bookings", json=_booking_body(), headers={"Authorization": "Bearer guest-token"}
    )

    assert response.status_code == 200
    assert all(request.headers["authorization"] == "Bearer guest-token" for request in backend.requests)


async def test_admin_availability_requires_token(api_client, backend) -> None:
    response = await api_client.get(
        "/api/admin/availability", params={"check_in": "2025-06-01", "check_out": "2025-06-03"}
    )

    assert response.status_code == 401
    assert response.json()["code"] == "authentication_required"
    assert backend.requests == []


async def test_admin_availability(api_client, backend) -> None:
    backend.respond(
        "/api/availability",
        body={"data": [availability_entry("executive", available_rooms=2, total_rooms=8)]},
    )

    response = await api_client.get(
        "/api/admin/availability",
        params={"check_in": "2025-06-01", "check_out": "2025-06-04"},
        headers={"Authorization": "Bearer staff-token"},
    )

    assert response.status_code == 200
    (item,) = response.json()["room_types"]
    assert item["stock_level"] == "limited"
    assert item["stay_price"] == 1500000


async def test_admin_session_expired(api_client, backend) -> None:
    backend.respond("/api/availability", status_code=401, body={"error": "token expired"})

    response = await api_client.get(
        "/api/admin/availability",
        params={"check_in": "2025-06-01", "check_out": "2025-06-04"},
        headers={"Authorization": "Bearer stale"},
    )

    assert response.status_code == 401


async def test_admin_manual_booking_ignores_guest_limit(api_client, backend) -> None:
    backend.respond("/api/bookings", status_code=201, body={"data": {"booking_ids": [9]}})

    response = await api_client.post(
        "/api/admin/bookings",
        json={
            "check_in": "2025-06-01",
            "check_out": "2025-06-02",
            "room_type": "superior",
            "rooms": 1,
            "guests": 6,
            "name": "Budi",
            "source": "tiket.com",
            "ota_reference": "TIX-5",
        },
        headers={"Authorization": "Bearer staff-token"},
    )

    assert response.status_code == 200
    assert response.json() == {"booking_ids": [9]}
    sent = backend.last_json()
    assert sent["guests"] == 6
    assert sent["source"] == "tiket.com"
    assert sent["ota_reference"] == "TIX-5"
    assert "status" not in sent
    assert "phone" not in sent


async def test_admin_manual_booking_requires_name(api_client, backend) -> None:
    response = await api_client.post(
        "/api/admin/bookings",
        json={"check_in": "2025-06-01", "check_out": "2025-06-02", "name": " "},
        headers={"Authorization": "Bearer staff-token"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "missing_guest_name"
    assert backend.requests == []


@pytest.mark.parametrize(
    ("client_date", "status_code"),
    [
        ("2025-05-31", 200),
        ("2025-06-02", 400),
        ("2025-05-01", 200),
        ("garbled", 200),
    ],
)
async def test_client_date_header_bounded_by_server_date(api_client, backend, client_date, status_code) -> None:
    app.dependency_overrides.pop(get_today)
    app.dependency_overrides[get_server_today] = lambda: date(2025, 6, 1)
    backend.respond("/public/availability", body={"data": [availability_entry("deluxe")]})

    response = await api_client.get(
        "/api/availability",
        params={"check_in": "2025-06-01", "check_out": "2025-06-03"},
        headers={"X-Client-Date": client_date},
    )

    assert response.status_code == status_code
