"""Test fixtures for the hotel booking service."""
from __future__ import annotations

import json
import os
from collections.abc import AsyncIterator, Callable
from datetime import date
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import Header

os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("BACKEND_BASE_URL", "http://backend.test")

from backend_client import BackendClient
from credentials import AuthorizationHeaderProvider, StaticCredentialProvider
from main import app, get_backend_client, get_today

TODAY = date(2025, 5, 20)


def availability_entry(room_type: str = "deluxe", **overrides) -> dict:
    entry = {
        "room_type": room_type,
        "base_price": 600000,
        "current_price": 500000,
        "discount_percent": 17,
        "available_rooms": 3,
        "total_rooms": 10,
    }
    entry.update(overrides)
    return entry


class FakeBackend:
    """Records requests and answers them from canned responses keyed by path."""

    def __init__(self) -> None:
        self.responses: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def respond(self, path: str, status_code: int = 200, body=None) -> None:
        self.responses[path] = httpx.Response(status_code, json=body)

    def fail(self, path: str, exc: Exception) -> None:
        self.responses[path] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.get(request.url.path)
        if response is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(response, Exception):
            raise response
        return response

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def make_client(backend: FakeBackend) -> Callable[..., BackendClient]:
    def _make(token: str | None = None) -> BackendClient:
        return BackendClient(
            base_url="http://backend.test",
            credentials=StaticCredentialProvider(token),
            transport=httpx.MockTransport(backend.handler),
        )

    return _make


@pytest_asyncio.fixture()
async def api_client(backend: FakeBackend) -> AsyncIterator[httpx.AsyncClient]:
    """Async client against the app with the backend and clock replaced."""

    async def _backend_client(authorization: Optional[str] = Header(None)):
        client = BackendClient(
            base_url="http://backend.test",
            credentials=AuthorizationHeaderProvider(authorization),
            transport=httpx.MockTransport(backend.handler),
        )
        try:
            yield client
        finally:
            await client.aclose()

    app.dependency_overrides[get_backend_client] = _backend_client
    app.dependency_overrides[get_today] = lambda: TODAY
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
