"""Shared fixtures: an in-memory facilities backend served through httpx.MockTransport."""

import asyncio
import json
from typing import Any

import httpx
import pytest
from jose import jwt

from app.services.backend import FacilitiesBackend
from app.services.endpoint_resolver import ReadingEndpointResolver
from app.services.inflight import InFlightGuard
from app.services.review import ReviewWorkspace

BASE_URL = "http://backend.test/api"


def make_token(role: str | None = "admin", sub: str = "reviewer") -> str:
    """Signed with a throwaway key; the service never verifies it."""
    claims: dict[str, Any] = {"sub": sub}
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, "not-the-backend-key", algorithm="HS256")


def _submission(
    submission_id: int,
    meter_id: str,
    value: float,
    reading_date: str,
    submitted_at: str,
) -> dict[str, Any]:
    return {
        "id": submission_id,
        "device_serial": "SN-0001",
        "device_name": "Reader A",
        "reader_user_id": "reader-7",
        "meter_id": meter_id,
        "reading_value": value,
        "reading_date": reading_date,
        "remarks": None,
        "image_base64": None,
        "submitted_at": submitted_at,
        "status": "pending",
    }


class FakeFacilitiesBackend:
    """Minimal stand-in for the facilities backend.

    Every request is recorded in ``calls`` as ``(method, path)`` with the
    ``/api`` prefix removed.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.auth_headers: list[str | None] = []
        self.buildings: list[dict[str, Any]] = [
            {"building_id": "B1", "building_name": "North Market"},
            {"building_id": "B2", "building_name": None},
        ]
        self.stalls: list[dict[str, Any]] = [
            {"stall_id": "S1", "building_id": "B1"},
            {"stall_id": "S2", "building_id": "B2"},
        ]
        self.meters: list[dict[str, Any]] = [
            {"meter_id": "M1", "stall_id": "S1"},
            {"meter_id": "M2", "stall_id": "S1"},
            {"meter_id": "M3", "stall_id": "S2"},
            {"meter_id": "M4", "building_id": "B2", "stall_id": "S1"},
            {"meter_id": "M5"},
        ]
        self.readings: list[dict[str, Any]] = [
            {"meter_id": "M1", "reading_value": 100, "lastread_date": "2024-01-01"},
            {"meter_id": "M2", "reading_value": 50, "lastread_date": "2024-01-01"},
        ]
        self.submissions: list[dict[str, Any]] = [
            _submission(101, "M1", 120, "2024-02-01", "2024-02-01T08:00:00Z"),
            _submission(102, "M2", 52, "2024-02-01", "2024-02-02T08:00:00Z"),
            _submission(103, "M3", 10, "2024-02-01", "2024-02-03T08:00:00Z"),
        ]
        # path -> (status, body); defaults to serving self.readings on /meter_reading
        self.reading_routes: dict[str, tuple[int, Any]] | None = None
        self.approve_failures: dict[int, tuple[int, Any]] = {}
        self.reject_failures: dict[int, tuple[int, Any]] = {}
        self.pending_response: tuple[int, Any] | None = None
        self.lookup_failure: tuple[int, Any] | None = None
        self.hold_approvals: asyncio.Event | None = None
        self._next_reading = 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=BASE_URL, transport=self.transport(), timeout=5.0)

    def calls_to(self, method: str, prefix: str) -> list[str]:
        return [path for m, path in self.calls if m == method and path.startswith(prefix)]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        self.calls.append((request.method, path))
        self.auth_headers.append(request.headers.get("Authorization"))

        if request.method == "GET":
            return self._get(path)
        if path.startswith("/offlineExport/approve/"):
            submission_id = int(path.rsplit("/", 1)[1])
            if self.hold_approvals is not None:
                await self.hold_approvals.wait()
            return self._approve(submission_id)
        if path.startswith("/offlineExport/reject/"):
            return self._reject(int(path.rsplit("/", 1)[1]))
        return httpx.Response(404, json={"error": "Not found"})

    def _get(self, path: str) -> httpx.Response:
        if path == "/offlineExport/pending":
            if self.pending_response is not None:
                status, body = self.pending_response
                return _respond(status, body)
            pending = [s for s in self.submissions if s["status"] == "pending"]
            return httpx.Response(200, json={"submissions": pending})

        lookups = {"/buildings": self.buildings, "/stalls": self.stalls, "/meters": self.meters}
        if path in lookups:
            if self.lookup_failure is not None:
                return _respond(*self.lookup_failure)
            return httpx.Response(200, json=lookups[path])

        routes = self.reading_routes
        if routes is None:
            routes = {"/meter_reading": (200, self.readings)}
        if path in routes:
            return _respond(*routes[path])
        return httpx.Response(404, json={"error": "Not found"})

    def _find(self, submission_id: int) -> dict[str, Any] | None:
        return next((s for s in self.submissions if s["id"] == submission_id), None)

    def _approve(self, submission_id: int) -> httpx.Response:
        if submission_id in self.approve_failures:
            return _respond(*self.approve_failures[submission_id])
        submission = self._find(submission_id)
        if submission is None or submission["status"] != "pending":
            return httpx.Response(409, json={"error": "Submission is not pending"})
        submission["status"] = "approved"
        reading_id = f"R-{self._next_reading}"
        self._next_reading += 1
        self.readings.append(
            {
                "meter_id": submission["meter_id"],
                "reading_value": submission["reading_value"],
                "lastread_date": submission["reading_date"],
            }
        )
        return httpx.Response(200, json={"reading_id": reading_id})

    def _reject(self, submission_id: int) -> httpx.Response:
        if submission_id in self.reject_failures:
            return _respond(*self.reject_failures[submission_id])
        submission = self._find(submission_id)
        if submission is None or submission["status"] != "pending":
            return httpx.Response(409, json={"error": "Submission is not pending"})
        submission["status"] = "rejected"
        return httpx.Response(204)


def _respond(status: int, body: Any) -> httpx.Response:
    if isinstance(body, str):
        return httpx.Response(status, text=body)
    if body is None:
        return httpx.Response(status)
    return httpx.Response(status, content=json.dumps(body).encode(), headers={"Content-Type": "application/json"})


@pytest.fixture
def fake_backend() -> FakeFacilitiesBackend:
    """Fresh fake backend per test."""
    return FakeFacilitiesBackend()


@pytest.fixture
def backend(fake_backend: FakeFacilitiesBackend) -> FacilitiesBackend:
    """Backend client talking to the fake backend."""
    return FacilitiesBackend(fake_backend.client(), make_token())


@pytest.fixture
def resolver() -> ReadingEndpointResolver:
    """Resolver with the default candidate list."""
    return ReadingEndpointResolver(["/meter_reading", "/readings", "/meter-readings", "/meterreadings"])


@pytest.fixture
def workspace(backend: FacilitiesBackend, resolver: ReadingEndpointResolver) -> ReviewWorkspace:
    """Unloaded review workspace."""
    return ReviewWorkspace(backend, resolver)


@pytest.fixture
def guard() -> InFlightGuard:
    """Empty in-flight guard."""
    return InFlightGuard()


@pytest.fixture
def token_factory():
    """Build unverified JWTs carrying the given role."""
    return make_token
