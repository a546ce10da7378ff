"""Async client for the facilities backend that owns submissions and readings."""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.core.errors import (
    BackendError,
    ExplainedError,
    explain_response,
    explain_transport_error,
    pick_message,
)
from app.models.enums import ErrorKind
from app.schemas.submission import (
    ApproveResponse,
    BuildingRow,
    MeterRow,
    StallRow,
    Submission,
)

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)

PENDING_PATH = "/offlineExport/pending"
APPROVE_PATH = "/offlineExport/approve/{submission_id}"
REJECT_PATH = "/offlineExport/reject/{submission_id}"


def create_http_client(
    base_url: str | None = None,
    timeout_seconds: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared HTTP client with the fixed per-request timeout."""
    return httpx.AsyncClient(
        base_url=base_url or settings.BACKEND_API_URL,
        timeout=timeout_seconds if timeout_seconds is not None else settings.REQUEST_TIMEOUT_SECONDS,
        transport=transport,
    )


def is_success_status(status_code: int) -> bool:
    """2xx and 3xx responses count as success."""
    return 200 <= status_code < 400


def parse_rows(model: type[RowT], rows: list[Any]) -> list[RowT]:
    """Validate listing rows, dropping the ones that do not fit the model."""
    parsed: list[RowT] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("Dropping malformed %s row: %s", model.__name__, exc.errors()[:1])
    return parsed


class FacilitiesBackend:
    """Calls the backend on behalf of one caller, forwarding their bearer token.

    The token is passed through untouched; it is never minted, refreshed or
    validated here.
    """

    def __init__(self, http: httpx.AsyncClient, token: str) -> None:
        self._http = http
        self._headers = {"Authorization": f"Bearer {token}"}

    async def send(self, method: str, path: str, fallback: str) -> httpx.Response:
        """Issue a request and return the response whatever its status.

        Raises:
            BackendError: If no response was received.

        """
        try:
            return await self._http.request(method, path, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed without a response: %r", method, path, exc)
            raise BackendError(explain_transport_error(exc, fallback)) from exc

    async def request_json(self, method: str, path: str, fallback: str) -> Any:
        """Issue a request and return the decoded JSON body (None when empty).

        Raises:
            BackendError: If the call fails or the status is not a success.

        """
        response = await self.send(method, path, fallback)
        if not is_success_status(response.status_code):
            explained = explain_response(response, fallback)
            logger.info(
                "%s %s returned %s: %s", method, path, response.status_code, explained.message
            )
            raise BackendError(explained)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(
                ExplainedError(
                    kind=ErrorKind.SERVER,
                    message=fallback,
                    status_code=response.status_code,
                    body=response.text,
                )
            ) from exc

    async def fetch_array(self, path: str) -> list[Any]:
        """GET a listing that must be a JSON array.

        Raises:
            BackendError: If the call fails or the body is not an array.

        """
        data = await self.request_json("GET", path, f"Failed to load {path}.")
        if not isinstance(data, list):
            raise BackendError(
                ExplainedError(
                    kind=ErrorKind.SERVER,
                    message=f"Expected a list from {path}.",
                    body=None if data is None else str(data),
                )
            )
        return data

    async def list_pending(self) -> list[Submission]:
        """Load every pending offline submission."""
        fallback = "Failed to load pending submissions."
        data = await self.request_json("GET", PENDING_PATH, fallback)
        submissions = data.get("submissions") if isinstance(data, dict) else None
        if not isinstance(submissions, list):
            raise BackendError(
                ExplainedError(
                    kind=ErrorKind.SERVER,
                    message=pick_message(data) or "Unexpected server response.",
                    body=None if data is None else str(data),
                )
            )
        return parse_rows(Submission, submissions)

    async def _listing(self, path: str, model: type[RowT]) -> list[RowT]:
        data = await self.request_json("GET", path, f"Failed to load {path}.")
        return parse_rows(model, data) if isinstance(data, list) else []

    async def list_buildings(self) -> list[BuildingRow]:
        """Load the building listing."""
        return await self._listing("/buildings", BuildingRow)

    async def list_stalls(self) -> list[StallRow]:
        """Load the stall listing."""
        return await self._listing("/stalls", StallRow)

    async def list_meters(self) -> list[MeterRow]:
        """Load the meter listing."""
        return await self._listing("/meters", MeterRow)

    async def approve(self, submission_id: int) -> ApproveResponse:
        """Approve a submission, creating its canonical reading."""
        path = APPROVE_PATH.format(submission_id=submission_id)
        data = await self.request_json("POST", path, "Approve failed.")
        if isinstance(data, dict):
            try:
                return ApproveResponse.model_validate(data)
            except ValidationError:
                logger.warning("Approve %s returned an unreadable body", submission_id)
        return ApproveResponse()

    async def reject(self, submission_id: int) -> None:
        """Reject a submission; no reading is created."""
        path = REJECT_PATH.format(submission_id=submission_id)
        await self.request_json("POST", path, "Reject failed.")
