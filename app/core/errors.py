"""Explained errors for calls against the facilities backend.

Every failure the review engine can hit is turned into an ``ExplainedError``
with a fixed precedence for the human readable message:

1. the ``error`` field of a JSON error body
2. the ``message`` field
3. a plain-text body
4. a generic fallback supplied by the caller

401 and 403 responses additionally carry a fixed hint.
"""

from typing import Any

import httpx
from pydantic import BaseModel

from app.models.enums import ErrorKind

GENERIC_MESSAGE = "Request failed."
AUTH_HINT = "Your session may have expired. Sign in again and retry."
PERMISSION_HINT = "This action requires the admin role with offline review access."


class ExplainedError(BaseModel):
    """A failure reduced to something a reviewer can act on."""

    kind: ErrorKind
    message: str
    status_code: int | None = None
    hint: str | None = None
    body: str | None = None  # Raw response body, kept for diagnosis

    @property
    def text(self) -> str:
        """Message with the hint appended, as shown to the reviewer."""
        if self.hint:
            return f"{self.message} {self.hint}"
        return self.message


class BackendError(Exception):
    """Raised by the backend client when a call does not succeed."""

    def __init__(self, explained: ExplainedError) -> None:
        super().__init__(explained.text)
        self.explained = explained


class PreconditionError(Exception):
    """Raised when a review operation is refused before any network call."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.explained = ExplainedError(kind=ErrorKind.PRECONDITION, message=message)


def pick_message(data: Any) -> str | None:
    """Pick the server-provided message out of an arbitrary error body."""
    if isinstance(data, dict):
        for key in ("error", "message"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None
    if isinstance(data, str) and data.strip():
        return data.strip()
    return None


def _kind_for_status(status_code: int) -> ErrorKind:
    if status_code == 401:
        return ErrorKind.AUTH
    if status_code == 403:
        return ErrorKind.PERMISSION
    return ErrorKind.SERVER


def explain_status(
    status_code: int,
    data: Any,
    raw_body: str | None = None,
    fallback: str = GENERIC_MESSAGE,
) -> ExplainedError:
    """Explain a non-success HTTP status with an already decoded body."""
    kind = _kind_for_status(status_code)
    hint: str | None = None
    if kind == ErrorKind.AUTH:
        hint = AUTH_HINT
    elif kind == ErrorKind.PERMISSION:
        hint = PERMISSION_HINT
    elif isinstance(data, dict) and isinstance(data.get("hint"), str):
        hint = data["hint"]

    return ExplainedError(
        kind=kind,
        message=pick_message(data) or fallback,
        status_code=status_code,
        hint=hint,
        body=raw_body,
    )


def explain_response(response: httpx.Response, fallback: str = GENERIC_MESSAGE) -> ExplainedError:
    """Explain a non-success HTTP response."""
    try:
        data: Any = response.json()
    except ValueError:
        data = response.text
    return explain_status(response.status_code, data, response.text or None, fallback)


def explain_transport_error(exc: httpx.HTTPError, fallback: str = GENERIC_MESSAGE) -> ExplainedError:
    """Explain a request that produced no usable response."""
    if isinstance(exc, httpx.TimeoutException):
        message = "The server did not respond in time."
    else:
        message = str(exc) or fallback
    return ExplainedError(kind=ErrorKind.NETWORK, message=message)
