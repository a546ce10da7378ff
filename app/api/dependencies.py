"""Dependencies wiring the review engine into request handlers."""

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.services.approval import ApprovalEngine
from app.services.auth import has_role, read_unverified_claims
from app.services.backend import FacilitiesBackend
from app.services.endpoint_resolver import ReadingEndpointResolver
from app.services.inflight import InFlightGuard
from app.services.review import ReviewWorkspace

bearer_scheme = HTTPBearer(auto_error=False)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared HTTP client created in the application lifespan."""
    return request.app.state.http_client


def get_guard(request: Request) -> InFlightGuard:
    """Process-wide in-flight guard."""
    return request.app.state.inflight_guard


def get_resolver(request: Request) -> ReadingEndpointResolver:
    """Process-wide reading endpoint resolver."""
    return request.app.state.reading_resolver


def get_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Bearer token to forward to the backend; only the admin role may review."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    claims = read_unverified_claims(credentials.credentials)
    if not has_role(claims, settings.ADMIN_ROLE):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Offline submission review is available to admins only",
        )
    return credentials.credentials


def get_backend(
    token: str = Depends(get_token),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> FacilitiesBackend:
    """Backend client acting for the caller."""
    return FacilitiesBackend(http, token)


def get_workspace(
    backend: FacilitiesBackend = Depends(get_backend),
    resolver: ReadingEndpointResolver = Depends(get_resolver),
) -> ReviewWorkspace:
    """Fresh, not yet loaded review workspace."""
    return ReviewWorkspace(backend, resolver)


def get_engine(
    workspace: ReviewWorkspace = Depends(get_workspace),
    guard: InFlightGuard = Depends(get_guard),
) -> ApprovalEngine:
    """Approval engine bound to the caller's workspace."""
    return ApprovalEngine(workspace, guard)
