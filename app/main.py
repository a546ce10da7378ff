"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import health, review
from app.core.config import settings
from app.services.backend import create_http_client
from app.services.endpoint_resolver import ReadingEndpointResolver
from app.services.inflight import InFlightGuard


def configure_logging() -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    # Startup: shared backend client and process-wide review state
    configure_logging()
    app.state.http_client = create_http_client()
    app.state.inflight_guard = InFlightGuard()
    app.state.reading_resolver = ReadingEndpointResolver()
    yield
    # Shutdown
    await app.state.http_client.aclose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Review and reconciliation of offline meter reading submissions",
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(review.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
