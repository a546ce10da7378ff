"""Resolution of the backend route that lists canonical readings.

Deployments do not agree on the name of this route, so an ordered list of
candidates is probed and the first one answering with a success status and a
JSON array is adopted for the rest of the session.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from app.core.config import settings
from app.core.errors import BackendError
from app.models.enums import ErrorKind
from app.services.backend import FacilitiesBackend

logger = logging.getLogger(__name__)

# Failures that say nothing about whether the route exists
_INCONCLUSIVE_KINDS = {ErrorKind.AUTH, ErrorKind.PERMISSION, ErrorKind.NETWORK}


class ReadingEndpointResolver:
    """Probes reading-list candidates in order and memoizes the outcome."""

    def __init__(self, candidates: Sequence[str] | None = None) -> None:
        self.candidates: tuple[str, ...] = tuple(
            candidates if candidates is not None else settings.READING_ENDPOINT_CANDIDATES
        )
        self._adopted: str | None = None
        self._resolved = False
        self._lock = asyncio.Lock()

    @property
    def adopted(self) -> str | None:
        """The adopted route, or None if unresolved or unavailable."""
        return self._adopted

    @property
    def unavailable(self) -> bool:
        """True once probing concluded that no candidate works."""
        return self._resolved and self._adopted is None

    def reset(self) -> None:
        """Forget the outcome so the next fetch probes again."""
        self._adopted = None
        self._resolved = False

    async def fetch_readings(self, backend: FacilitiesBackend) -> list[Any]:
        """Return canonical reading rows, probing first if needed.

        Never raises for backend failures: an unusable listing yields no rows,
        so anomaly detection simply finds no history.
        """
        async with self._lock:
            if not self._resolved:
                return await self._probe(backend)

        if self._adopted is None:
            return []
        try:
            return await backend.fetch_array(self._adopted)
        except BackendError as exc:
            logger.warning(
                "Reading listing %s failed: %s", self._adopted, exc.explained.message
            )
            return []

    async def _probe(self, backend: FacilitiesBackend) -> list[Any]:
        conclusive = True
        for candidate in self.candidates:
            try:
                rows = await backend.fetch_array(candidate)
            except BackendError as exc:
                if exc.explained.kind in _INCONCLUSIVE_KINDS:
                    conclusive = False
                logger.debug("Reading route %s rejected: %s", candidate, exc.explained.message)
                continue

            self._adopted = candidate
            self._resolved = True
            logger.info("Adopted reading route %s", candidate)
            return rows

        # Only remember "no endpoint" when every candidate actually answered
        self._resolved = conclusive
        logger.warning(
            "No reading endpoint available among %s", ", ".join(self.candidates) or "(none)"
        )
        return []
