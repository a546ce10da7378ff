"""Review workspace: the pending list plus the indexes used to annotate it."""

import asyncio
import logging

from app.core.errors import BackendError
from app.models.enums import SortMode
from app.schemas.review import BuildingOption, PendingReview, ReviewItem
from app.schemas.submission import BuildingRow, Submission
from app.services.anomaly import compute_percent_change, is_anomalous
from app.services.backend import FacilitiesBackend
from app.services.endpoint_resolver import ReadingEndpointResolver
from app.services.reading_history import ReadingHistoryIndex
from app.services.topology import build_meter_building_index, building_labels, building_options

logger = logging.getLogger(__name__)


def _submitted_sort_key(submission: Submission) -> float:
    """Submission time as a number; missing timestamps sort as the oldest."""
    if submission.submitted_at is None:
        return 0.0
    return submission.submitted_at.timestamp()


def sort_submissions(submissions: list[Submission], sort: SortMode) -> list[Submission]:
    """Order submissions by submission time."""
    return sorted(
        submissions,
        key=_submitted_sort_key,
        reverse=sort == SortMode.NEWEST,
    )


class ReviewWorkspace:
    """Everything the reviewer sees, rebuilt wholesale on every reload."""

    def __init__(
        self,
        backend: FacilitiesBackend,
        resolver: ReadingEndpointResolver,
    ) -> None:
        self.backend = backend
        self.resolver = resolver
        self.submissions: list[Submission] = []
        self.load_error: str | None = None
        self.buildings: list[BuildingRow] = []
        self.meter_to_building: dict[str, str] = {}
        self.history = ReadingHistoryIndex()

    async def reload(self) -> None:
        """Reload the pending list, the topology lookups and the reading history."""
        await asyncio.gather(self.reload_pending(), self.reload_lookups())
        await self.reload_history()

    async def reload_pending(self) -> None:
        """Replace the pending list; a failure empties it and records the error."""
        try:
            self.submissions = await self.backend.list_pending()
            self.load_error = None
        except BackendError as exc:
            self.submissions = []
            self.load_error = exc.explained.text
            logger.warning("Could not load pending submissions: %s", exc.explained.text)

    async def reload_lookups(self) -> None:
        """Rebuild the building list and meter to building mapping.

        Failures are logged and otherwise ignored; the mapping may then be
        incomplete and affected submissions show an unknown building.
        """
        # Wait for all three so no request outlives this call
        results = await asyncio.gather(
            self.backend.list_buildings(),
            self.backend.list_stalls(),
            self.backend.list_meters(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BackendError):
                logger.warning("Could not load building topology: %s", result.explained.text)
                return
            if isinstance(result, BaseException):
                raise result
        buildings, stalls, meters = results
        self.buildings = buildings
        self.meter_to_building = build_meter_building_index(stalls, meters)

    async def reload_history(self) -> None:
        """Rebuild the reading history index from the adopted reading route."""
        rows = await self.resolver.fetch_readings(self.backend)
        self.history = ReadingHistoryIndex.from_rows(rows)

    def building_options(self) -> list[BuildingOption]:
        """Buildings available as filter choices."""
        return building_options(self.buildings)

    def filtered(self, building_id: str | None, sort: SortMode = SortMode.NEWEST) -> list[Submission]:
        """Submissions for one building, sorted; empty until a building is chosen."""
        if not building_id:
            return []
        in_building = [
            s for s in self.submissions if self.meter_to_building.get(s.meter_id) == building_id
        ]
        return sort_submissions(in_building, sort)

    def annotate(
        self,
        submission: Submission,
        labels: dict[str, str] | None = None,
    ) -> ReviewItem:
        """Attach building, previous reading and anomaly flag to a submission."""
        if labels is None:
            labels = building_labels(self.buildings)
        building_id = self.meter_to_building.get(submission.meter_id)
        previous = self.history.previous_reading(submission.meter_id, submission.reading_date)
        delta = compute_percent_change(
            submission.reading_value,
            previous.value if previous else None,
        )
        return ReviewItem(
            submission=submission,
            building_id=building_id,
            building_label=labels.get(building_id, building_id) if building_id else None,
            previous=previous,
            delta_percent=delta,
            anomalous=is_anomalous(delta),
            has_image=submission.has_image,
        )

    def view(self, building_id: str | None, sort: SortMode = SortMode.NEWEST) -> PendingReview:
        """The pending list as the reviewer sees it."""
        labels = building_labels(self.buildings)
        return PendingReview(
            building_id=building_id,
            sort=sort,
            items=[self.annotate(s, labels) for s in self.filtered(building_id, sort)],
            total_pending=len(self.submissions),
            load_error=self.load_error,
            reading_endpoint=self.resolver.adopted,
        )
