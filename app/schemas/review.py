"""Review console schemas: annotated pending list, action results and batch reports."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, computed_field

from app.core.errors import ExplainedError
from app.models.enums import SortMode
from app.schemas.submission import Submission


class BuildingOption(BaseModel):
    """A building the reviewer can filter by."""

    building_id: str
    label: str


class PreviousReading(BaseModel):
    """The prior canonical reading a submission is compared against."""

    meter_id: str
    value: Decimal
    reading_date: date


class ReviewItem(BaseModel):
    """A pending submission with the context a reviewer needs."""

    submission: Submission
    building_id: str | None
    building_label: str | None
    previous: PreviousReading | None
    delta_percent: Decimal | None  # None when no usable prior reading exists
    anomalous: bool
    has_image: bool


class PendingReview(BaseModel):
    """The pending list as currently filtered and sorted."""

    building_id: str | None
    sort: SortMode
    items: list[ReviewItem]
    total_pending: int  # Across all buildings, before filtering
    load_error: str | None = None
    reading_endpoint: str | None = None  # Adopted reading-history route, if any


class ActionResult(BaseModel):
    """Outcome of a single approve or reject call."""

    submission_id: int
    ok: bool
    skipped: bool = False
    reading_id: str | None = None
    error: ExplainedError | None = None


class ActionResponse(ActionResult):
    """Action outcome plus the pending list reloaded after a successful call."""

    review: PendingReview | None = None  # None when nothing changed


class BatchProgress(BaseModel):
    """Immutable progress snapshot published after each batch item."""

    model_config = ConfigDict(frozen=True)

    done: int
    total: int


class BatchFailure(BaseModel):
    """A batch item that did not get approved."""

    submission_id: int
    error: ExplainedError


class BatchReport(BaseModel):
    """Consolidated outcome of an approve-all run."""

    total: int
    succeeded: list[int]
    failures: list[BatchFailure]
    failed_preview: list[int]  # First few failing ids, for the summary message
    failed_remainder: int  # Failing ids not listed in the preview
    message: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def fully_succeeded(self) -> bool:
        """True when every item was approved."""
        return not self.failures

    @property
    def failed_ids(self) -> list[int]:
        """Ids of every failed item, in processing order."""
        return [f.submission_id for f in self.failures]


class BatchResponse(BatchReport):
    """Approve-all report plus the building's pending list after the run."""

    review: PendingReview


class ApproveAllRequest(BaseModel):
    """Request body for approving a building's pending submissions."""

    building_id: str | None = None
    ids: list[int] | None = None  # Defaults to the building's current view
