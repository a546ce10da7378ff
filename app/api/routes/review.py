"""Review console routes for offline submissions."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_engine, get_workspace
from app.core.errors import PreconditionError
from app.models.enums import SortMode
from app.schemas.review import (
    ActionResponse,
    ActionResult,
    ApproveAllRequest,
    BatchProgress,
    BatchResponse,
    BuildingOption,
    PendingReview,
)
from app.services.approval import ApprovalEngine
from app.services.review import ReviewWorkspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/review", tags=["offline-review"])


def _log_progress(progress: BatchProgress) -> None:
    logger.debug("Approve-all progress %d/%d", progress.done, progress.total)


@router.get("/buildings", response_model=list[BuildingOption])
async def list_buildings(
    workspace: ReviewWorkspace = Depends(get_workspace),
) -> list[BuildingOption]:
    """List the buildings pending submissions can be filtered by."""
    await workspace.reload_lookups()
    return workspace.building_options()


@router.get("/pending", response_model=PendingReview)
async def list_pending(
    building_id: str | None = Query(None, description="Building to show submissions for"),
    sort: SortMode = Query(SortMode.NEWEST, description="Order by submission time"),
    workspace: ReviewWorkspace = Depends(get_workspace),
) -> PendingReview:
    """Get pending submissions for a building, annotated with anomaly flags.

    The list stays empty until a building is selected.
    """
    await workspace.reload()
    return workspace.view(building_id, sort)


async def _respond(
    engine: ApprovalEngine,
    result: ActionResult,
    building_id: str | None,
    sort: SortMode,
) -> ActionResponse:
    """Reload after a successful action and attach the updated list."""
    review = None
    if result.ok:
        await engine.workspace.reload()
        review = engine.workspace.view(building_id, sort)
    return ActionResponse(**result.model_dump(), review=review)


@router.post("/submissions/{submission_id}/approve", response_model=ActionResponse)
async def approve_submission(
    submission_id: int,
    building_id: str | None = Query(None, description="Building whose list to return"),
    sort: SortMode = Query(SortMode.NEWEST, description="Order of the returned list"),
    engine: ApprovalEngine = Depends(get_engine),
) -> ActionResponse:
    """Approve one submission, creating its canonical reading.

    On success the response carries the reloaded pending list.
    """
    result = await engine.approve_one(submission_id, skip_refresh=True)
    return await _respond(engine, result, building_id, sort)


@router.post("/submissions/{submission_id}/reject", response_model=ActionResponse)
async def reject_submission(
    submission_id: int,
    building_id: str | None = Query(None, description="Building whose list to return"),
    sort: SortMode = Query(SortMode.NEWEST, description="Order of the returned list"),
    engine: ApprovalEngine = Depends(get_engine),
) -> ActionResponse:
    """Reject one submission."""
    result = await engine.reject_one(submission_id, skip_refresh=True)
    return await _respond(engine, result, building_id, sort)


@router.post("/approve-all", response_model=BatchResponse)
async def approve_all(
    body: ApproveAllRequest,
    engine: ApprovalEngine = Depends(get_engine),
) -> BatchResponse:
    """Approve a building's pending submissions one by one.

    Without explicit ids, the building's current list (newest first) is used.
    Explicit ids must all be pending in the building.
    """
    try:
        ids = await engine.batch_for_building(body.building_id, body.ids)
        report = await engine.approve_all(ids, body.building_id, on_progress=_log_progress)
    except PreconditionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.explained.text,
        ) from exc

    # approve_all already reloaded pending and history; lookups are unchanged
    return BatchResponse(
        **report.model_dump(exclude={"fully_succeeded"}),
        review=engine.workspace.view(body.building_id),
    )
