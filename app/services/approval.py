"""Approval engine: turns pending offline submissions into canonical readings.

Single approve/reject calls are guarded so one submission never has two
actions in flight. ``approve_all`` walks a list of ids strictly in order,
keeps going past individual failures, reports progress after every item and
refreshes the workspace once at the end.
"""

import logging
from collections.abc import Callable, Sequence
from typing import NoReturn

from app.core.config import settings
from app.core.errors import BackendError, ExplainedError, PreconditionError
from app.models.enums import ErrorKind
from app.schemas.review import ActionResult, BatchFailure, BatchProgress, BatchReport
from app.services.backend import FacilitiesBackend
from app.services.inflight import InFlightGuard
from app.services.review import ReviewWorkspace

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]
ProgressCallback = Callable[[BatchProgress], None]

ALREADY_IN_FLIGHT = "This submission is already being processed."


def log_notification(title: str, message: str) -> None:
    """Default notifier: reviewer-facing messages go to the log."""
    logger.info("%s: %s", title, message)


def summarize_batch(
    total: int,
    succeeded: list[int],
    failures: list[BatchFailure],
    preview_limit: int,
) -> BatchReport:
    """Build the consolidated approve-all report."""
    failed_ids = [f.submission_id for f in failures]
    preview = failed_ids[:preview_limit]
    remainder = len(failed_ids) - len(preview)

    if not failures:
        message = f"Approved {len(succeeded)} of {total} submissions."
    else:
        listed = ", ".join(f"#{i}" for i in preview)
        if remainder:
            listed += f" (+{remainder} more)"
        outcome = (
            f"Approved {len(succeeded)} of {total} submissions."
            if succeeded
            else f"None of the {total} submissions were approved."
        )
        message = (
            f"{outcome} "
            f"{len(failures)} failed: {listed}. "
            "Retry the failed submissions individually."
        )

    return BatchReport(
        total=total,
        succeeded=succeeded,
        failures=failures,
        failed_preview=preview,
        failed_remainder=remainder,
        message=message,
    )


class ApprovalEngine:
    """Approve and reject offline submissions for one reviewer."""

    def __init__(
        self,
        workspace: ReviewWorkspace,
        guard: InFlightGuard,
        notify: Notifier = log_notification,
        failure_preview_limit: int | None = None,
    ) -> None:
        self.workspace = workspace
        self.guard = guard
        self.notify = notify
        self.failure_preview_limit = (
            failure_preview_limit
            if failure_preview_limit is not None
            else settings.FAILURE_PREVIEW_LIMIT
        )

    @property
    def backend(self) -> FacilitiesBackend:
        """Backend client shared with the workspace."""
        return self.workspace.backend

    async def refresh(self) -> None:
        """Reload the pending list and the reading history index."""
        await self.workspace.reload_pending()
        await self.workspace.reload_history()

    async def approve_one(
        self,
        submission_id: int,
        silent: bool = False,
        skip_refresh: bool = False,
    ) -> ActionResult:
        """
        Approve a pending submission.

        Args:
            submission_id: Submission to approve
            silent: Suppress the reviewer notification on failure
            skip_refresh: Leave reloading to the caller (used by approve_all)

        Returns:
            Result carrying the new reading id, a skip marker, or the error

        """
        if not self.guard.try_acquire(submission_id):
            logger.info("Approve %s skipped: already in flight", submission_id)
            return ActionResult(submission_id=submission_id, ok=False, skipped=True)

        try:
            response = await self.backend.approve(submission_id)
        except BackendError as exc:
            logger.warning("Approve %s failed: %s", submission_id, exc.explained.text)
            if not silent:
                self.notify("Approve failed", exc.explained.text)
            return ActionResult(submission_id=submission_id, ok=False, error=exc.explained)
        finally:
            self.guard.release(submission_id)

        logger.info("Submission %s approved (reading %s)", submission_id, response.reading_id)
        if not skip_refresh:
            await self.refresh()
        return ActionResult(submission_id=submission_id, ok=True, reading_id=response.reading_id)

    async def reject_one(
        self,
        submission_id: int,
        silent: bool = False,
        skip_refresh: bool = False,
    ) -> ActionResult:
        """Reject a pending submission. No canonical reading is created."""
        if not self.guard.try_acquire(submission_id):
            logger.info("Reject %s skipped: already in flight", submission_id)
            return ActionResult(submission_id=submission_id, ok=False, skipped=True)

        try:
            await self.backend.reject(submission_id)
        except BackendError as exc:
            logger.warning("Reject %s failed: %s", submission_id, exc.explained.text)
            if not silent:
                self.notify("Reject failed", exc.explained.text)
            return ActionResult(submission_id=submission_id, ok=False, error=exc.explained)
        finally:
            self.guard.release(submission_id)

        logger.info("Submission %s rejected", submission_id)
        if not skip_refresh:
            await self.workspace.reload_pending()
        return ActionResult(submission_id=submission_id, ok=True)

    async def approve_all(
        self,
        submission_ids: Sequence[int],
        building_id: str | None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchReport:
        """
        Approve submissions one after another, in the order given.

        A failed item is recorded and the loop moves on. The workspace is
        refreshed once after the last item.

        Raises:
            PreconditionError: If no building is selected or there is nothing
                to approve. No network call is made in that case.

        """
        if not building_id:
            self._refuse("Select a building before approving all submissions.")
        ids = list(submission_ids)
        if not ids:
            self._refuse("There are no pending submissions to approve.")

        total = len(ids)
        succeeded: list[int] = []
        failures: list[BatchFailure] = []
        logger.info("Approving %d submissions for building %s", total, building_id)

        if on_progress:
            on_progress(BatchProgress(done=0, total=total))

        for done, submission_id in enumerate(ids, start=1):
            result = await self.approve_one(submission_id, silent=True, skip_refresh=True)
            if result.ok:
                succeeded.append(submission_id)
            else:
                failures.append(
                    BatchFailure(
                        submission_id=submission_id,
                        error=result.error
                        or ExplainedError(kind=ErrorKind.PRECONDITION, message=ALREADY_IN_FLIGHT),
                    )
                )
            if on_progress:
                on_progress(BatchProgress(done=done, total=total))

        await self.refresh()

        report = summarize_batch(total, succeeded, failures, self.failure_preview_limit)
        if report.fully_succeeded:
            self.notify("Approved", report.message)
            return report

        logger.warning(
            "Approve-all for building %s: %d of %d failed",
            building_id,
            len(failures),
            total,
        )
        if succeeded:
            self.notify("Partially approved", report.message)
        else:
            self.notify("Approve all failed", report.message)
        return report

    async def batch_for_building(
        self,
        building_id: str | None,
        submission_ids: Sequence[int] | None = None,
    ) -> list[int]:
        """
        Resolve the ids an approve-all run may touch for a building.

        Reloads the workspace and returns the building's pending ids, newest
        first, or the given ids when every one of them is pending in that
        building.

        Raises:
            PreconditionError: If no building is selected or any given id is
                not pending in the building.

        """
        if not building_id:
            self._refuse("Select a building before approving all submissions.")

        await self.workspace.reload()
        in_building = [s.id for s in self.workspace.filtered(building_id)]
        if submission_ids is None:
            return in_building

        allowed = set(in_building)
        foreign = [i for i in submission_ids if i not in allowed]
        if foreign:
            listed = ", ".join(f"#{i}" for i in foreign)
            self._refuse(f"Not pending in building {building_id}: {listed}.")
        return list(submission_ids)

    def _refuse(self, message: str) -> NoReturn:
        self.notify("Approve all", message)
        raise PreconditionError(message)
