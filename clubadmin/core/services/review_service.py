"""Core service for reviewing club applications.

Expresses the admin use cases (approve, reject, bulk approve, list, stats,
export) on top of the resilient operation facade, and reports every outcome
(succeeded, queued while offline, failed) through the user interface.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from clubadmin.domain.interfaces.admin_api import AdminApi
from clubadmin.domain.interfaces.user_interface import UserInterface
from clubadmin.domain.models.bulk import BulkProgress
from clubadmin.domain.models.common import (
    AdminNotes, CacheKey, ClubId, RejectionReason, ReportFormat, ReportType,
)
from clubadmin.domain.models.errors import ErrorRecord
from clubadmin.domain.models.operations import OperationOutcome
from clubadmin.infrastructure.resilience.facade import ResilientOperationFacade

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = CacheKey("application-stats")


def applications_cache_key(status: Optional[str]) -> CacheKey:
    return CacheKey(f"applications-{status or 'all'}")


class ApplicationReviewService:
    """Orchestrates the application review use cases."""

    def __init__(self, api: AdminApi, facade: ResilientOperationFacade, ui: UserInterface):
        self.api = api
        self.facade = facade
        self.ui = ui

    # --- Feedback helpers ---

    def _attempt_failed(self, attempt: int, record: ErrorRecord) -> None:
        if record.retryable:
            self.ui.display_warning(f"Attempt {attempt} failed: {record.message}", title=record.title)

    def _report(self, outcome: OperationOutcome, action: str, success_message: str) -> OperationOutcome:
        if outcome.queued:
            self.ui.display_queued(action, self.facade.queued_count())
        elif outcome.failed:
            self.ui.display_error_record(outcome.error, context=action, can_retry=True)
        else:
            self.ui.display_success(success_message)
        return outcome

    def _invalidate_lists(self) -> None:
        for key in list(self.facade.cache.keys()):
            if key.startswith("applications-") or key == STATS_CACHE_KEY:
                self.facade.cache.invalidate(key)

    # --- Commands ---

    async def approve(self, club_id: ClubId, admin_notes: Optional[AdminNotes] = None) -> OperationOutcome:
        """Approves one application.

        Raises:
            ValueError: If club_id is empty.
        """
        if not club_id:
            raise ValueError("A club id is required")
        action = f"approve application {club_id}"
        logger.info(f"Approving application {club_id}")
        outcome = await self.facade.execute(
            lambda: self.api.approve_application(club_id, admin_notes),
            description=action,
            on_attempt_failed=self._attempt_failed,
        )
        if outcome.succeeded:
            self._invalidate_lists()
        return self._report(outcome, action, f"Application {club_id} approved.")

    async def reject(self, club_id: ClubId, reason: RejectionReason) -> OperationOutcome:
        """Rejects one application with a reason.

        Raises:
            ValueError: If club_id or reason is empty.
        """
        if not club_id:
            raise ValueError("A club id is required")
        if not reason or not reason.strip():
            raise ValueError("A rejection reason is required")
        action = f"reject application {club_id}"
        logger.info(f"Rejecting application {club_id}")
        outcome = await self.facade.execute(
            lambda: self.api.reject_application(club_id, reason),
            description=action,
            on_attempt_failed=self._attempt_failed,
        )
        if outcome.succeeded:
            self._invalidate_lists()
        return self._report(outcome, action, f"Application {club_id} rejected.")

    async def bulk_approve(self, club_ids: Sequence[ClubId], admin_notes: Optional[AdminNotes] = None) -> OperationOutcome:
        """Approves a batch of applications and summarizes per-item results."""
        operation = "bulk approval"

        def progress(update: BulkProgress) -> None:
            self.ui.display_progress(update, description=operation)

        outcome = await self.facade.execute_bulk(
            club_ids,
            lambda batch: self.api.bulk_approve(list(batch), admin_notes),
            on_progress=progress,
            description=f"{operation} of {len(club_ids)} application(s)",
            on_attempt_failed=self._attempt_failed,
        )
        if outcome.queued:
            self.ui.display_queued(operation, self.facade.queued_count())
        elif outcome.failed:
            self.ui.display_error_record(outcome.error, context=operation, can_retry=True)
        else:
            if outcome.value.successful_ids:
                self._invalidate_lists()
            self.ui.display_bulk_outcome(outcome.value, operation)
        return outcome

    async def export_report(
        self,
        report_type: ReportType,
        report_format: ReportFormat,
        output_path: Path,
    ) -> OperationOutcome:
        """Exports a report to output_path (written when the export completes)."""
        action = f"export {report_type} report"

        async def export() -> Path:
            content = await self.api.export_report(report_type, report_format)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(content, encoding="utf-8")
            logger.info(f"Wrote {report_type} report to {output_path}")
            return output_path

        outcome = await self.facade.execute(export, description=action, on_attempt_failed=self._attempt_failed)
        return self._report(outcome, action, f"Report saved to {output_path}")

    # --- Queries ---

    async def list_applications(self, status: Optional[str] = "pending") -> OperationOutcome:
        """Lists applications, serving the cached list when offline."""
        outcome = await self.facade.fetch(
            lambda: self.api.list_applications(status),
            cache_key=applications_cache_key(status),
            description=f"list {status or 'all'} applications",
        )
        if outcome.failed:
            self.ui.display_error_record(outcome.error, context="load applications", can_retry=True)
            return outcome
        if outcome.from_cache:
            self.ui.display_stale_notice(outcome.is_stale, outcome.cached_at or 0.0)
        applications: List = list(outcome.value or [])
        title = f"{status.capitalize()} Applications" if status else "Club Applications"
        self.ui.display_applications(applications, title=title)
        return outcome

    async def get_stats(self) -> OperationOutcome:
        """Loads application counts, serving the cached counts when offline."""
        outcome = await self.facade.fetch(self.api.get_stats, cache_key=STATS_CACHE_KEY, description="load statistics")
        if outcome.failed:
            self.ui.display_error_record(outcome.error, context="load statistics", can_retry=True)
            return outcome
        if outcome.from_cache:
            self.ui.display_stale_notice(outcome.is_stale, outcome.cached_at or 0.0)
        stats = outcome.value or {}
        self.ui.display_output(
            "\n".join(f"{name.capitalize()}: {stats.get(name, 0)}" for name in ("pending", "approved", "rejected", "total")),
            title="Application Statistics",
        )
        return outcome
