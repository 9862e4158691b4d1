"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the work
to the ApplicationReviewService. Every command renders inside a containment
boundary, so an unexpected failure becomes a fallback card with an error id
instead of a traceback.
"""

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Sequence

from clubadmin.core.services.review_service import ApplicationReviewService
from clubadmin.domain.interfaces.navigation import Navigator
from clubadmin.domain.interfaces.user_interface import UserInterface
from clubadmin.domain.models.common import (
    AdminNotes, ClubId, RejectionReason, ReportFormat, ReportType,
)
from clubadmin.domain.models.containment import Fallback, Rendered
from clubadmin.domain.models.operations import OperationOutcome
from clubadmin.infrastructure.cli.boundary import BoundaryGroup, ContainmentBoundary
from clubadmin.infrastructure.resilience.connectivity_probe import ConnectivityProbe
from clubadmin.infrastructure.resilience.context import ResilienceContext

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the review service."""

    def __init__(
        self,
        review_service: ApplicationReviewService,
        resilience: ResilienceContext,
        ui: UserInterface,
        navigator: Optional[Navigator] = None,
        probe: Optional[ConnectivityProbe] = None,
        support_address: str = "support@example.com",
    ):
        self.review_service = review_service
        self.resilience = resilience
        self.ui = ui
        self.navigator = navigator
        self.probe = probe
        self.support_address = support_address

    def _boundary(self, context: str, render: Callable[[], Any]) -> ContainmentBoundary:
        return ContainmentBoundary(
            render,
            context,
            classifier=self.resilience.classifier,
            connectivity=self.resilience.connectivity,
            navigator=self.navigator,
            events=self.resilience.events,
            support_address=self.support_address,
        )

    async def _run(self, context: str, render: Callable[[], Awaitable[OperationOutcome]]) -> Optional[OperationOutcome]:
        """Renders one command inside a boundary; None means the fallback was shown."""
        boundary = self._boundary(context, render)
        result = await boundary.render_async()
        if isinstance(result, Fallback):
            self._show_fallback(boundary)
            return None
        return result.value

    def _show_fallback(self, boundary: ContainmentBoundary) -> None:
        self.ui.display_fallback(boundary.view)
        report = boundary.compose_support_report()
        self.ui.display_info(f"To report this issue, open: {report.mailto()}", title="Report Issue")

    # --- Connectivity ---

    async def check_connectivity(self) -> None:
        """Probes the API once so the monitor reflects reality before a command runs."""
        if self.probe is not None:
            await self.probe.check()

    async def finish(self, wait_online: Optional[float] = None) -> int:
        """Settles queued operations before the process exits.

        With wait_online, the API is probed until it answers (or the timeout
        passes) and the queue is replayed. Otherwise the user is told that
        queued operations will not survive the process.

        Returns:
            Number of queued operations left unsent, which are lost at exit.
        """
        queue = self.resilience.queue
        if queue.count() == 0:
            return 0
        if wait_online is None or self.probe is None:
            self.ui.display_warning(
                f"{queue.count()} queued operation(s) will be discarded when this command exits. "
                "Use --wait-online SECONDS to replay them once the connection is back.",
                title="Offline",
            )
            return queue.count()

        self.ui.display_info(f"Waiting up to {wait_online:.0f}s for the connection to come back...")
        if not await self.probe.wait_until_online(wait_online):
            self.ui.display_warning(f"Still offline; {queue.count()} operation(s) were not sent.", title="Offline")
            return queue.count()
        self.ui.display_info(f"Back online: executing {queue.count()} queued operation(s)...", title="Back Online")
        if queue.drain_task is not None:
            report = await queue.drain_task
        else:
            report = await queue.drain()
        for operation_id, record in report.failed:
            self.ui.display_error_record(record, context=f"replay queued operation {operation_id[:8]}")
        self.ui.display_drain_report(report)
        return queue.count()

    # --- Commands ---

    async def handle_status(self) -> Optional[OperationOutcome]:
        """Shows connectivity, statistics and the offline queue as independent sections."""
        stats: dict = {}

        def connectivity() -> None:
            self.ui.display_connectivity(self.resilience.connectivity.state, self.resilience.queue.count())

        async def statistics() -> OperationOutcome:
            stats["outcome"] = await self.review_service.get_stats()
            return stats["outcome"]

        def pending_queue() -> None:
            for operation in self.resilience.queue.pending():
                self.ui.display_info(f"{operation.id[:8]}  {operation.description}", title="Queued")

        group = BoundaryGroup([
            self._boundary("connectivity", connectivity),
            self._boundary("statistics", statistics),
            self._boundary("offline-queue", pending_queue),
        ])
        results = await group.render_async()
        for boundary, result in zip(group.boundaries, results):
            if isinstance(result, Fallback):
                self._show_fallback(boundary)
        if not isinstance(results[1], Rendered):
            return None
        return stats.get("outcome")

    async def handle_approve(self, club_id: str, admin_notes: Optional[str] = None) -> Optional[OperationOutcome]:
        logger.info(f"Handling 'approve' command for: {club_id}")
        notes = AdminNotes(admin_notes) if admin_notes else None
        return await self._run("club-approval", lambda: self.review_service.approve(ClubId(club_id), notes))

    async def handle_reject(self, club_id: str, reason: str) -> Optional[OperationOutcome]:
        logger.info(f"Handling 'reject' command for: {club_id}")
        return await self._run(
            "club-approval", lambda: self.review_service.reject(ClubId(club_id), RejectionReason(reason))
        )

    async def handle_bulk_approve(self, club_ids: Sequence[str], admin_notes: Optional[str] = None) -> Optional[OperationOutcome]:
        logger.info(f"Handling 'bulk-approve' command for {len(club_ids)} id(s)")
        notes = AdminNotes(admin_notes) if admin_notes else None
        ids = [ClubId(club_id) for club_id in club_ids]
        return await self._run("bulk-approval", lambda: self.review_service.bulk_approve(ids, notes))

    async def handle_list(self, status: Optional[str] = "pending") -> Optional[OperationOutcome]:
        return await self._run("application-list", lambda: self.review_service.list_applications(status))

    async def handle_export(self, report_type: str, report_format: str, output: Path) -> Optional[OperationOutcome]:
        logger.info(f"Handling 'export-report' command: {report_type} as {report_format} -> {output}")
        return await self._run(
            "report-export",
            lambda: self.review_service.export_report(ReportType(report_type), ReportFormat(report_format), output),
        )

    def handle_clear_cache(self, include_queue: bool = False) -> None:
        """Clears cached snapshots (and optionally the pending offline queue)."""
        logger.info(f"Handling 'clear-cache' command (include_queue={include_queue})")
        self.resilience.cache.clear()
        message = "Offline cache cleared."
        if include_queue:
            discarded = self.resilience.queue.clear()
            message += f" {discarded} queued operation(s) discarded."
        self.ui.display_info(message)
