"""Interface for the admin data API (remote command/query executor).

Defines the contract for approving, rejecting and listing club applications
and for exporting reports. Implementations raise ApiRequestError for HTTP
failures, ConnectionError for transport failures and TimeoutError for
timeouts.
"""

import abc
from typing import Any, Dict, List, Optional, Sequence

from ..models.common import (
    AdminNotes, ApplicationStats, ClubApplication, ClubId, RejectionReason,
    ReportFormat, ReportType,
)


class AdminApi(abc.ABC):
    """Abstract Base Class for admin API interactions."""

    @abc.abstractmethod
    async def approve_application(self, club_id: ClubId, admin_notes: Optional[AdminNotes] = None) -> Dict[str, Any]:
        """Approves a single club application."""
        pass

    @abc.abstractmethod
    async def reject_application(self, club_id: ClubId, reason: RejectionReason) -> Dict[str, Any]:
        """Rejects a single club application with a reason."""
        pass

    @abc.abstractmethod
    async def bulk_approve(self, club_ids: Sequence[ClubId], admin_notes: Optional[AdminNotes] = None) -> Dict[str, Any]:
        """Approves a batch of applications in one call.

        Returns:
            A mapping shaped like {"successful": [...], "failed": [{"id", "error"}]}.
        """
        pass

    @abc.abstractmethod
    async def list_applications(self, status: Optional[str] = None) -> List[ClubApplication]:
        """Lists club applications, optionally filtered by status."""
        pass

    @abc.abstractmethod
    async def get_stats(self) -> ApplicationStats:
        """Returns application counts per status."""
        pass

    @abc.abstractmethod
    async def export_report(self, report_type: ReportType, report_format: ReportFormat) -> str:
        """Exports a report and returns its content."""
        pass

    @abc.abstractmethod
    async def ping(self) -> float:
        """Checks the API health endpoint.

        Returns:
            The round-trip latency in seconds.
        """
        pass
