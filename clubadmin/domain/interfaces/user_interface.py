"""Interface for interacting with the user (output).

Defines the contract for displaying information, errors, warnings and the
resilience records (error cards, connectivity badges, queued operations,
bulk outcomes, fallback views), allowing different UI implementations
(e.g., console, GUI).
"""

import abc
from typing import Any, Optional, Sequence

from clubadmin.domain.models.bulk import BulkOutcome, BulkProgress
from clubadmin.domain.models.common import ClubApplication
from clubadmin.domain.models.connectivity import ConnectivityState
from clubadmin.domain.models.containment import FallbackView
from clubadmin.domain.models.errors import ErrorRecord
from clubadmin.domain.models.operations import DrainReport

class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The text to display.
            **kwargs: Additional arguments for formatting (e.g., title, style).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_error_record(self, record: ErrorRecord, context: Optional[str] = None, can_retry: bool = False) -> None:
        """Displays a classified failure as an error card.

        Args:
            record: The classified failure.
            context: What the user was trying to do (e.g., 'approve application').
            can_retry: Whether a retry affordance should be shown.
        """
        pass

    @abc.abstractmethod
    def display_connectivity(self, state: ConnectivityState, queued: int = 0) -> None:
        """Displays the connectivity badge and the number of queued operations."""
        pass

    @abc.abstractmethod
    def display_bulk_outcome(self, outcome: BulkOutcome, operation: str) -> None:
        """Displays the success / partial success / failure summary of a bulk action."""
        pass

    @abc.abstractmethod
    def display_fallback(self, view: FallbackView) -> None:
        """Displays the fallback card of a failed containment boundary."""
        pass

    def display_progress(self, progress: BulkProgress, description: str = "") -> None:
        """Displays bulk progress (optional)."""
        pass

    def display_stale_notice(self, is_stale: bool, cached_at: float) -> None:
        """Tells the user the data shown comes from the offline cache (optional)."""
        pass

    def display_applications(self, applications: Sequence[ClubApplication], **kwargs: Any) -> None:
        """Displays a list of club applications (optional)."""
        pass

    def display_success(self, message: str, **kwargs: Any) -> None:
        """Displays a success message (optional)."""
        pass

    def display_queued(self, operation_name: str, queue_size: int) -> None:
        """Tells the user an action was queued while offline (optional)."""
        pass

    def display_drain_report(self, report: DrainReport) -> None:
        """Summarizes a replay of queued operations (optional)."""
        pass
