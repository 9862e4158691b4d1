import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from rich.align import Align
from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from clubadmin.domain.interfaces.user_interface import UserInterface
from clubadmin.domain.models.bulk import BulkOutcome, BulkProgress
from clubadmin.domain.models.common import ClubApplication
from clubadmin.domain.models.connectivity import ConnectionQuality, ConnectivityState
from clubadmin.domain.models.containment import FallbackAction, FallbackView
from clubadmin.domain.models.errors import ErrorRecord, Severity
from clubadmin.domain.models.operations import DrainReport

logger = logging.getLogger(__name__)

SEVERITY_STYLES = {
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
}

QUALITY_BADGES = {
    ConnectionQuality.GOOD: ("Online", "bold green"),
    ConnectionQuality.POOR: ("Poor Connection", "bold yellow"),
    ConnectionQuality.OFFLINE: ("Offline", "bold red"),
}

ACTION_LABELS = {
    FallbackAction.RETRY: "Try Again",
    FallbackAction.RELOAD: "Reload",
    FallbackAction.GO_BACK: "Go Back",
    FallbackAction.GO_HOME: "Dashboard",
    FallbackAction.REPORT: "Report Issue",
}


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays output text inside a panel.

        Args:
            output: The text to display.
            **kwargs: Additional arguments including:
                - title: The panel title (default: "Club Admin")
                - style: Border style override
        """
        title = kwargs.get("title", "Club Admin")
        style = kwargs.get("style", "cyan")
        panel = Panel(
            Text(str(output)),
            title=f"[bold white]{title}[/bold white]",
            title_align="left",
            border_style=style,
            box=ROUNDED,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title=f"[bold red]{kwargs.get('title', 'Error')}[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message."""
        panel = Panel(
            Text(info_message, style="white"),
            title=f"[bold blue]{kwargs.get('title', 'Info')}[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message."""
        logger.debug(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title=f"[bold yellow]{kwargs.get('title', 'Warning')}[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_success(self, message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(message, style="white"),
            title=f"[bold green]{kwargs.get('title', 'Success')}[/bold green]",
            border_style="green",
            box=ROUNDED,
            padding=(0, 1),
        )
        self.console.print(panel)

    # --- Resilience records ---

    def display_error_record(self, record: ErrorRecord, context: Optional[str] = None, can_retry: bool = False) -> None:
        """Displays a classified failure as an error card with recovery suggestions."""
        style = SEVERITY_STYLES.get(record.severity, "red")
        body = Text()
        if context:
            body.append(f"While trying to {context}:\n", style="dim")
        body.append(record.message, style="white")
        if record.suggestions:
            body.append("\n\nSuggestions:\n", style="bold")
            for suggestion in record.suggestions:
                body.append(f"  • {suggestion}\n")
        if can_retry and record.retryable:
            body.append("\nRun the command again to retry.", style="italic")
        if record.support_id:
            body.append(f"\nSupport ID: {record.support_id}", style="dim")

        panel = Panel(
            body,
            title=f"[bold {style}]{record.title}[/bold {style}]",
            subtitle=f"[dim]{record.category.value} · {record.severity.value}[/dim]",
            border_style=style,
            box=HEAVY,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_connectivity(self, state: ConnectivityState, queued: int = 0) -> None:
        """Displays the connectivity badge and pending queue size."""
        label, style = QUALITY_BADGES[state.quality]
        badge = Text(f"● {label}", style=style)
        if queued:
            badge.append(f"  ({_plural(queued, 'queued operation')})", style="dim")
        self.console.print(badge)
        if state.quality is ConnectionQuality.POOR:
            self.console.print(Text("Slow connection detected. Some features may load slowly.", style="yellow"))

    def display_queued(self, operation_name: str, queue_size: int) -> None:
        self.display_warning(
            f"Cannot perform {operation_name} while offline. "
            f"It will be queued for when you're back online ({_plural(queue_size, 'operation')} pending).",
            title="Offline",
        )

    def display_drain_report(self, report: DrainReport) -> None:
        """Summarizes a replay of queued operations."""
        succeeded, failed = len(report.succeeded), len(report.failed)
        if not succeeded and not failed:
            return
        if not failed:
            self.display_success(f"All {_plural(succeeded, 'queued operation')} completed successfully.")
        else:
            self.display_warning(f"{succeeded} operations succeeded, {failed} failed.", title="Partial Success")
        if report.remaining:
            self.display_info(f"{_plural(report.remaining, 'operation')} still queued.")

    def display_bulk_outcome(self, outcome: BulkOutcome, operation: str) -> None:
        """Displays the success / partial success / failure summary of a bulk action."""
        successful, failed = len(outcome.successful_ids), len(outcome.failed)
        if outcome.all_succeeded:
            self.display_success(f"Successfully completed {operation} for {_plural(successful, 'item')}.")
            return
        if outcome.all_failed:
            title, style, summary = "Operation Failed", "red", f"{operation} failed for all {failed} items."
        else:
            title, style, summary = (
                "Partial Success", "yellow", f"{operation} completed for {successful} items. {failed} failed."
            )

        table = Table(box=SIMPLE, show_header=True, header_style="bold")
        table.add_column("Id", style="cyan")
        table.add_column("Error", style="white")
        for failure in outcome.failed:
            table.add_row(failure.id, failure.error)

        self.console.print(Panel(
            Group(Text(summary), table),
            title=f"[bold {style}]{title}[/bold {style}]",
            border_style=style,
            box=HEAVY,
            padding=(0, 1),
        ))

    def display_fallback(self, view: FallbackView) -> None:
        """Displays the fallback card of a failed containment boundary."""
        record, error = view.record, view.error
        body = Text()
        body.append("Something went wrong while loading this section.\n\n", style="bold")
        body.append(f"{error.message}\n", style="white")
        if error.suggestions:
            body.append("\n")
            for suggestion in error.suggestions:
                body.append(f"  • {suggestion}\n")
        body.append(f"\nError ID: {record.error_id}\n", style="dim")
        body.append("Actions: " + " | ".join(ACTION_LABELS[a] for a in view.actions), style="cyan")

        self.console.print(Panel(
            body,
            title=f"[bold red]{error.title} in {record.component_context}[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1),
        ))

    def display_progress(self, progress: BulkProgress, description: str = "") -> None:
        label = f"{description}: " if description else ""
        self.console.print(Text(f"{label}{progress.processed}/{progress.total} processed", style="dim"))

    def display_stale_notice(self, is_stale: bool, cached_at: float) -> None:
        when = datetime.fromtimestamp(cached_at / 1000).strftime("%Y-%m-%d %H:%M:%S")
        if is_stale:
            self.console.print(Text(f"Showing cached data from {when}. It may be out of date.", style="yellow"))
        else:
            self.console.print(Text(f"Showing cached data from {when}.", style="dim"))

    def display_applications(self, applications: Sequence[ClubApplication], **kwargs: Any) -> None:
        """Displays club applications as a table."""
        title = kwargs.get("title", "Club Applications")
        if not applications:
            self.display_info("No applications found.", title=title)
            return
        table = Table(title=title, box=ROUNDED, border_style="cyan", header_style="bold cyan")
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Club")
        table.add_column("Sport")
        table.add_column("Status")
        table.add_column("Submitted", style="dim")
        for application in applications:
            table.add_row(
                str(application.get("id", "")),
                str(application.get("name", "")),
                str(application.get("sport_type", "")),
                str(application.get("status", "")),
                str(application.get("created_at", "")),
            )
        self.console.print(Align.left(table))
