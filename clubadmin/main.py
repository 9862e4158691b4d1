"""Main entry point for the clubadmin application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Annotated, Any, Coroutine, Dict, List, Optional, Tuple

import typer

logger = logging.getLogger(__name__)

# --- Core Layer ---
from clubadmin.core.command_handler import CommandHandler
from clubadmin.core.services.review_service import ApplicationReviewService

# --- Domain Layer ---
from clubadmin.domain.models.connectivity import ConnectivityState
from clubadmin.domain.models.operations import OperationOutcome

# --- Infrastructure Layer ---
# Config
from clubadmin.infrastructure.config.settings import (
    get_api_base_url, get_api_token, get_config, get_support_address, load_configuration,
)
# API
from clubadmin.infrastructure.api.admin_client import AdminApiClient
# UI
from clubadmin.infrastructure.cli.boundary import ConsoleNavigator
from clubadmin.infrastructure.cli.display import ConsoleDisplay
# Resilience
from clubadmin.infrastructure.resilience.connectivity_probe import ConnectivityProbe
from clubadmin.infrastructure.resilience.context import ResilienceContext
# Monitoring
from clubadmin.infrastructure.monitoring.logger_setup import setup_logging

# --- Dependency Injection Container (Manual) ---

def create_dependencies(offline: bool = False) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Args:
        offline: Start with the connectivity monitor in the offline state.
    """
    dependencies: Dict[str, Any] = {}
    try:
        # 1. Load Configuration First
        load_configuration()
        log_level_name = str(get_config('logging.level', 'WARNING')).upper()
        log_level = getattr(logging, log_level_name, logging.WARNING)
        setup_logging(
            log_level=log_level,
            log_file=get_config('logging.file'),
            log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            use_rich=bool(get_config('logging.rich', False)),
        )
        logger.info("Configuration and logging initialized.")

        # 2. Infrastructure Adapters
        dependencies['ui'] = ConsoleDisplay()
        dependencies['api'] = AdminApiClient(
            base_url=get_api_base_url(),
            token=get_api_token(),
            timeout=float(get_config('api.timeout')),
        )
        dependencies['navigator'] = ConsoleNavigator(dependencies['ui'])

        # 3. Resilience Layer (one context per process)
        initial = ConnectivityState.offline() if offline else ConnectivityState.online()
        dependencies['resilience'] = ResilienceContext.create(initial=initial)
        dependencies['probe'] = ConnectivityProbe(
            dependencies['api'],
            dependencies['resilience'].connectivity,
            interval=float(get_config('probe.interval')),
            poor_latency=float(get_config('probe.poor_latency')),
        )

        # 4. Core Services
        dependencies['review_service'] = ApplicationReviewService(
            api=dependencies['api'],
            facade=dependencies['resilience'].facade,
            ui=dependencies['ui'],
        )

        # 5. Command Handler
        dependencies['command_handler'] = CommandHandler(
            review_service=dependencies['review_service'],
            resilience=dependencies['resilience'],
            ui=dependencies['ui'],
            navigator=dependencies['navigator'],
            probe=dependencies['probe'],
            support_address=get_support_address(),
        )
        logger.info("All dependencies initialized successfully.")
        return dependencies

    except Exception as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        if dependencies.get('ui'):
            dependencies['ui'].display_error(f"Application Initialization Failed: {e}")
        else:
            print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
        raise typer.Exit(code=1)

# --- Typer App Definition ---
app = typer.Typer(
    name="clubadmin",
    help="clubadmin: review club applications with offline queueing, retries and cached views.",
    add_completion=False,
)

# --- Helper for Running Async Commands ---
def run_async(ctx: typer.Context, coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs an async command from a sync Typer command; unexpected errors exit with 1."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        ctx.obj['ui'].display_error(f"Command execution failed: {e}")
        raise typer.Exit(code=1)


EXIT_FAILED = 1
EXIT_NOT_SENT = 2 # queued operations were lost when the process exited

def _execute(ctx: typer.Context, command: Coroutine[Any, Any, Optional[OperationOutcome]]) -> None:
    """Probes connectivity, runs the command, settles the offline queue and sets the exit code.

    Exit codes: 1 when the command failed or was contained, 2 when queued
    operations could not be sent before exit, 0 otherwise.
    """
    handler: CommandHandler = ctx.obj['command_handler']

    async def flow() -> Tuple[Optional[OperationOutcome], int]:
        if not ctx.obj['offline']:
            await handler.check_connectivity()
        try:
            outcome = await command
        finally:
            unsent = await handler.finish(ctx.obj['wait_online'])
        return outcome, unsent

    outcome, unsent = run_async(ctx, flow())
    if outcome is None or outcome.failed:
        raise typer.Exit(code=EXIT_FAILED)
    if unsent:
        raise typer.Exit(code=EXIT_NOT_SENT)

# --- CLI Commands ---

NotesOption = Annotated[
    Optional[str],
    typer.Option("--notes", "-n", help="Admin notes stored with the decision."),
]

@app.command()
def status(ctx: typer.Context):
    """Show connectivity, application statistics and queued operations."""
    handler: CommandHandler = ctx.obj['command_handler']
    _execute(ctx, handler.handle_status())

@app.command()
def approve(
    ctx: typer.Context,
    club_id: Annotated[str, typer.Argument(help="Id of the club application to approve.")],
    notes: NotesOption = None,
):
    """Approve a club application."""
    handler: CommandHandler = ctx.obj['command_handler']
    _execute(ctx, handler.handle_approve(club_id, notes))

@app.command()
def reject(
    ctx: typer.Context,
    club_id: Annotated[str, typer.Argument(help="Id of the club application to reject.")],
    reason: Annotated[str, typer.Option("--reason", "-r", help="Reason shown to the applicant.")],
):
    """Reject a club application with a reason."""
    handler: CommandHandler = ctx.obj['command_handler']
    _execute(ctx, handler.handle_reject(club_id, reason))

@app.command(name="bulk-approve")
def bulk_approve(
    ctx: typer.Context,
    club_ids: Annotated[List[str], typer.Argument(help="Ids of the club applications to approve.")],
    notes: NotesOption = None,
):
    """Approve several club applications in one call."""
    handler: CommandHandler = ctx.obj['command_handler']
    _execute(ctx, handler.handle_bulk_approve(club_ids, notes))

@app.command()
def applications(
    ctx: typer.Context,
    status_filter: Annotated[
        str,
        typer.Option("--status", "-s", help="Status filter ('pending', 'approved', 'rejected' or 'all')."),
    ] = "pending",
):
    """List club applications (served from the offline cache when offline)."""
    handler: CommandHandler = ctx.obj['command_handler']
    _execute(ctx, handler.handle_list(None if status_filter == "all" else status_filter))

@app.command(name="export-report")
def export_report(
    ctx: typer.Context,
    report_type: Annotated[
        str,
        typer.Argument(help="Report to export: 'applications', 'statistics' or 'admin-activity'."),
    ],
    output: Annotated[Path, typer.Option("--output", "-o", dir_okay=False, help="File to write the report to.")],
    report_format: Annotated[str, typer.Option("--format", "-f", help="'csv' or 'json'.")] = "csv",
):
    """Export a report to a file."""
    handler: CommandHandler = ctx.obj['command_handler']
    _execute(ctx, handler.handle_export(report_type, report_format, output))

@app.command(name="clear-cache")
def clear_cache_command(
    ctx: typer.Context,
    include_queue: Annotated[bool, typer.Option("--queue", help="Also discard queued operations.")] = False,
):
    """Clear the offline snapshot cache."""
    handler: CommandHandler = ctx.obj['command_handler']
    handler.handle_clear_cache(include_queue)

@app.callback()
def main_callback(
    ctx: typer.Context,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Work offline: queue actions and read from the cache."),
    ] = False,
    wait_online: Annotated[
        Optional[float],
        typer.Option("--wait-online", help="Seconds to wait for connectivity to replay queued actions before exiting."),
    ] = None,
):
    """Club application administration with offline support."""
    ctx.obj = create_dependencies(offline=offline)
    ctx.obj['offline'] = offline
    ctx.obj['wait_online'] = wait_online
    ctx.call_on_close(ctx.obj['resilience'].close)

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
