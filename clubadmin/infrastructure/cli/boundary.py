"""Render-failure containment boundaries for the console presentation layer.

A ContainmentBoundary supervises one render callable (one "subtree" of the
screen). When the render raises, the failure is classified, given a
support-traceable error id and replaced by a fallback view; the rest of the
screen keeps rendering. The boundary stays failed until retry() is called.
"""

import inspect
import logging
import secrets
import string
import sys
import time
import traceback
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence

from clubadmin.domain.events.resilience_events import RenderFailureContained
from clubadmin.domain.interfaces.navigation import Navigator
from clubadmin.domain.interfaces.user_interface import UserInterface
from clubadmin.domain.models.common import ErrorId
from clubadmin.domain.models.containment import (
    ContainmentRecord, Fallback, FallbackAction, FallbackView, Rendered,
    RenderResult, SupportReport,
)
from clubadmin.domain.models.errors import ErrorRecord
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher
from clubadmin.infrastructure.resilience.connectivity import ConnectivityMonitor
from clubadmin.infrastructure.resilience.error_classifier import classify

logger = logging.getLogger(__name__)

DEFAULT_SUPPORT_ADDRESS = "support@example.com"
ERROR_ID_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
ERROR_ID_SUFFIX_LENGTH = 9

ErrorHook = Callable[[BaseException, ContainmentRecord], None]


def new_error_id(context: str, now_ms: Optional[int] = None) -> ErrorId:
    """Builds '<context>-<epoch ms>-<9 random base36 chars>'."""
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    suffix = "".join(secrets.choice(ERROR_ID_SUFFIX_ALPHABET) for _ in range(ERROR_ID_SUFFIX_LENGTH))
    return ErrorId(f"{context}-{now_ms}-{suffix}")


class ContainmentBoundary:
    """Supervises a render callable: Clean until it fails, then Failed until retry()."""

    def __init__(
        self,
        render: Callable[[], Any],
        context: str,
        classifier: Optional[Callable[..., ErrorRecord]] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
        navigator: Optional[Navigator] = None,
        events: Optional[EventDispatcher] = None,
        support_address: str = DEFAULT_SUPPORT_ADDRESS,
        on_error: Optional[ErrorHook] = None,
    ):
        """Initializes the boundary.

        Args:
            render: Zero-argument callable (or coroutine function) drawing the subtree.
            context: Short name of the supervised area, used as error id prefix.
            classifier: Callable turning the exception into an ErrorRecord.
            connectivity: When given, offline failures get offline guidance.
            navigator: Handles reload / go back / go home requests.
            events: Dispatcher for RenderFailureContained.
            support_address: Recipient of composed support reports.
            on_error: Called once per contained failure.
        """
        self._render = render
        self.context = context
        self._classifier = classifier
        self.connectivity = connectivity
        self.navigator = navigator
        self.events = events
        self.support_address = support_address
        self.on_error = on_error

        self.view: Optional[FallbackView] = None
        self.exception: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.view is not None

    # --- Rendering ---

    def render(self) -> RenderResult:
        """Runs a synchronous render, containing any Exception it raises."""
        if self.view is not None:
            return Fallback(self.view)
        try:
            return Rendered(self._render())
        except Exception as e:
            return Fallback(self._contain(e))

    async def render_async(self) -> RenderResult:
        """Like render(), awaiting the result when the render is a coroutine function."""
        if self.view is not None:
            return Fallback(self.view)
        try:
            value = self._render()
            if inspect.isawaitable(value):
                value = await value
            return Rendered(value)
        except Exception as e:
            return Fallback(self._contain(e))

    def _classify(self, exc: BaseException) -> ErrorRecord:
        if self._classifier is not None:
            return self._classifier(exc)
        is_online = self.connectivity.is_online if self.connectivity else True
        return classify(exc, is_online=is_online)

    def _contain(self, exc: BaseException) -> FallbackView:
        error = self._classify(exc)
        record = ContainmentRecord(
            error_id=new_error_id(self.context),
            category=error.category,
            severity=error.severity,
            component_context=self.context,
            occurred_at=time.time(),
        )
        self.exception = exc
        self.view = FallbackView(record=record, error=error)

        logger.error(
            f"Render failure contained in '{self.context}' ({record.error_id}): {type(exc).__name__}: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        if self.events:
            self.events.dispatch(RenderFailureContained(
                error_id=record.error_id,
                component_context=self.context,
                category=record.category.value,
                severity=record.severity.value,
                error_message=error.message,
            ))
        if self.on_error:
            try:
                self.on_error(exc, record)
            except Exception as hook_error:
                logger.error(f"on_error hook failed for '{self.context}': {hook_error}", exc_info=True)
        return self.view

    # --- Fallback actions ---

    def retry(self) -> RenderResult:
        """Resets to Clean and renders again."""
        self._reset()
        return self.render()

    async def retry_async(self) -> RenderResult:
        self._reset()
        return await self.render_async()

    def _reset(self) -> None:
        if self.view is not None:
            logger.info(f"Retrying '{self.context}' after {self.view.record.error_id}")
        self.view = None
        self.exception = None

    def reload(self) -> None:
        self._navigate(FallbackAction.RELOAD)

    def go_back(self) -> None:
        self._navigate(FallbackAction.GO_BACK)

    def go_home(self) -> None:
        self._navigate(FallbackAction.GO_HOME)

    def _navigate(self, action: FallbackAction) -> None:
        if self.navigator is None:
            logger.warning(f"No navigator attached to '{self.context}'; ignoring {action.value}")
            return
        getattr(self.navigator, action.value)()

    def compose_support_report(self) -> SupportReport:
        """Builds the support e-mail for the contained failure.

        Raises:
            RuntimeError: If the boundary is not in the failed state.
        """
        if self.view is None:
            raise RuntimeError(f"Boundary '{self.context}' has no contained failure to report")
        record, error = self.view.record, self.view.error
        exc = self.exception
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) if exc else ""
        location = self.navigator.location() if self.navigator else ""
        body = "\n".join([
            f"Error ID: {record.error_id}",
            f"Context: {record.component_context}",
            f"Category: {record.category.value}",
            f"Error: {error.message}",
            f"Location: {location}",
            f"Timestamp: {datetime.fromtimestamp(record.occurred_at, tz=timezone.utc).isoformat()}",
            "",
            "Please describe what you were doing when this error occurred:",
            "[Your description here]",
            "",
            "Technical Details:",
            stack,
        ])
        return SupportReport(
            recipient=self.support_address,
            subject=f"Club Admin Error Report - {record.error_id}",
            body=body,
        )


class BoundaryGroup:
    """Renders sibling boundaries independently; one failing never affects another."""

    def __init__(self, boundaries: Sequence[ContainmentBoundary] = ()):
        self.boundaries: List[ContainmentBoundary] = list(boundaries)

    def add(self, boundary: ContainmentBoundary) -> ContainmentBoundary:
        self.boundaries.append(boundary)
        return boundary

    def render(self) -> List[RenderResult]:
        return [boundary.render() for boundary in self.boundaries]

    async def render_async(self) -> List[RenderResult]:
        return [await boundary.render_async() for boundary in self.boundaries]

    @property
    def failed(self) -> List[ContainmentBoundary]:
        return [boundary for boundary in self.boundaries if boundary.failed]


class ConsoleNavigator(Navigator):
    """Navigator for a one-shot CLI: tells the user which command to run next."""

    HOME_COMMAND = "clubadmin status"

    def __init__(self, display: UserInterface, argv: Optional[Sequence[str]] = None):
        self.display = display
        self.argv = list(sys.argv if argv is None else argv)

    def location(self) -> str:
        return " ".join(self.argv)

    def reload(self) -> None:
        self.display.display_info(f"Run the command again to reload: {self.location()}")

    def go_back(self) -> None:
        self.display.display_info("Return to the previous command in your shell history.")

    def go_home(self) -> None:
        self.display.display_info(f"Run '{self.HOME_COMMAND}' to return to the dashboard overview.")
