import asyncio
import re
import pytest
from unittest.mock import MagicMock
from urllib.parse import unquote

from clubadmin.domain.events.resilience_events import RenderFailureContained
from clubadmin.domain.interfaces.navigation import Navigator
from clubadmin.domain.interfaces.user_interface import UserInterface
from clubadmin.domain.models.containment import Fallback, Rendered
from clubadmin.domain.models.errors import ErrorCategory, Severity
from clubadmin.infrastructure.cli.boundary import (
    BoundaryGroup, ConsoleNavigator, ContainmentBoundary, new_error_id,
)
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher
from clubadmin.infrastructure.resilience.connectivity import ConnectivityMonitor
from clubadmin.infrastructure.resilience.error_classifier import OFFLINE_SUGGESTIONS


def failing(message="render exploded", exc_type=RuntimeError):
    return MagicMock(side_effect=exc_type(message))

def test_clean_render_returns_value():
    boundary = ContainmentBoundary(lambda: "table", "club-approval")
    assert boundary.render() == Rendered("table")
    assert not boundary.failed

def test_failure_is_contained_with_fallback():
    events = EventDispatcher()
    events.keep_history = True
    boundary = ContainmentBoundary(failing("500 server exploded"), "club-approval", events=events)

    result = boundary.render()

    assert isinstance(result, Fallback)
    record = result.view.record
    assert record.category is ErrorCategory.SERVER
    assert record.severity is Severity.MEDIUM
    assert record.component_context == "club-approval"
    assert re.fullmatch(r"club-approval-\d{13}-[a-z0-9]{9}", record.error_id)
    assert isinstance(events.history[-1], RenderFailureContained)
    assert events.history[-1].error_id == record.error_id

def test_failed_boundary_does_not_rerender_until_retry():
    render = MagicMock(side_effect=[RuntimeError("boom"), "recovered"])
    boundary = ContainmentBoundary(render, "club-approval")

    first = boundary.render()
    second = boundary.render()

    assert second == first
    assert render.call_count == 1

    assert boundary.retry() == Rendered("recovered")
    assert render.call_count == 2
    assert not boundary.failed

def test_siblings_render_independently():
    group = BoundaryGroup([
        ContainmentBoundary(lambda: "header", "header"),
        ContainmentBoundary(failing(), "application-list"),
        ContainmentBoundary(lambda: "footer", "footer"),
    ])

    results = group.render()

    assert results[0] == Rendered("header")
    assert isinstance(results[1], Fallback)
    assert results[2] == Rendered("footer")
    assert [b.context for b in group.failed] == ["application-list"]

def test_keyboard_interrupt_is_not_contained():
    boundary = ContainmentBoundary(MagicMock(side_effect=KeyboardInterrupt()), "club-approval")
    with pytest.raises(KeyboardInterrupt):
        boundary.render()

def test_on_error_hook_called_once_per_catch():
    hook = MagicMock()
    boundary = ContainmentBoundary(failing(), "club-approval", on_error=hook)
    boundary.render()
    boundary.render()
    hook.assert_called_once()
    exc, record = hook.call_args.args
    assert isinstance(exc, RuntimeError)
    assert record.error_id == boundary.view.record.error_id

def test_offline_failures_get_offline_guidance():
    monitor = ConnectivityMonitor()
    monitor.go_offline()
    boundary = ContainmentBoundary(failing("Failed to fetch"), "application-list", connectivity=monitor)
    view = boundary.render().view
    assert view.error.suggestions == OFFLINE_SUGGESTIONS

def test_navigation_actions_are_delegated():
    navigator = MagicMock(spec=Navigator)
    boundary = ContainmentBoundary(failing(), "club-approval", navigator=navigator)
    boundary.render()

    boundary.reload()
    boundary.go_back()
    boundary.go_home()

    navigator.reload.assert_called_once()
    navigator.go_back.assert_called_once()
    navigator.go_home.assert_called_once()

def test_support_report_carries_error_details():
    navigator = MagicMock(spec=Navigator)
    navigator.location.return_value = "clubadmin approve club-1"
    boundary = ContainmentBoundary(
        failing("403 Forbidden"), "club-approval", navigator=navigator, support_address="help@club.test"
    )
    view = boundary.render().view

    report = boundary.compose_support_report()

    assert report.recipient == "help@club.test"
    assert view.record.error_id in report.subject
    assert f"Error ID: {view.record.error_id}" in report.body
    assert "Context: club-approval" in report.body
    assert "Category: permission" in report.body
    assert "Location: clubadmin approve club-1" in report.body
    assert "RuntimeError: 403 Forbidden" in report.body
    mailto = report.mailto()
    assert mailto.startswith("mailto:help@club.test?subject=")
    assert view.record.error_id in unquote(mailto)

def test_support_report_requires_failure():
    with pytest.raises(RuntimeError):
        ContainmentBoundary(lambda: None, "club-approval").compose_support_report()

def test_async_render_is_awaited():
    async def render():
        return "loaded"

    async def broken():
        raise ValueError("bad payload")

    assert asyncio.run(ContainmentBoundary(render, "list").render_async()) == Rendered("loaded")
    assert isinstance(asyncio.run(ContainmentBoundary(broken, "list").render_async()), Fallback)

def test_error_ids_are_unique():
    assert new_error_id("ctx", now_ms=1) != new_error_id("ctx", now_ms=1)

def test_console_navigator_points_to_commands():
    ui = MagicMock(spec=UserInterface)
    navigator = ConsoleNavigator(ui, argv=["clubadmin", "applications"])
    navigator.reload()
    navigator.go_home()
    assert navigator.location() == "clubadmin applications"
    assert "clubadmin applications" in ui.display_info.call_args_list[0].args[0]
    assert "clubadmin status" in ui.display_info.call_args_list[1].args[0]
