import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from clubadmin.core.command_handler import CommandHandler
from clubadmin.core.services.review_service import ApplicationReviewService
from clubadmin.domain.interfaces.user_interface import UserInterface
from clubadmin.domain.models.common import CacheKey
from clubadmin.infrastructure.resilience.connectivity_probe import ConnectivityProbe
from clubadmin.infrastructure.resilience.context import ResilienceContext


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)

@pytest.fixture
def probe(mock_api, resilience: ResilienceContext):
    return ConnectivityProbe(mock_api, resilience.connectivity, interval=1.0, sleep=AsyncMock())

@pytest.fixture
def handler(mock_api, resilience: ResilienceContext, mock_ui, probe):
    service = ApplicationReviewService(api=mock_api, facade=resilience.facade, ui=mock_ui)
    return CommandHandler(service, resilience, mock_ui, probe=probe, support_address="help@club.test")

def test_unexpected_error_renders_fallback_with_report_link(handler: CommandHandler, mock_ui, mock_api):
    mock_api.list_applications.return_value = [{"id": "club-1"}]
    mock_ui.display_applications.side_effect = KeyError("name")

    assert asyncio.run(handler.handle_list("pending")) is None

    view = mock_ui.display_fallback.call_args.args[0]
    assert view.record.component_context == "application-list"
    assert "mailto:help@club.test" in mock_ui.display_info.call_args.args[0]

def test_validation_errors_are_contained(handler: CommandHandler, mock_ui):
    assert asyncio.run(handler.handle_reject("club-1", " ")) is None
    mock_ui.display_fallback.assert_called_once()

def test_finish_warns_about_unsent_operations(handler: CommandHandler, resilience, mock_ui):
    resilience.connectivity.go_offline()
    asyncio.run(handler.handle_approve("club-1"))

    unsent = asyncio.run(handler.finish(wait_online=None))

    assert unsent == 1
    assert "discarded" in mock_ui.display_warning.call_args.args[0]
    assert resilience.queue.count() == 1

def test_finish_replays_queue_once_online(handler: CommandHandler, resilience, mock_ui, mock_api):
    resilience.connectivity.go_offline()

    async def scenario():
        await handler.handle_approve("club-1", "ok")
        return await handler.finish(wait_online=3.0)

    assert asyncio.run(scenario()) == 0

    mock_api.approve_application.assert_awaited_once_with("club-1", "ok")
    assert resilience.queue.count() == 0
    report = mock_ui.display_drain_report.call_args.args[0]
    assert len(report.succeeded) == 1

def test_finish_gives_up_when_still_offline(handler: CommandHandler, resilience, mock_ui, mock_api):
    mock_api.ping.side_effect = ConnectionError("refused")
    resilience.connectivity.go_offline()

    async def scenario():
        await handler.handle_approve("club-1")
        return await handler.finish(wait_online=2.0)

    assert asyncio.run(scenario()) == 1

    mock_api.approve_application.assert_not_called()
    assert "Still offline" in mock_ui.display_warning.call_args.args[0]
    assert resilience.queue.count() == 1

def test_finish_with_empty_queue_does_nothing(handler: CommandHandler, mock_ui):
    assert asyncio.run(handler.finish(wait_online=1.0)) == 0
    mock_ui.display_info.assert_not_called()
    mock_ui.display_warning.assert_not_called()

def test_clear_cache(handler: CommandHandler, resilience, mock_ui):
    resilience.cache.write(CacheKey("applications-pending"), [])
    resilience.connectivity.go_offline()
    resilience.queue.enqueue(AsyncMock())

    handler.handle_clear_cache(include_queue=True)

    assert list(resilience.cache.keys()) == []
    assert resilience.queue.count() == 0
    assert "1 queued operation(s) discarded" in mock_ui.display_info.call_args.args[0]
