import asyncio
import pytest
from unittest.mock import MagicMock

from clubadmin.core.services.review_service import (
    STATS_CACHE_KEY, ApplicationReviewService, applications_cache_key,
)
from clubadmin.domain.interfaces.user_interface import UserInterface
from clubadmin.domain.models.bulk import BulkOutcome, BulkProgress
from clubadmin.domain.models.errors import ApiRequestError, ErrorCategory
from clubadmin.infrastructure.resilience.context import ResilienceContext


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)

@pytest.fixture
def review_service(mock_api, resilience: ResilienceContext, mock_ui):
    """Fixture to create ApplicationReviewService with mocked API and UI."""
    return ApplicationReviewService(api=mock_api, facade=resilience.facade, ui=mock_ui)

def test_approve_online(review_service, mock_api, mock_ui):
    outcome = asyncio.run(review_service.approve("club-1", "Welcome aboard"))

    assert outcome.succeeded
    mock_api.approve_application.assert_awaited_once_with("club-1", "Welcome aboard")
    mock_ui.display_success.assert_called_once_with("Application club-1 approved.")

def test_approve_offline_is_queued(review_service, mock_api, mock_ui, resilience):
    resilience.connectivity.go_offline()

    outcome = asyncio.run(review_service.approve("club-1"))

    assert outcome.queued
    mock_api.approve_application.assert_not_called()
    mock_ui.display_queued.assert_called_once_with("approve application club-1", 1)

def test_approve_failure_shows_error_card(review_service, mock_api, mock_ui):
    mock_api.approve_application.side_effect = ApiRequestError(403, "Admin role required")

    outcome = asyncio.run(review_service.approve("club-1"))

    assert outcome.failed
    record = mock_ui.display_error_record.call_args.args[0]
    assert record.category is ErrorCategory.PERMISSION
    assert mock_ui.display_error_record.call_args.kwargs["context"] == "approve application club-1"

def test_retry_notices_for_transient_failures(review_service, mock_api, mock_ui):
    mock_api.approve_application.side_effect = [ConnectionError("reset"), {"id": "club-1"}]

    outcome = asyncio.run(review_service.approve("club-1"))

    assert outcome.succeeded
    mock_ui.display_warning.assert_called_once()
    assert "Attempt 1 failed" in mock_ui.display_warning.call_args.args[0]

def test_approve_invalidates_cached_lists(review_service, resilience):
    resilience.cache.write(applications_cache_key("pending"), [{"id": "club-1"}])
    resilience.cache.write(STATS_CACHE_KEY, {"pending": 1})

    asyncio.run(review_service.approve("club-1"))

    assert resilience.cache.read(applications_cache_key("pending")) is None
    assert resilience.cache.read(STATS_CACHE_KEY) is None

@pytest.mark.parametrize("club_id, reason", [("", "Incomplete"), ("club-1", "  ")])
def test_reject_validates_input(review_service, club_id, reason):
    with pytest.raises(ValueError):
        asyncio.run(review_service.reject(club_id, reason))

def test_reject_online(review_service, mock_api, mock_ui):
    asyncio.run(review_service.reject("club-1", "Incomplete documents"))
    mock_api.reject_application.assert_awaited_once_with("club-1", "Incomplete documents")
    mock_ui.display_success.assert_called_once_with("Application club-1 rejected.")

def test_bulk_approve_reports_partial_success(review_service, mock_api, mock_ui):
    mock_api.bulk_approve.return_value = {
        "successful": ["c1", "c3", "c5"],
        "failed": [{"id": "c2", "error": "Already approved"}, {"id": "c4", "error": "Missing documents"}],
    }

    outcome = asyncio.run(review_service.bulk_approve(["c1", "c2", "c3", "c4", "c5"]))

    bulk = mock_ui.display_bulk_outcome.call_args.args[0]
    assert isinstance(bulk, BulkOutcome)
    assert bulk.successful_ids == ("c1", "c3", "c5")
    assert bulk.failed_ids == ("c2", "c4")
    assert outcome.value == bulk
    progress = [c.args[0] for c in mock_ui.display_progress.call_args_list]
    assert progress == [BulkProgress(0, 5), BulkProgress(5, 5)]

def test_list_applications_online_then_offline(review_service, mock_api, mock_ui, resilience, clock):
    mock_api.list_applications.return_value = [{"id": "club-1", "status": "pending"}]
    asyncio.run(review_service.list_applications("pending"))

    resilience.connectivity.go_offline()
    clock.advance(360_000)
    outcome = asyncio.run(review_service.list_applications("pending"))

    assert outcome.from_cache and outcome.is_stale
    mock_api.list_applications.assert_awaited_once_with("pending")
    mock_ui.display_stale_notice.assert_called_once_with(True, clock.now_ms - 360_000)
    assert mock_ui.display_applications.call_count == 2

def test_list_applications_offline_without_cache(review_service, mock_ui, resilience):
    resilience.connectivity.go_offline()
    outcome = asyncio.run(review_service.list_applications("pending"))
    assert outcome.failed
    mock_ui.display_error_record.assert_called_once()
    mock_ui.display_applications.assert_not_called()

def test_get_stats_displays_counts(review_service, mock_ui):
    asyncio.run(review_service.get_stats())
    text = mock_ui.display_output.call_args.args[0]
    assert "Pending: 2" in text and "Total: 8" in text

def test_export_report_writes_file(review_service, mock_api, tmp_path):
    target = tmp_path / "reports" / "applications.csv"

    outcome = asyncio.run(review_service.export_report("applications", "csv", target))

    assert outcome.succeeded
    mock_api.export_report.assert_awaited_once_with("applications", "csv")
    assert target.read_text(encoding="utf-8") == "id,name\n1,Chess Club\n"

def test_export_report_offline_writes_on_replay(review_service, resilience, tmp_path):
    target = tmp_path / "stats.json"
    resilience.connectivity.go_offline()

    async def scenario():
        await review_service.export_report("statistics", "json", target)
        assert not target.exists()
        resilience.connectivity.go_online()
        await resilience.queue.drain_task

    asyncio.run(scenario())
    assert target.exists()
