import pytest
from typer.testing import CliRunner
from unittest.mock import AsyncMock, MagicMock

from clubadmin.domain.interfaces.admin_api import AdminApi
from clubadmin.domain.models.operations import RetryPolicy
from clubadmin.infrastructure.cache.key_value_stores import InMemoryKeyValueStore
from clubadmin.infrastructure.cli.display import ConsoleDisplay
from clubadmin.infrastructure.config.settings import clear_test_config, set_config_for_testing
from clubadmin.infrastructure.resilience.context import ResilienceContext


class FakeClock:
    """Epoch-millisecond clock advanced by hand."""

    def __init__(self, now_ms: float = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()

@pytest.fixture(autouse=True)
def test_config():
    """Keeps tests off the disk cache and away from real backoff delays."""
    set_config_for_testing({
        'cache.backend': 'memory',
        'retry.base_delay': 0.0,
        'retry.max_delay': 0.0,
        'api.base_url': 'http://api.test',
        'logging.level': 'CRITICAL',
    })
    yield
    clear_test_config()

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def no_sleep():
    """Records backoff delays instead of waiting."""
    return AsyncMock(return_value=None)

@pytest.fixture
def resilience(clock, no_sleep):
    """A fresh, fully wired resilience context per test."""
    context = ResilienceContext.create(
        store=InMemoryKeyValueStore(),
        retry_policy=RetryPolicy.exponential(max_attempts=3, base_delay=1.0, max_delay=30.0),
        sleep=no_sleep,
        clock=clock,
    )
    context.events.keep_history = True
    yield context
    context.close()

@pytest.fixture
def mock_api():
    """An AdminApi double whose coroutine methods are AsyncMocks."""
    mock = MagicMock(spec=AdminApi)
    mock.approve_application = AsyncMock(return_value={"id": "club-1", "status": "approved"})
    mock.reject_application = AsyncMock(return_value={"id": "club-1", "status": "rejected"})
    mock.bulk_approve = AsyncMock(return_value={"successful": [], "failed": []})
    mock.list_applications = AsyncMock(return_value=[])
    mock.get_stats = AsyncMock(return_value={"pending": 2, "approved": 5, "rejected": 1, "total": 8})
    mock.export_report = AsyncMock(return_value="id,name\n1,Chess Club\n")
    mock.ping = AsyncMock(return_value=0.05)
    return mock

@pytest.fixture
def mock_admin_client(mocker, mock_api):
    """Patches AdminApiClient where main.py's composition root builds it."""
    mocker.patch('clubadmin.main.AdminApiClient', return_value=mock_api)
    return mock_api

@pytest.fixture
def mock_console_display(mocker):
    """Mocks the ConsoleDisplay to capture output easily."""
    mock = mocker.MagicMock(spec=ConsoleDisplay)
    mocker.patch('clubadmin.main.ConsoleDisplay', return_value=mock)
    return mock
