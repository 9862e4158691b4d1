import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from clubadmin.domain.interfaces.admin_api import AdminApi
from clubadmin.domain.models.errors import ApiRequestError
from clubadmin.domain.models.connectivity import ConnectionQuality, ConnectivityState
from clubadmin.infrastructure.resilience.connectivity import ConnectivityMonitor
from clubadmin.infrastructure.resilience.connectivity_probe import ConnectivityProbe


@pytest.fixture
def api():
    mock = MagicMock(spec=AdminApi)
    mock.ping = AsyncMock(return_value=0.1)
    return mock

@pytest.fixture
def monitor():
    return ConnectivityMonitor(initial=ConnectivityState.offline())

@pytest.fixture
def sleep():
    return AsyncMock(return_value=None)

def test_successful_ping_goes_online(api, monitor, sleep):
    probe = ConnectivityProbe(api, monitor, poor_latency=2.0, sleep=sleep)
    assert asyncio.run(probe.check()) is True
    assert monitor.state.quality is ConnectionQuality.GOOD

def test_slow_ping_means_poor_quality(api, monitor, sleep):
    api.ping.return_value = 3.0
    probe = ConnectivityProbe(api, monitor, poor_latency=2.0, sleep=sleep)
    asyncio.run(probe.check())
    assert monitor.state.quality is ConnectionQuality.POOR

def test_failed_ping_goes_offline(api, sleep):
    api.ping.side_effect = ConnectionError("refused")
    monitor = ConnectivityMonitor()
    probe = ConnectivityProbe(api, monitor, sleep=sleep)
    assert asyncio.run(probe.check()) is False
    assert not monitor.is_online

def test_wait_until_online_polls_until_answer(api, monitor, sleep):
    api.ping.side_effect = [ConnectionError(), ConnectionError(), 0.2]
    probe = ConnectivityProbe(api, monitor, interval=1.0, sleep=sleep)

    assert asyncio.run(probe.wait_until_online(timeout=10.0)) is True
    assert api.ping.await_count == 3
    assert sleep.await_count == 2
    assert monitor.is_online

def test_wait_until_online_gives_up_after_timeout(api, monitor, sleep):
    api.ping.side_effect = ConnectionError()
    probe = ConnectivityProbe(api, monitor, interval=2.0, sleep=sleep)

    assert asyncio.run(probe.wait_until_online(timeout=5.0)) is False
    assert [c.args[0] for c in sleep.await_args_list] == [2.0, 2.0, 1.0]
    assert not monitor.is_online

def test_run_for_fixed_iterations(api, monitor, sleep):
    probe = ConnectivityProbe(api, monitor, interval=0.5, sleep=sleep)
    asyncio.run(probe.run(iterations=3))
    assert api.ping.await_count == 3
    assert sleep.await_count == 2

def test_timeout_goes_offline(api, sleep):
    api.ping.side_effect = TimeoutError("health check timed out")
    monitor = ConnectivityMonitor()
    assert asyncio.run(ConnectivityProbe(api, monitor, sleep=sleep).check()) is False
    assert not monitor.is_online

@pytest.mark.parametrize("error", [
    ApiRequestError(401, "Unauthorized"),
    ApiRequestError(403, "Forbidden"),
    ApiRequestError(500, "Internal Server Error"),
])
def test_http_error_status_keeps_monitor_online(api, sleep, error):
    api.ping.side_effect = error
    monitor = ConnectivityMonitor()

    assert asyncio.run(ConnectivityProbe(api, monitor, sleep=sleep).check()) is True
    assert monitor.is_online

def test_http_error_status_ends_offline_state(api, monitor, sleep):
    api.ping.side_effect = ApiRequestError(401, "Unauthorized")
    probe = ConnectivityProbe(api, monitor, sleep=sleep)

    assert asyncio.run(probe.wait_until_online(timeout=10.0)) is True
    assert monitor.is_online
    sleep.assert_not_awaited()
