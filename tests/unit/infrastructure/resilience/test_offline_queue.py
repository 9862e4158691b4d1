import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from clubadmin.domain.events.resilience_events import (
    OperationQueued, QueueCleared, QueuedOperationFailed, QueuedOperationReplayed,
)
from clubadmin.domain.models.connectivity import ConnectivityState
from clubadmin.domain.models.errors import ApiRequestError, ErrorCategory
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher
from clubadmin.infrastructure.resilience.connectivity import ConnectivityMonitor
from clubadmin.infrastructure.resilience.error_classifier import ErrorClassifier
from clubadmin.infrastructure.resilience.offline_queue import OfflineOperationQueue


@pytest.fixture
def monitor():
    return ConnectivityMonitor(initial=ConnectivityState.offline())

@pytest.fixture
def events():
    dispatcher = EventDispatcher()
    dispatcher.keep_history = True
    return dispatcher

@pytest.fixture
def settled():
    return MagicMock()

@pytest.fixture
def queue(monitor, events, settled):
    q = OfflineOperationQueue(
        monitor,
        ErrorClassifier(is_online=lambda: monitor.is_online),
        events=events,
        max_replay_attempts=3,
        on_item_settled=settled,
    )
    yield q
    q.close()

def recorder(log, name, error=None):
    async def invoke():
        log.append(name)
        if error is not None:
            raise error
        return name
    return invoke

def test_enqueue_does_not_invoke(queue: OfflineOperationQueue, events: EventDispatcher):
    invoke = AsyncMock()
    operation_id = queue.enqueue(invoke, description="approve club-1")

    invoke.assert_not_called()
    assert queue.count() == 1
    assert queue.pending()[0].id == operation_id
    assert isinstance(events.history[-1], OperationQueued)
    assert events.history[-1].queue_size == 1

def test_reconnect_replays_in_fifo_order(queue: OfflineOperationQueue, monitor: ConnectivityMonitor):
    log = []
    queue.enqueue(recorder(log, "A"))
    queue.enqueue(recorder(log, "B"))
    queue.enqueue(recorder(log, "C"))

    async def reconnect():
        monitor.go_online()
        return await queue.drain_task

    report = asyncio.run(reconnect())

    assert log == ["A", "B", "C"]
    assert len(report.succeeded) == 3
    assert report.remaining == 0
    assert queue.count() == 0

def test_failing_entry_does_not_block_later_entries(
    queue: OfflineOperationQueue, monitor: ConnectivityMonitor, events: EventDispatcher, settled: MagicMock
):
    log = []
    queue.enqueue(recorder(log, "A"))
    failing_id = queue.enqueue(recorder(log, "B", ApiRequestError(403, "Forbidden")))
    queue.enqueue(recorder(log, "C"))
    monitor.go_online() # no running loop: drain explicitly

    report = asyncio.run(queue.drain())

    assert log == ["A", "B", "C"]
    assert len(report.succeeded) == 2
    assert report.failed[0][0] == failing_id
    assert report.failed[0][1].category is ErrorCategory.PERMISSION
    assert queue.count() == 0
    failures = [e for e in events.history if isinstance(e, QueuedOperationFailed)]
    assert len(failures) == 1 and not failures[0].requeued
    assert settled.call_count == 3

def test_drain_stops_when_connectivity_drops(queue: OfflineOperationQueue, monitor: ConnectivityMonitor):
    log = []

    async def drop_connection():
        log.append("A")
        monitor.go_offline()

    queue.enqueue(drop_connection)
    queue.enqueue(recorder(log, "B"))
    queue.enqueue(recorder(log, "C"))
    monitor.go_online()

    report = asyncio.run(queue.drain())

    # In-flight entry completes; untouched entries stay queued
    assert log == ["A"]
    assert len(report.succeeded) == 1
    assert report.remaining == 2
    assert queue.count() == 2

def test_network_failure_while_offline_keeps_entry_at_head(queue: OfflineOperationQueue, monitor: ConnectivityMonitor):
    async def lose_connection():
        monitor.go_offline()
        raise ConnectionError("connection reset")

    operation_id = queue.enqueue(lose_connection)
    queue.enqueue(AsyncMock())

    for _ in range(2):
        monitor.go_online()
        report = asyncio.run(queue.drain())
        assert report.failed[0][0] == operation_id
        assert queue.pending()[0].id == operation_id

    # Third attempt reaches max_replay_attempts: the entry is dropped
    monitor.go_online()
    asyncio.run(queue.drain())
    assert all(op.id != operation_id for op in queue.pending())
    assert queue.count() == 1

def test_clear_discards_without_invoking(queue: OfflineOperationQueue, events: EventDispatcher):
    invoke = AsyncMock()
    queue.enqueue(invoke)
    queue.enqueue(invoke)

    assert queue.clear() == 2
    assert queue.count() == 0
    invoke.assert_not_called()
    assert isinstance(events.history[-1], QueueCleared)

def test_drain_on_empty_queue_is_a_no_op(queue: OfflineOperationQueue, monitor: ConnectivityMonitor):
    monitor.go_online()
    report = asyncio.run(queue.drain())
    assert report.succeeded == () and report.failed == () and report.remaining == 0

def test_online_to_online_does_not_drain(queue: OfflineOperationQueue, monitor: ConnectivityMonitor):
    monitor.go_online()

    async def quality_change():
        monitor.update_link("2g")
        return queue.drain_task

    queue.drain_task = None
    assert asyncio.run(quality_change()) is None

def test_failing_settled_callback_is_contained(monitor: ConnectivityMonitor):
    callback = MagicMock(side_effect=RuntimeError("ui gone"))
    queue = OfflineOperationQueue(monitor, ErrorClassifier(), on_item_settled=callback)
    queue.enqueue(AsyncMock(return_value="ok"))
    monitor.go_online()

    report = asyncio.run(queue.drain())

    assert len(report.succeeded) == 1
    callback.assert_called_once()
    queue.close()

def test_replayed_events_report_remaining(queue: OfflineOperationQueue, monitor: ConnectivityMonitor, events: EventDispatcher):
    queue.enqueue(AsyncMock())
    queue.enqueue(AsyncMock())
    monitor.go_online()
    asyncio.run(queue.drain())
    replayed = [e for e in events.history if isinstance(e, QueuedOperationReplayed)]
    assert [e.remaining for e in replayed] == [1, 0]
