from unittest.mock import MagicMock

from clubadmin.domain.events.resilience_events import (
    DomainEvent, OperationQueued, QueueCleared,
)
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher


def test_handlers_receive_matching_events_only():
    dispatcher = EventDispatcher()
    queued = MagicMock()
    dispatcher.subscribe(OperationQueued, queued)

    dispatcher.dispatch(QueueCleared(discarded=1))
    dispatcher.dispatch(OperationQueued(operation_id="abc", description="approve", queue_size=1))

    queued.assert_called_once()
    assert queued.call_args.args[0].operation_id == "abc"

def test_base_class_subscription_sees_everything():
    dispatcher = EventDispatcher()
    everything = MagicMock()
    dispatcher.subscribe(DomainEvent, everything)
    dispatcher.dispatch(QueueCleared(discarded=0))
    dispatcher.dispatch(OperationQueued(operation_id="abc", description="approve", queue_size=1))
    assert everything.call_count == 2

def test_failing_handler_is_isolated():
    dispatcher = EventDispatcher()
    dispatcher.subscribe(QueueCleared, MagicMock(side_effect=RuntimeError("bug")))
    healthy = MagicMock()
    dispatcher.subscribe(QueueCleared, healthy)

    dispatcher.dispatch(QueueCleared(discarded=0))

    healthy.assert_called_once()

def test_unsubscribe_and_history():
    dispatcher = EventDispatcher()
    dispatcher.keep_history = True
    handler = MagicMock()
    unsubscribe = dispatcher.subscribe(QueueCleared, handler)
    unsubscribe()

    event = QueueCleared(discarded=3)
    dispatcher.dispatch(event)

    handler.assert_not_called()
    assert dispatcher.history == [event]
