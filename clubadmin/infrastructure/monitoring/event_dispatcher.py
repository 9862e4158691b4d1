"""In-process dispatcher for domain events.

Subscribers register for an event type (or DomainEvent for everything).
Every dispatched event is logged at DEBUG level.
"""

import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List, Type

from clubadmin.domain.events.resilience_events import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Simple publish/subscribe hub for DomainEvent instances."""

    def __init__(self):
        self._handlers: DefaultDict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)
        self.history: List[DomainEvent] = []
        self.keep_history = False

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> Callable[[], None]:
        """Registers handler for event_type and its subclasses.

        Returns:
            A callable removing the subscription.
        """
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)
        return unsubscribe

    def dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self.keep_history:
            self.history.append(event)
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in list(handlers):
                try:
                    handler(event)
                except Exception as e:
                    # Subscriber failures never reach the publisher
                    logger.error(f"Event handler {handler!r} failed for {type(event).__name__}: {e}", exc_info=True)
