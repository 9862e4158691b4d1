"""Connectivity monitor.

Tracks online/offline transitions and a coarse quality signal. It is the
single source of truth the offline queue, the facade and the classifier
consult; other components subscribe to its transitions.
"""

import logging
from typing import Callable, List, Optional

from clubadmin.domain.events.resilience_events import ConnectivityChanged
from clubadmin.domain.models.common import LinkType
from clubadmin.domain.models.connectivity import (
    ConnectivityState, LOW_BANDWIDTH_LINKS,
)
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

# Listener signature: (current, previous)
ConnectivityListener = Callable[[ConnectivityState, ConnectivityState], None]


class ConnectivityMonitor:
    """Observable connectivity state. Never fails, only reports."""

    def __init__(
        self,
        initial: Optional[ConnectivityState] = None,
        events: Optional[EventDispatcher] = None,
    ):
        self._state = initial or ConnectivityState.online()
        self._link_type: Optional[LinkType] = None
        self._listeners: List[ConnectivityListener] = []
        self.events = events
        logger.debug(f"ConnectivityMonitor initialized: {self._state}")

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state.is_online

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Registers a listener fired on every transition.

        Returns:
            A callable removing the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # --- Platform signals ---

    def go_online(self, link_type: Optional[str] = None) -> None:
        """Platform reported connectivity (optionally with its link class)."""
        if link_type is not None:
            self._link_type = LinkType(link_type)
        self._transition(ConnectivityState.online(poor=self._is_low_bandwidth()))

    def go_offline(self) -> None:
        """Platform reported that connectivity was lost."""
        self._transition(ConnectivityState.offline())

    def update_link(self, link_type: str) -> None:
        """Platform reported a new link class; only affects quality while online."""
        self._link_type = LinkType(link_type)
        if self._state.is_online:
            self._transition(ConnectivityState.online(poor=self._is_low_bandwidth()))

    def report_latency(self, latency_s: float, poor_threshold_s: float) -> None:
        """Derives quality from a measured round trip (used by the probe)."""
        self._transition(ConnectivityState.online(poor=latency_s > poor_threshold_s))

    def _is_low_bandwidth(self) -> bool:
        return self._link_type is not None and self._link_type.lower() in LOW_BANDWIDTH_LINKS

    def _transition(self, new_state: ConnectivityState) -> None:
        previous = self._state
        if new_state == previous:
            return
        self._state = new_state
        if previous.is_online != new_state.is_online:
            logger.info(f"Connectivity changed: {'online' if new_state.is_online else 'offline'}")
        else:
            logger.debug(f"Connection quality changed: {previous.quality.value} -> {new_state.quality.value}")

        if self.events:
            self.events.dispatch(ConnectivityChanged(
                is_online=new_state.is_online,
                quality=new_state.quality.value,
                previous_quality=previous.quality.value,
            ))

        for listener in list(self._listeners):
            try:
                listener(new_state, previous)
            except Exception as e:
                logger.error(f"Connectivity listener {listener!r} failed: {e}", exc_info=True)
