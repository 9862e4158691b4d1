"""Resilience context.

Holds the one connectivity monitor, classifier, cache, queue, retry executor,
facade and event dispatcher shared by the application. Built once by the
composition root; tests build a fresh one each.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from clubadmin.domain.interfaces.key_value_store import KeyValueStore
from clubadmin.domain.models.connectivity import ConnectivityState
from clubadmin.domain.models.operations import RetryPolicy
from clubadmin.infrastructure.cache.key_value_stores import DiskKeyValueStore, InMemoryKeyValueStore
from clubadmin.infrastructure.cache.stale_snapshot_cache import StaleSnapshotCache
from clubadmin.infrastructure.config.settings import (
    get_cache_backend, get_cache_ttl_ms, get_config, get_retry_settings,
)
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher
from clubadmin.infrastructure.resilience.connectivity import ConnectivityMonitor
from clubadmin.infrastructure.resilience.error_classifier import ErrorClassifier
from clubadmin.infrastructure.resilience.facade import ResilientOperationFacade
from clubadmin.infrastructure.resilience.offline_queue import OfflineOperationQueue
from clubadmin.infrastructure.resilience.retry_executor import RetryExecutor, Sleep

logger = logging.getLogger(__name__)


def create_store(backend: Optional[str] = None) -> KeyValueStore:
    """Builds the key-value store named by cache.backend ('disk' or 'memory')."""
    backend = backend or get_cache_backend()
    if backend == "disk":
        return DiskKeyValueStore(Path(str(get_config("cache.dir"))).expanduser())
    return InMemoryKeyValueStore()


@dataclass
class ResilienceContext:
    events: EventDispatcher
    connectivity: ConnectivityMonitor
    classifier: ErrorClassifier
    retry_executor: RetryExecutor
    cache: StaleSnapshotCache
    queue: OfflineOperationQueue
    facade: ResilientOperationFacade

    @classmethod
    def create(
        cls,
        store: Optional[KeyValueStore] = None,
        initial: Optional[ConnectivityState] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Sleep] = None,
        clock: Optional[Callable[[], float]] = None,
        events: Optional[EventDispatcher] = None,
    ) -> "ResilienceContext":
        """Wires every resilience component, filling gaps from configuration.

        Args:
            store: Backing store for the snapshot cache (defaults to cache.backend).
            initial: Initial connectivity state (defaults to online).
            retry_policy: Default retry policy (defaults to retry.* settings).
            sleep: Backoff delay function, injected in tests.
            clock: Epoch-millisecond clock for the cache, injected in tests.
            events: Shared dispatcher (a new one when omitted).
        """
        events = events or EventDispatcher()
        connectivity = ConnectivityMonitor(initial=initial, events=events)
        classifier = ErrorClassifier(is_online=lambda: connectivity.is_online)

        if retry_policy is None:
            settings = get_retry_settings()
            retry_policy = RetryPolicy.exponential(
                max_attempts=settings["max_attempts"],
                base_delay=settings["base_delay"],
                max_delay=settings["max_delay"],
            )
        executor_kwargs = {"sleep": sleep} if sleep is not None else {}
        retry_executor = RetryExecutor(classifier, default_policy=retry_policy, events=events, **executor_kwargs)

        cache_kwargs = {"clock": clock} if clock is not None else {}
        cache = StaleSnapshotCache(store or create_store(), default_ttl_ms=get_cache_ttl_ms(), **cache_kwargs)

        queue = OfflineOperationQueue(
            connectivity,
            classifier,
            events=events,
            max_replay_attempts=int(get_config("queue.max_replay_attempts")),
        )
        facade = ResilientOperationFacade(connectivity, classifier, retry_executor, queue, cache, events=events)
        logger.debug("Resilience context created")
        return cls(
            events=events,
            connectivity=connectivity,
            classifier=classifier,
            retry_executor=retry_executor,
            cache=cache,
            queue=queue,
            facade=facade,
        )

    def close(self) -> None:
        """Detaches the queue and releases the cache store."""
        self.queue.close()
        close = getattr(self.cache.store, "close", None)
        if callable(close):
            close()
