"""Offline operation queue.

Buffers operations issued while offline and replays them, oldest first and
one at a time, when the connectivity monitor reports the offline -> online
transition.

Replay policy when connectivity flaps mid-drain:
- before each entry the drain re-checks connectivity and stops if offline;
  entries not yet started stay queued for the next transition;
- an entry already started always runs to completion;
- if it fails with a network error while the monitor now reports offline,
  it stays at the head of the queue until it has been tried
  max_replay_attempts times; any other failure removes it.
"""

import asyncio
import logging
import uuid
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional, Tuple

from clubadmin.domain.events.resilience_events import (
    OperationQueued, QueueCleared, QueueDrainStarted, QueuedOperationFailed,
    QueuedOperationReplayed,
)
from clubadmin.domain.models.common import OperationId
from clubadmin.domain.models.connectivity import ConnectivityState
from clubadmin.domain.models.errors import ErrorCategory, ErrorRecord
from clubadmin.domain.models.operations import DrainReport, QueuedOperation
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher
from clubadmin.infrastructure.resilience.connectivity import ConnectivityMonitor
from clubadmin.infrastructure.resilience.error_classifier import ErrorClassifier

logger = logging.getLogger(__name__)

DEFAULT_MAX_REPLAY_ATTEMPTS = 3

# Called once per settled entry: (operation, error or None on success)
SettledCallback = Callable[[QueuedOperation, Optional[ErrorRecord]], None]


class OfflineOperationQueue:
    """FIFO buffer of deferred operations with automatic replay."""

    def __init__(
        self,
        connectivity: ConnectivityMonitor,
        classifier: ErrorClassifier,
        events: Optional[EventDispatcher] = None,
        max_replay_attempts: int = DEFAULT_MAX_REPLAY_ATTEMPTS,
        on_item_settled: Optional[SettledCallback] = None,
    ):
        self.connectivity = connectivity
        self.classifier = classifier
        self.events = events
        self.max_replay_attempts = max_replay_attempts
        self.on_item_settled = on_item_settled
        self._entries: Deque[QueuedOperation] = deque()
        self._drain_lock = asyncio.Lock()
        self.drain_task: Optional["asyncio.Task[DrainReport]"] = None
        self._unsubscribe = connectivity.subscribe(self._on_connectivity_change)

    def _dispatch(self, event: Any) -> None:
        if self.events:
            self.events.dispatch(event)

    # --- Queue operations ---

    def enqueue(self, invoke: Callable[[], Awaitable[Any]], description: str = "") -> OperationId:
        """Appends an operation; it is not invoked until a drain reaches it."""
        operation = QueuedOperation(
            id=OperationId(uuid.uuid4().hex),
            invoke=invoke,
            description=description or getattr(invoke, "__name__", "operation"),
        )
        self._entries.append(operation)
        logger.info(f"Queued '{operation.description}' while offline ({len(self._entries)} pending)")
        self._dispatch(OperationQueued(
            operation_id=operation.id,
            description=operation.description,
            queue_size=len(self._entries),
        ))
        return operation.id

    def count(self) -> int:
        return len(self._entries)

    def pending(self) -> Tuple[QueuedOperation, ...]:
        return tuple(self._entries)

    def clear(self) -> int:
        """Discards every pending entry without invoking it.

        Returns:
            The number of discarded entries.
        """
        discarded = len(self._entries)
        self._entries.clear()
        logger.info(f"Cleared offline queue ({discarded} operation(s) discarded)")
        self._dispatch(QueueCleared(discarded=discarded))
        return discarded

    def close(self) -> None:
        """Stops listening to connectivity changes."""
        self._unsubscribe()

    # --- Replay ---

    def _on_connectivity_change(self, current: ConnectivityState, previous: ConnectivityState) -> None:
        if previous.is_online or not current.is_online:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Back online outside an event loop; queued operations wait for an explicit drain().")
            return
        self.drain_task = loop.create_task(self.drain())

    async def drain(self) -> DrainReport:
        """Replays queued entries in FIFO order, one at a time.

        A failing entry is reported and the drain moves on to the next one.
        Concurrent drains are serialized.
        """
        async with self._drain_lock:
            succeeded: List[OperationId] = []
            failed: List[Tuple[OperationId, ErrorRecord]] = []
            if self._entries:
                logger.info(f"Back online: replaying {len(self._entries)} queued operation(s)")
                self._dispatch(QueueDrainStarted(pending=len(self._entries)))

            while self._entries:
                if not self.connectivity.is_online:
                    logger.warning(f"Connectivity lost during replay; {len(self._entries)} operation(s) stay queued")
                    break

                operation = self._entries[0]
                operation.attempts += 1
                try:
                    await operation.invoke()
                except Exception as e:
                    record = self.classifier.classify(e)
                    requeue = self._should_keep(operation, record)
                    if not requeue:
                        self._remove(operation)
                    failed.append((operation.id, record))
                    logger.error(f"Queued operation '{operation.description}' failed on replay: {record.message}")
                    self._dispatch(QueuedOperationFailed(
                        operation_id=operation.id,
                        description=operation.description,
                        category=record.category.value,
                        message=record.message,
                        requeued=requeue,
                        remaining=len(self._entries),
                    ))
                    self._settled(operation, record)
                    if requeue:
                        break
                    continue

                self._remove(operation)
                succeeded.append(operation.id)
                logger.info(f"Queued operation '{operation.description}' replayed ({len(self._entries)} remaining)")
                self._dispatch(QueuedOperationReplayed(
                    operation_id=operation.id,
                    description=operation.description,
                    remaining=len(self._entries),
                ))
                self._settled(operation, None)

            return DrainReport(succeeded=tuple(succeeded), failed=tuple(failed), remaining=len(self._entries))

    def _should_keep(self, operation: QueuedOperation, record: ErrorRecord) -> bool:
        return (
            record.category is ErrorCategory.NETWORK
            and not self.connectivity.is_online
            and operation.attempts < self.max_replay_attempts
        )

    def _remove(self, operation: QueuedOperation) -> None:
        # clear() may have emptied the queue while the entry was running
        if self._entries and self._entries[0] is operation:
            self._entries.popleft()
        elif operation in self._entries:
            self._entries.remove(operation)

    def _settled(self, operation: QueuedOperation, error: Optional[ErrorRecord]) -> None:
        if self.on_item_settled:
            try:
                self.on_item_settled(operation, error)
            except Exception as e:
                logger.error(f"on_item_settled callback failed: {e}", exc_info=True)
