"""Resilient operation facade.

Single entry point the application calls to perform an action safely:
offline actions are queued, online actions run through the retry executor,
fresh read results are cached and offline reads are served from the cache.
"""

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence, Tuple, TypeVar

from clubadmin.domain.events.resilience_events import StaleSnapshotServed
from clubadmin.domain.models.bulk import BulkAggregator, BulkOutcome, BulkProgress
from clubadmin.domain.models.common import CacheKey
from clubadmin.domain.models.errors import ErrorCategory, OperationFailedError
from clubadmin.domain.models.operations import Disposition, OperationOutcome, RetryPolicy
from clubadmin.infrastructure.cache.stale_snapshot_cache import StaleSnapshotCache
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher
from clubadmin.infrastructure.resilience.connectivity import ConnectivityMonitor
from clubadmin.infrastructure.resilience.error_classifier import ErrorClassifier
from clubadmin.infrastructure.resilience.offline_queue import OfflineOperationQueue
from clubadmin.infrastructure.resilience.retry_executor import AttemptObserver, RetryExecutor

logger = logging.getLogger(__name__)

T = TypeVar("T")

Action = Callable[[], Awaitable[T]]
ProgressCallback = Callable[[BulkProgress], None]

OFFLINE_MISS_MESSAGE = "You are offline and no cached data is available"


class ResilientOperationFacade:
    """Composes connectivity, retry, offline queue and snapshot cache."""

    def __init__(
        self,
        connectivity: ConnectivityMonitor,
        classifier: ErrorClassifier,
        retry_executor: RetryExecutor,
        queue: OfflineOperationQueue,
        cache: StaleSnapshotCache,
        events: Optional[EventDispatcher] = None,
    ):
        self.connectivity = connectivity
        self.classifier = classifier
        self.retry_executor = retry_executor
        self.queue = queue
        self.cache = cache
        self.events = events

    # --- Mutating actions ---

    async def execute(
        self,
        action: Action,
        cache_key: Optional[CacheKey] = None,
        retry_policy: Optional[RetryPolicy] = None,
        description: str = "",
        on_attempt_failed: Optional[AttemptObserver] = None,
        ttl_ms: Optional[float] = None,
    ) -> OperationOutcome:
        """Performs action with queueing, retries and caching.

        Args:
            action: Zero-argument coroutine function doing the remote call.
            cache_key: When given, a successful result is written to the cache.
            retry_policy: Overrides the executor's default policy.
            description: Human label for logs, events and queued entries.
            on_attempt_failed: Observer for "retrying attempt N of M" feedback.
            ttl_ms: TTL for the cache write.

        Returns:
            A queued, succeeded or failed OperationOutcome. Never raises for
            failures of the action itself.
        """
        label = description or getattr(action, "__name__", "operation")

        if not self.connectivity.is_online:
            # No await before returning: the action is only referenced
            async def replay() -> Any:
                result = await self.retry_executor.run(action, retry_policy, description=label)
                self._remember(cache_key, result, ttl_ms)
                return result

            operation_id = self.queue.enqueue(replay, description=label)
            return OperationOutcome(Disposition.QUEUED, operation_id=operation_id)

        try:
            attempts = 0

            def observe(attempt: int, record: Any) -> None:
                nonlocal attempts
                attempts = attempt
                if on_attempt_failed:
                    on_attempt_failed(attempt, record)

            result = await self.retry_executor.run(action, retry_policy, on_attempt_failed=observe, description=label)
        except OperationFailedError as e:
            return OperationOutcome(Disposition.FAILED, error=e.record, attempts=e.attempts)

        self._remember(cache_key, result, ttl_ms)
        return OperationOutcome(Disposition.SUCCEEDED, value=result, attempts=attempts + 1)

    def _remember(self, cache_key: Optional[CacheKey], value: Any, ttl_ms: Optional[float]) -> None:
        if cache_key is not None:
            self.cache.write(cache_key, value, ttl_ms)

    # --- Read path ---

    async def fetch(
        self,
        query: Action,
        cache_key: CacheKey,
        ttl_ms: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        description: str = "",
    ) -> OperationOutcome:
        """Runs a read online (caching the result) or serves the snapshot offline.

        Online network failures also fall back to the snapshot when one exists.
        """
        if not self.connectivity.is_online:
            return self._from_cache(cache_key) or OperationOutcome(
                Disposition.FAILED,
                error=self.classifier.classify(ConnectionError(OFFLINE_MISS_MESSAGE)),
            )

        outcome = await self.execute(
            query, cache_key=cache_key, retry_policy=retry_policy,
            description=description or f"fetch {cache_key}", ttl_ms=ttl_ms,
        )
        if outcome.failed and outcome.error.category is ErrorCategory.NETWORK:
            cached = self._from_cache(cache_key)
            if cached is not None:
                logger.warning(f"Fetch for '{cache_key}' failed with a network error; serving cached snapshot")
                return cached
        return outcome

    def _from_cache(self, cache_key: CacheKey) -> Optional[OperationOutcome]:
        snapshot = self.cache.read(cache_key)
        if snapshot is None:
            return None
        age_ms = self.cache.age_ms(cache_key) or 0.0
        if self.events:
            self.events.dispatch(StaleSnapshotServed(cache_key=cache_key, is_stale=snapshot.is_stale, age_ms=age_ms))
        logger.info(f"Serving cached snapshot for '{cache_key}' (stale={snapshot.is_stale})")
        return OperationOutcome(
            Disposition.SUCCEEDED,
            value=snapshot.payload,
            from_cache=True,
            is_stale=snapshot.is_stale,
            cached_at=snapshot.cached_at,
        )

    # --- Bulk actions ---

    async def execute_bulk(
        self,
        ids: Sequence[str],
        batch_action: Callable[[Tuple[str, ...]], Any],
        on_progress: Optional[ProgressCallback] = None,
        retry_policy: Optional[RetryPolicy] = None,
        description: str = "",
        on_attempt_failed: Optional[AttemptObserver] = None,
    ) -> OperationOutcome:
        """Runs one batch call for ids and normalizes the result to a BulkOutcome.

        batch_action receives the de-duplicated ids and either returns an
        awaitable of the raw response, or an async iterator of per-item
        (id, error or None) results for incremental progress.

        Raises:
            ValueError: If ids is empty.
        """
        unique_ids = tuple(dict.fromkeys(str(i) for i in ids))
        if not unique_ids:
            raise ValueError("No ids provided for bulk action")
        total = len(unique_ids)
        label = description or f"bulk action on {total} item(s)"

        def report(processed: int) -> None:
            if on_progress:
                on_progress(BulkProgress(processed=processed, total=total))

        async def run_batch() -> BulkOutcome:
            report(0)
            result = batch_action(unique_ids)
            if hasattr(result, "__aiter__"):
                outcome = await self._consume_stream(unique_ids, result, report)
            else:
                outcome = BulkOutcome.from_response(unique_ids, await result)
            report(total)
            return outcome

        outcome = await self.execute(
            run_batch, retry_policy=retry_policy, description=label, on_attempt_failed=on_attempt_failed,
        )
        if outcome.succeeded:
            bulk: BulkOutcome = outcome.value
            logger.info(f"{label}: {len(bulk.successful_ids)} succeeded, {len(bulk.failed)} failed")
        return outcome

    async def _consume_stream(
        self,
        ids: Tuple[str, ...],
        stream: AsyncIterator[Tuple[str, Optional[str]]],
        report: Callable[[int], None],
    ) -> BulkOutcome:
        aggregator = BulkAggregator(ids)
        async for item_id, error in stream:
            if aggregator.record(str(item_id), error):
                report(aggregator.processed)
        return aggregator.outcome()

    # --- Convenience ---

    def queued_count(self) -> int:
        return self.queue.count()
