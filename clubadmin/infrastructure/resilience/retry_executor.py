"""Service for executing operations with bounded, classified retries.

Implements exponential backoff for transient failures (network and server
categories). Authentication, permission, validation and unknown failures
surface immediately since re-attempting will not change the outcome.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from clubadmin.domain.events.resilience_events import (
    OperationFailed, OperationSucceeded, RetryScheduled,
)
from clubadmin.domain.models.errors import ErrorRecord, OperationFailedError
from clubadmin.domain.models.operations import AttemptState, RetryPolicy
from clubadmin.infrastructure.monitoring.event_dispatcher import EventDispatcher
from clubadmin.infrastructure.resilience.error_classifier import ErrorClassifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

AttemptObserver = Callable[[int, ErrorRecord], None]
Sleep = Callable[[float], Awaitable[Any]]

# --- Retry Executor ---

class RetryExecutor:
    """Runs an async operation under a RetryPolicy."""

    def __init__(
        self,
        classifier: ErrorClassifier,
        default_policy: Optional[RetryPolicy] = None,
        events: Optional[EventDispatcher] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initializes the RetryExecutor.

        Args:
            classifier: Classifier deciding whether a failure is retryable.
            default_policy: Policy used when run() is not given one.
            events: Optional dispatcher for retry/failure/success events.
            sleep: Awaitable delay function (injected in tests).
        """
        self.classifier = classifier
        self.default_policy = default_policy or RetryPolicy.exponential()
        self.events = events
        self._sleep = sleep
        logger.debug(f"RetryExecutor initialized: max_attempts={self.default_policy.max_attempts}")

    def _dispatch(self, event: Any) -> None:
        if self.events:
            self.events.dispatch(event)

    async def run(
        self,
        op: Callable[[], Awaitable[T]],
        policy: Optional[RetryPolicy] = None,
        on_attempt_failed: Optional[AttemptObserver] = None,
        description: str = "",
    ) -> T:
        """Executes op, retrying retryable failures with backoff.

        Args:
            op: Zero-argument coroutine function performing the remote call.
            policy: Retry policy (defaults to the executor's policy).
            on_attempt_failed: Called with (attempt_number, ErrorRecord) after
                every failed attempt, including the last one.
            description: Human label used in logs and events.

        Returns:
            The result of the first successful attempt.

        Raises:
            OperationFailedError: Once attempts are exhausted or the failure
                is not retryable. Carries the last ErrorRecord.
        """
        policy = policy or self.default_policy
        label = description or getattr(op, "__name__", "operation")
        state = AttemptState()
        last_delay = 0.0
        last_exception: Optional[BaseException] = None

        while True:
            state.attempt_number += 1
            start_time = time.perf_counter()
            try:
                result = await op()
            except Exception as e:
                last_exception = e
                record = self.classifier.classify(e)
                state.last_error = record

                if on_attempt_failed:
                    try:
                        on_attempt_failed(state.attempt_number, record)
                    except Exception as observer_error:
                        logger.error(f"on_attempt_failed callback failed: {observer_error}", exc_info=True)

                if not record.retryable:
                    logger.error(
                        f"Non-retryable {record.category.value} error in {label} on attempt "
                        f"{state.attempt_number}: {record.message}"
                    )
                    break
                if state.attempt_number >= policy.max_attempts:
                    logger.error(f"Max attempts ({policy.max_attempts}) reached for {label}. Last error: {record.message}")
                    break

                # Backoff never shrinks between attempts
                delay = max(last_delay, float(policy.backoff(state.attempt_number)))
                last_delay = delay
                logger.warning(
                    f"Retryable {record.category.value} error in {label} on attempt "
                    f"{state.attempt_number}/{policy.max_attempts}: {record.message}. Waiting {delay:.2f}s..."
                )
                self._dispatch(RetryScheduled(
                    description=label,
                    attempt_number=state.attempt_number,
                    max_attempts=policy.max_attempts,
                    delay_seconds=delay,
                    category=record.category.value,
                ))
                if delay > 0:
                    await self._sleep(delay)
                continue

            latency_ms = (time.perf_counter() - start_time) * 1000
            self._dispatch(OperationSucceeded(description=label, attempts=state.attempt_number, latency_ms=latency_ms))
            return result

        final = state.last_error
        self._dispatch(OperationFailed(
            description=label,
            category=final.category.value,
            message=final.message,
            attempts=state.attempt_number,
        ))
        raise OperationFailedError(final, state.attempt_number, last_exception) from last_exception
