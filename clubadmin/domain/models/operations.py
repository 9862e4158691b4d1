"""Domain models for resilient operations.

Covers retry configuration, queued operations, cache snapshots and the
outcome handed back to callers of the resilient operation facade.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Tuple, TypeVar

from .common import CacheKey, OperationId
from .errors import ErrorRecord

T = TypeVar("T")

# --- Retry ---

Backoff = Callable[[int], float] # attempt number (1-based) -> delay in seconds


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded-attempt retry configuration supplied by the caller."""
    max_attempts: int
    backoff: Backoff

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    @classmethod
    def exponential(cls, max_attempts: int = 3, base_delay: float = 1.0, max_delay: float = 30.0) -> "RetryPolicy":
        """Builds a policy waiting base_delay * 2^(attempt-1), capped at max_delay."""
        def backoff(attempt: int) -> float:
            return min(max_delay, base_delay * (2 ** (attempt - 1)))
        return cls(max_attempts=max_attempts, backoff=backoff)

    @classmethod
    def no_delay(cls, max_attempts: int = 1) -> "RetryPolicy":
        return cls(max_attempts=max_attempts, backoff=lambda attempt: 0.0)


@dataclass
class AttemptState:
    """Per-invocation retry bookkeeping."""
    attempt_number: int = 0
    last_error: Optional[ErrorRecord] = None


# --- Offline Queue ---

@dataclass
class QueuedOperation:
    """An action deferred because it could not run while offline."""
    id: OperationId
    invoke: Callable[[], Awaitable[Any]]
    enqueued_at: float = field(default_factory=time.time)
    attempts: int = 0
    description: str = ""


@dataclass(frozen=True)
class DrainReport:
    """Per-item results of one queue drain."""
    succeeded: Tuple[OperationId, ...] = ()
    failed: Tuple[Tuple[OperationId, ErrorRecord], ...] = ()
    remaining: int = 0


# --- Stale Snapshot Cache ---

@dataclass(frozen=True)
class CacheEntry:
    """A last-known-good payload with its time box (times in milliseconds)."""
    key: CacheKey
    payload: Any
    cached_at: float
    ttl_ms: float

    def is_stale(self, now_ms: float) -> bool:
        return now_ms - self.cached_at > self.ttl_ms


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """What a cache read hands back: the payload and whether it is stale."""
    payload: T
    is_stale: bool
    cached_at: float


# --- Facade Outcome ---

class Disposition(str, Enum):
    SUCCEEDED = "succeeded"
    QUEUED = "queued"
    FAILED = "failed"


@dataclass(frozen=True)
class OperationOutcome(Generic[T]):
    """Result of a facade call: succeeded, queued for later, or failed."""
    disposition: Disposition
    value: Optional[T] = None
    error: Optional[ErrorRecord] = None
    operation_id: Optional[OperationId] = None
    attempts: int = 0
    from_cache: bool = False
    is_stale: bool = False
    cached_at: Optional[float] = None # epoch ms, set when served from cache

    @property
    def succeeded(self) -> bool:
        return self.disposition is Disposition.SUCCEEDED

    @property
    def queued(self) -> bool:
        return self.disposition is Disposition.QUEUED

    @property
    def failed(self) -> bool:
        return self.disposition is Disposition.FAILED
