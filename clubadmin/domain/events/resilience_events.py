"""Domain Events related to operation resilience.

Examples include events for when connectivity changes, operations are
queued or replayed, retries are scheduled, and render failures are contained.
"""

from dataclasses import dataclass, field
import time
from typing import Optional

# Base Event Class
@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# --- Connectivity ---

@dataclass
class ConnectivityChanged(DomainEvent):
    """Event triggered on every connectivity transition."""
    is_online: bool
    quality: str # 'good', 'poor', 'offline'
    previous_quality: str
    timestamp: float = field(default_factory=time.time)

# --- Operation Lifecycle ---

@dataclass
class OperationSucceeded(DomainEvent):
    """Event triggered when an operation completes successfully."""
    description: str
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class OperationFailed(DomainEvent):
    """Event triggered when an operation fails definitively (after retries)."""
    description: str
    category: str
    message: str
    attempts: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed attempt."""
    description: str
    attempt_number: int
    max_attempts: int
    delay_seconds: float
    category: str
    timestamp: float = field(default_factory=time.time)

# --- Offline Queue ---

@dataclass
class OperationQueued(DomainEvent):
    """Event triggered when an operation is deferred because the app is offline."""
    operation_id: str
    description: str
    queue_size: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class QueueDrainStarted(DomainEvent):
    """Event triggered when queued operations start replaying."""
    pending: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class QueuedOperationReplayed(DomainEvent):
    """Event triggered when a queued operation succeeds on replay."""
    operation_id: str
    description: str
    remaining: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class QueuedOperationFailed(DomainEvent):
    """Event triggered when a queued operation fails on replay."""
    operation_id: str
    description: str
    category: str
    message: str
    requeued: bool
    remaining: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class QueueCleared(DomainEvent):
    """Event triggered when pending operations are discarded."""
    discarded: int
    timestamp: float = field(default_factory=time.time)

# --- Cache ---

@dataclass
class StaleSnapshotServed(DomainEvent):
    """Event triggered when a cached snapshot is served instead of fresh data."""
    cache_key: str
    is_stale: bool
    age_ms: float
    timestamp: float = field(default_factory=time.time)

# --- Containment ---

@dataclass
class RenderFailureContained(DomainEvent):
    """Event triggered when a containment boundary catches a render failure."""
    error_id: str
    component_context: str
    category: str
    severity: str
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
