"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like cache keys, operation
identifiers, club ids, etc., ensuring consistency and type safety.
"""

from typing import NewType, TypedDict, List, Optional

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
ClubId = NewType("ClubId", str)                # Identifier of a club application
AdminNotes = NewType("AdminNotes", str)        # Free text attached to an approval
RejectionReason = NewType("RejectionReason", str)

# === Resilience Context ===
OperationId = NewType("OperationId", str)      # Id handed out by the offline queue
ErrorId = NewType("ErrorId", str)              # Support-traceable id of a contained render failure
LinkType = NewType("LinkType", str)            # Platform link class ('4g', '3g', '2g', 'slow-2g', ...)

# === Caching Context ===
CacheKey = NewType("CacheKey", str)            # Unique key for a snapshot entry
STORAGE_KEY_PREFIX = "offline-cache-"          # Prefix used in the backing key-value store

# === Reporting Context ===
ReportType = NewType("ReportType", str)        # 'applications', 'statistics', 'admin-activity'
ReportFormat = NewType("ReportFormat", str)    # 'csv', 'json'

# --- Structured Data ---
class BackoffPolicy(TypedDict):
    """Value Object representing retry backoff configuration."""
    max_attempts: int
    base_delay: float
    max_delay: float

class ApplicationStats(TypedDict):
    """Counts of club applications per status."""
    pending: int
    approved: int
    rejected: int
    total: int

class ClubApplication(TypedDict, total=False):
    """A club application row as returned by the admin API."""
    id: str
    name: str
    status: str
    sport_type: Optional[str]
    contact_email: Optional[str]
    created_at: Optional[str]
    tags: List[str]
