"""Domain models for classified failures.

An ErrorRecord is the category + severity + suggestions representation of a
raw failure. Exceptions defined here carry such a record so that layers
above the resilience services never have to re-classify.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ErrorCategory(str, Enum):
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    VALIDATION = "validation"
    SERVER = "server"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Categories for which re-attempting the same operation may help.
RETRYABLE_CATEGORIES = frozenset({ErrorCategory.NETWORK, ErrorCategory.SERVER})

_TITLES = {
    ErrorCategory.NETWORK: "Network Error",
    ErrorCategory.AUTHENTICATION: "Authentication Error",
    ErrorCategory.PERMISSION: "Permission Denied",
    ErrorCategory.VALIDATION: "Validation Error",
    ErrorCategory.SERVER: "Server Error",
    ErrorCategory.UNKNOWN: "Error",
}


@dataclass(frozen=True)
class ErrorRecord:
    """Classified, immutable description of a failure."""
    category: ErrorCategory
    severity: Severity
    message: str
    suggestions: Tuple[str, ...] = ()
    support_id: Optional[str] = None
    not_found: bool = False # 404-flavoured unknown

    @property
    def retryable(self) -> bool:
        return self.category in RETRYABLE_CATEGORIES

    @property
    def title(self) -> str:
        if self.not_found:
            return "Not Found"
        return _TITLES[self.category]


class ClassifiedError(Exception):
    """Base exception carrying an already classified ErrorRecord."""

    def __init__(self, record: ErrorRecord):
        self.record = record
        super().__init__(record.message)


class OperationFailedError(ClassifiedError):
    """Raised by the retry executor once an operation has definitively failed."""

    def __init__(self, record: ErrorRecord, attempts: int, original_exception: Optional[BaseException] = None):
        self.attempts = attempts
        self.original_exception = original_exception
        super().__init__(record)

    def __str__(self) -> str:
        return f"Operation failed after {self.attempts} attempt(s): {self.record.message}"


class ApiRequestError(Exception):
    """HTTP-level failure reported by the admin API.

    The message always starts with the status code so that message-based
    classification picks it up.
    """

    def __init__(self, status: int, detail: str = ""):
        self.status = status
        self.detail = detail
        super().__init__(f"{status} {detail}".strip())
