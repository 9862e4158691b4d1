"""Error classification.

Turns any raw failure (exception, string, None, arbitrary object) into an
ErrorRecord. Classification is pure, deterministic and total: it never
raises, and unrecognized input falls back to an 'unknown'/'low' record.
"""

import logging
from typing import Any, Callable, Optional, Tuple

from clubadmin.domain.models.errors import (
    ClassifiedError, ErrorCategory, ErrorRecord, Severity,
)

logger = logging.getLogger(__name__)

NETWORK_ERROR_TYPES: Tuple[type, ...] = (ConnectionError, TimeoutError)

DEFAULT_MESSAGE = "An unexpected error occurred"

# --- Recovery suggestions ---
NETWORK_SUGGESTIONS = (
    "Check your internet connection",
    "Wait a moment and try again",
)
AUTHENTICATION_SUGGESTIONS = (
    "Please log in again",
    "Your session may have expired",
)
PERMISSION_SUGGESTIONS = (
    "Contact an administrator for access",
    "You may not have the required permissions",
)
NOT_FOUND_SUGGESTIONS = (
    "The requested resource may have been moved or deleted",
    "Check the identifier and try again",
)
VALIDATION_SUGGESTIONS = (
    "Please check your input and try again",
)
SERVER_SUGGESTIONS = (
    "This is a server issue - please try again later",
    "Contact support if the problem persists",
)
GENERIC_SUGGESTIONS = (
    "Try refreshing the page",
    "Contact support if the problem continues",
)
OFFLINE_SUGGESTIONS = (
    "Check your internet connection",
    "Try again when you're back online",
)


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return ""


def _extract_message(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, BaseException):
        return _safe_str(raw)
    message = getattr(raw, "message", None) if not isinstance(raw, dict) else raw.get("message")
    if isinstance(message, str):
        return message
    return _safe_str(raw)


def _extract_status(raw: Any) -> Optional[int]:
    for attr in ("status", "status_code"):
        try:
            value = raw.get(attr) if isinstance(raw, dict) else getattr(raw, attr, None)
        except Exception:
            return None
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _is_network_type(raw: Any, status: Optional[int]) -> bool:
    if isinstance(raw, NETWORK_ERROR_TYPES):
        return True
    if isinstance(raw, BaseException) and type(raw).__name__.endswith("NetworkError"):
        return True
    return status == 429 # rate limited, transient like a network hiccup


def _mentions(text: str, *needles: str) -> bool:
    return any(needle in text for needle in needles)


def classify(raw: Any, is_online: bool = True) -> ErrorRecord:
    """Classifies a raw failure into an ErrorRecord.

    Rules are checked in order; the first match wins:
    network (fetch/network or network-type error), authentication (401),
    permission (403), not found (404, reported as unknown), validation (400),
    server (any 5xx status, or a message mentioning 500/server), unknown.

    Args:
        raw: Anything that was raised or reported as a failure.
        is_online: Current connectivity; when False the suggestions are
            replaced with connectivity-first guidance.

    Returns:
        An immutable ErrorRecord.
    """
    try:
        record = _classify(raw)
    except Exception as e:
        # Last-resort guard so classification stays total
        logger.error(f"Error classification failed for {type(raw).__name__}: {e}", exc_info=True)
        record = ErrorRecord(ErrorCategory.UNKNOWN, Severity.LOW, DEFAULT_MESSAGE, GENERIC_SUGGESTIONS)

    if not is_online:
        record = ErrorRecord(
            category=record.category,
            severity=record.severity,
            message=record.message,
            suggestions=OFFLINE_SUGGESTIONS,
            support_id=record.support_id,
            not_found=record.not_found,
        )
    return record


def _classify(raw: Any) -> ErrorRecord:
    if isinstance(raw, ClassifiedError):
        return raw.record
    if isinstance(raw, ErrorRecord):
        return raw

    message = _extract_message(raw).strip()
    status = _extract_status(raw)
    text = message.lower()
    if status is not None:
        text = f"{text} {status}"
    display_message = message or DEFAULT_MESSAGE

    if _mentions(text, "fetch", "network") or _is_network_type(raw, status):
        return ErrorRecord(ErrorCategory.NETWORK, Severity.MEDIUM, display_message, NETWORK_SUGGESTIONS)
    if _mentions(text, "401", "unauthorized"):
        return ErrorRecord(ErrorCategory.AUTHENTICATION, Severity.HIGH, display_message, AUTHENTICATION_SUGGESTIONS)
    if _mentions(text, "403", "forbidden"):
        return ErrorRecord(ErrorCategory.PERMISSION, Severity.HIGH, display_message, PERMISSION_SUGGESTIONS)
    if _mentions(text, "404"):
        return ErrorRecord(ErrorCategory.UNKNOWN, Severity.LOW, display_message, NOT_FOUND_SUGGESTIONS, not_found=True)
    if _mentions(text, "400"):
        return ErrorRecord(ErrorCategory.VALIDATION, Severity.LOW, display_message, VALIDATION_SUGGESTIONS)
    if (status is not None and 500 <= status < 600) or _mentions(text, "500", "server"):
        return ErrorRecord(ErrorCategory.SERVER, Severity.MEDIUM, display_message, SERVER_SUGGESTIONS)
    return ErrorRecord(ErrorCategory.UNKNOWN, Severity.LOW, display_message, GENERIC_SUGGESTIONS)


class ErrorClassifier:
    """Binds classify() to a connectivity source.

    Args:
        is_online: Zero-argument callable returning current connectivity.
    """

    def __init__(self, is_online: Optional[Callable[[], bool]] = None):
        self._is_online = is_online or (lambda: True)

    def classify(self, raw: Any) -> ErrorRecord:
        return classify(raw, is_online=self._is_online())

    __call__ = classify
