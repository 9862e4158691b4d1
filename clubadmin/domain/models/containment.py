"""Models produced by the render-failure containment boundary."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Tuple, TypeVar, Union
from urllib.parse import quote

from .common import ErrorId
from .errors import ErrorCategory, ErrorRecord, Severity

T = TypeVar("T")


class FallbackAction(str, Enum):
    RETRY = "retry"
    RELOAD = "reload"
    GO_BACK = "go_back"
    GO_HOME = "go_home"
    REPORT = "report"


@dataclass(frozen=True)
class ContainmentRecord:
    """Created when a boundary catches a render failure."""
    error_id: ErrorId
    category: ErrorCategory
    severity: Severity
    component_context: str
    occurred_at: float


@dataclass(frozen=True)
class FallbackView:
    """Everything the presentation layer needs to draw a fallback card."""
    record: ContainmentRecord
    error: ErrorRecord
    actions: Tuple[FallbackAction, ...] = (
        FallbackAction.RETRY,
        FallbackAction.RELOAD,
        FallbackAction.GO_BACK,
        FallbackAction.GO_HOME,
    )


@dataclass(frozen=True)
class SupportReport:
    recipient: str
    subject: str
    body: str

    def mailto(self) -> str:
        return f"mailto:{self.recipient}?subject={quote(self.subject)}&body={quote(self.body)}"


# --- Render result variant ---

@dataclass(frozen=True)
class Rendered(Generic[T]):
    value: T


@dataclass(frozen=True)
class Fallback:
    view: FallbackView


RenderResult = Union[Rendered, Fallback]
