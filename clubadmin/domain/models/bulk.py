"""Bulk action outcome models.

A BulkOutcome partitions the input ids of one batch call into the ids the
remote system accepted and the ids it rejected, each with its own error.
Every input id ends up in exactly one of the two.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

NO_RESULT_ERROR = "No result reported"


@dataclass(frozen=True)
class BulkFailure:
    id: str
    error: str


@dataclass(frozen=True)
class BulkProgress:
    processed: int
    total: int

    @property
    def done(self) -> bool:
        return self.processed >= self.total


@dataclass(frozen=True)
class BulkOutcome:
    successful_ids: Tuple[str, ...]
    failed: Tuple[BulkFailure, ...]

    @property
    def failed_ids(self) -> Tuple[str, ...]:
        return tuple(f.id for f in self.failed)

    @property
    def total(self) -> int:
        return len(self.successful_ids) + len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def all_failed(self) -> bool:
        return not self.successful_ids and bool(self.failed)

    @classmethod
    def from_response(cls, input_ids: Sequence[str], response: Any) -> "BulkOutcome":
        """Normalizes a remote bulk response against the ids that were sent.

        Accepts either a BulkOutcome or a mapping shaped like
        ``{"successful": [...], "failed": [{"id": ..., "error": ...}]}``.
        Ids missing from the response are failed with NO_RESULT_ERROR, ids
        reported both ways count as failed, and ids never sent are dropped.
        """
        if isinstance(response, BulkOutcome):
            successful: Iterable[Any] = response.successful_ids
            failed_items: Iterable[Any] = response.failed
        elif isinstance(response, Mapping):
            successful = response.get("successful") or response.get("successful_ids") or []
            failed_items = response.get("failed") or []
        else:
            raise ValueError(f"Unrecognized bulk response of type {type(response).__name__}")

        aggregator = BulkAggregator(input_ids)
        for item in failed_items:
            item_id, error = _failure_fields(item)
            aggregator.record(item_id, error)
        for item_id in successful:
            aggregator.record(str(item_id), None)
        return aggregator.outcome()


def _failure_fields(item: Any) -> Tuple[str, str]:
    if isinstance(item, BulkFailure):
        return item.id, item.error
    if isinstance(item, Mapping):
        return str(item.get("id")), str(item.get("error") or "Unknown error")
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return str(item[0]), str(item[1])
    raise ValueError(f"Unrecognized bulk failure entry: {item!r}")


class BulkAggregator:
    """Collects per-item results for a fixed set of input ids.

    A failure recorded for an id is never overwritten by a later success.
    """

    def __init__(self, input_ids: Sequence[str]):
        # dict keeps first-seen order and drops duplicates
        self._order: List[str] = list(dict.fromkeys(str(i) for i in input_ids))
        self._results: Dict[str, Optional[str]] = {}

    @property
    def total(self) -> int:
        return len(self._order)

    @property
    def processed(self) -> int:
        return len(self._results)

    def record(self, item_id: str, error: Optional[str]) -> bool:
        """Records one item result. Returns True if the id was newly processed."""
        if item_id not in self._order:
            logger.warning(f"Ignoring bulk result for id not in request: {item_id}")
            return False
        is_new = item_id not in self._results
        previous = self._results.get(item_id)
        if error is not None:
            if not is_new and previous is None:
                logger.warning(f"Id {item_id} reported as both successful and failed; treating as failed")
            self._results[item_id] = error
        elif is_new:
            self._results[item_id] = None
        elif previous is not None:
            logger.warning(f"Id {item_id} reported as both successful and failed; treating as failed")
        return is_new

    def outcome(self) -> BulkOutcome:
        successful: List[str] = []
        failed: List[BulkFailure] = []
        for item_id in self._order:
            if item_id not in self._results:
                failed.append(BulkFailure(item_id, NO_RESULT_ERROR))
            elif self._results[item_id] is None:
                successful.append(item_id)
            else:
                failed.append(BulkFailure(item_id, self._results[item_id]))
        return BulkOutcome(tuple(successful), tuple(failed))
