"""Interface for the persistent key-value store behind the snapshot cache.

The store only persists raw records; staleness policy lives in the
StaleSnapshotCache layered on top.
"""

import abc
from typing import Any, Iterator, Optional


class KeyValueStore(abc.ABC):
    """Abstract Base Class for physical snapshot storage."""

    @abc.abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Retrieves the raw record stored under key.

        Returns:
            The stored record, or None if absent.
        """
        pass

    @abc.abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Stores a record, replacing any prior value for key."""
        pass

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Deletes the record stored under key, if any."""
        pass

    @abc.abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterates over the stored keys."""
        pass

    def clear(self) -> None:
        """Deletes every record."""
        for key in list(self.keys()):
            self.delete(key)
