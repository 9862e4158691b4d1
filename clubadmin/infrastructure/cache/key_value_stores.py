"""Concrete key-value stores backing the snapshot cache.

InMemoryKeyValueStore keeps records in a dict (tests, ephemeral sessions).
DiskKeyValueStore persists them with diskcache so that snapshots survive
between CLI invocations, the way browser local storage survives reloads.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

import diskcache as dc

from clubadmin.domain.interfaces.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def clear(self) -> None:
        self._data.clear()


class DiskKeyValueStore(KeyValueStore):
    """diskcache-backed store. Records never expire at this level."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        # timeout: seconds to wait on the sqlite lock
        self._cache = dc.Cache(str(self.directory), timeout=1)
        logger.info(f"Initialized disk key-value store at: {self._cache.directory}")

    def get(self, key: str) -> Optional[Any]:
        try:
            return self._cache.get(key, default=None)
        except dc.Timeout as e:
            logger.warning(f"Timed out reading '{key}' from disk store: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        self._cache.set(key, value)

    def delete(self, key: str) -> None:
        self._cache.delete(key)

    def keys(self) -> Iterator[str]:
        return iter(list(self._cache.iterkeys()))

    def clear(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        self._cache.close()
