"""Stale snapshot cache.

Keeps the last-known-good result of read operations so they can be shown
while offline. Entries are time-boxed: once older than their TTL they are
still returned, but flagged as stale. Physical storage is delegated to a
KeyValueStore under "offline-cache-<key>" as {"data", "timestamp", "ttl_ms"}.
"""

import logging
import time
from typing import Any, Callable, Iterator, Mapping, Optional

from clubadmin.domain.interfaces.key_value_store import KeyValueStore
from clubadmin.domain.models.common import CacheKey, STORAGE_KEY_PREFIX
from clubadmin.domain.models.operations import CacheEntry, Snapshot

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000 # 5 minutes


def _now_ms() -> float:
    return time.time() * 1000


class StaleSnapshotCache:
    """Staleness policy layered over a KeyValueStore."""

    def __init__(
        self,
        store: KeyValueStore,
        default_ttl_ms: float = DEFAULT_TTL_MS,
        clock: Callable[[], float] = _now_ms,
    ):
        """Initializes the cache.

        Args:
            store: Backing key-value store.
            default_ttl_ms: TTL used when write() is not given one.
            clock: Returns the current time in epoch milliseconds.
        """
        self.store = store
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock
        logger.debug(f"StaleSnapshotCache initialized (default ttl={default_ttl_ms}ms, store={type(store).__name__})")

    @staticmethod
    def storage_key(key: str) -> str:
        return f"{STORAGE_KEY_PREFIX}{key}"

    def write(self, key: CacheKey, payload: Any, ttl_ms: Optional[float] = None) -> CacheEntry:
        """Stores payload under key, replacing any prior entry (last writer wins)."""
        entry = CacheEntry(
            key=key,
            payload=payload,
            cached_at=self._clock(),
            ttl_ms=self.default_ttl_ms if ttl_ms is None else ttl_ms,
        )
        self.store.set(self.storage_key(key), {
            "data": entry.payload,
            "timestamp": entry.cached_at,
            "ttl_ms": entry.ttl_ms,
        })
        logger.debug(f"Stored snapshot: key={key}, ttl={entry.ttl_ms}ms")
        return entry

    def entry(self, key: CacheKey) -> Optional[CacheEntry]:
        """Returns the raw entry for key, or None if absent or unreadable."""
        raw = self.store.get(self.storage_key(key))
        if raw is None:
            return None
        if not isinstance(raw, Mapping) or "data" not in raw or "timestamp" not in raw:
            logger.warning(f"Ignoring malformed snapshot record for key: {key}")
            return None
        try:
            cached_at = float(raw["timestamp"])
            ttl_ms = float(raw.get("ttl_ms", self.default_ttl_ms))
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring snapshot with invalid timestamp for key {key}: {e}")
            return None
        return CacheEntry(key=key, payload=raw["data"], cached_at=cached_at, ttl_ms=ttl_ms)

    def read(self, key: CacheKey) -> Optional[Snapshot]:
        """Pure lookup: the cached payload with its staleness flag, or None."""
        entry = self.entry(key)
        if entry is None:
            logger.debug(f"Snapshot miss for key: {key}")
            return None
        is_stale = entry.is_stale(self._clock())
        logger.debug(f"Snapshot hit for key: {key} (stale={is_stale})")
        return Snapshot(payload=entry.payload, is_stale=is_stale, cached_at=entry.cached_at)

    def age_ms(self, key: CacheKey) -> Optional[float]:
        entry = self.entry(key)
        return None if entry is None else self._clock() - entry.cached_at

    def invalidate(self, key: CacheKey) -> None:
        self.store.delete(self.storage_key(key))
        logger.debug(f"Invalidated snapshot: key={key}")

    def keys(self) -> Iterator[CacheKey]:
        """Iterates over the cache keys (without the storage prefix)."""
        for storage_key in self.store.keys():
            if storage_key.startswith(STORAGE_KEY_PREFIX):
                yield CacheKey(storage_key[len(STORAGE_KEY_PREFIX):])

    def clear(self) -> None:
        for key in list(self.keys()):
            self.invalidate(key)
        logger.info("Cleared snapshot cache.")
