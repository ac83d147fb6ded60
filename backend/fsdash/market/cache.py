"""Thread-safe in-memory data cache with independent, expiring spaces."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)


class CacheSpace(str, Enum):
    MARKET = "market"
    OPTION_CHAIN = "option_chain"
    PCR = "pcr"
    SENTIMENT = "sentiment"
    HISTORICAL = "historical"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    value: Any
    written_at: float  # Unix seconds


def historical_key(exchange: str, token: str, interval: str, from_: str, to: str) -> str:
    """Composite key for the HISTORICAL space."""
    return f"{exchange}:{token}:{interval}:{from_}:{to}"


def option_chain_key(symbol: str, expiry: str) -> str:
    return f"{symbol}_{expiry}"


class DataCache:
    """Thread-safe cache of the last value written per (space, key).

    Writers: FanoutScheduler ticks, cache-backed route handlers.
    Readers: the same, plus the connection gateway's subscribe snapshot.

    Every put overwrites (last write wins) and is stamped with the injected
    clock; ``sweep`` drops entries older than a TTL.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._spaces: dict[CacheSpace, dict[str, CacheEntry]] = {space: {} for space in CacheSpace}
        self._lock = Lock()

    def put(self, space: CacheSpace, key: str, value: Any) -> CacheEntry:
        """Store ``value`` under ``key``, replacing any previous entry."""
        with self._lock:
            entry = CacheEntry(key=key, value=value, written_at=self._clock())
            self._spaces[space][key] = entry
            return entry

    def get(self, space: CacheSpace, key: str) -> Any | None:
        """Latest value for ``key``, or None on a miss."""
        entry = self.get_entry(space, key)
        return entry.value if entry else None

    def get_entry(self, space: CacheSpace, key: str) -> CacheEntry | None:
        with self._lock:
            return self._spaces[space].get(key)

    def get_all(self, space: CacheSpace) -> dict[str, Any]:
        """Snapshot of all values in a space. Returns a shallow copy."""
        with self._lock:
            return {key: entry.value for key, entry in self._spaces[space].items()}

    def remove(self, space: CacheSpace, key: str) -> None:
        with self._lock:
            self._spaces[space].pop(key, None)

    def sweep(self, space: CacheSpace, ttl: float) -> int:
        """Remove entries written more than ``ttl`` seconds ago. Returns the count."""
        with self._lock:
            cutoff = self._clock() - ttl
            entries = self._spaces[space]
            stale = [key for key, entry in entries.items() if entry.written_at < cutoff]
            for key in stale:
                del entries[key]
        if stale:
            logger.debug("Swept %d stale entries from %s cache", len(stale), space.value)
        return len(stale)

    def sweep_all(self, ttl: float) -> int:
        return sum(self.sweep(space, ttl) for space in CacheSpace)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._spaces.values())
