"""Per-client watchlists."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from threading import Lock

from ..errors import WatchlistNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WatchlistItem:
    token: str
    exchange: str
    symbol: str

    def to_dict(self) -> dict:
        return {"token": self.token, "exchange": self.exchange, "symbol": self.symbol}


@dataclass(slots=True)
class Watchlist:
    id: str
    owner: str
    name: str
    items: list[WatchlistItem] = field(default_factory=list)
    created_at: float = 0.0
    updated_at: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class WatchlistStore:
    """Watchlists keyed by client identity, not by session.

    A client only ever sees its own lists: looking up another client's list
    raises WatchlistNotFound exactly as if it did not exist.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lists: dict[str, dict[str, Watchlist]] = {}
        self._lock = Lock()

    def create(self, owner: str, name: str, items: Iterable[WatchlistItem] = ()) -> Watchlist:
        now = self._clock()
        watchlist = Watchlist(
            id=uuid.uuid4().hex,
            owner=owner,
            name=name,
            items=_dedupe(items),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._lists.setdefault(owner, {})[watchlist.id] = watchlist
        logger.info("Watchlist %r created for client %s", name, owner)
        return watchlist

    def for_client(self, owner: str) -> list[Watchlist]:
        with self._lock:
            return list(self._lists.get(owner, {}).values())

    def get(self, owner: str, watchlist_id: str) -> Watchlist:
        with self._lock:
            return self._get_locked(owner, watchlist_id)

    def add_item(self, owner: str, watchlist_id: str, item: WatchlistItem) -> Watchlist:
        """Append ``item`` unless a symbol with the same token is already listed."""
        with self._lock:
            watchlist = self._get_locked(owner, watchlist_id)
            if all(existing.token != item.token for existing in watchlist.items):
                watchlist.items.append(item)
                watchlist.updated_at = self._clock()
            return watchlist

    def remove_item(self, owner: str, watchlist_id: str, token: str) -> Watchlist:
        with self._lock:
            watchlist = self._get_locked(owner, watchlist_id)
            watchlist.items = [item for item in watchlist.items if item.token != token]
            watchlist.updated_at = self._clock()
            return watchlist

    def replace(
        self,
        owner: str,
        watchlist_id: str,
        items: Iterable[WatchlistItem],
        name: str | None = None,
    ) -> Watchlist:
        with self._lock:
            watchlist = self._get_locked(owner, watchlist_id)
            watchlist.items = _dedupe(items)
            if name is not None:
                watchlist.name = name
            watchlist.updated_at = self._clock()
            return watchlist

    def delete(self, owner: str, watchlist_id: str) -> None:
        with self._lock:
            self._get_locked(owner, watchlist_id)
            del self._lists[owner][watchlist_id]
        logger.info("Watchlist %s deleted for client %s", watchlist_id, owner)

    def _get_locked(self, owner: str, watchlist_id: str) -> Watchlist:
        watchlist = self._lists.get(owner, {}).get(watchlist_id)
        if watchlist is None:
            raise WatchlistNotFound(watchlist_id)
        return watchlist


def _dedupe(items: Iterable[WatchlistItem]) -> list[WatchlistItem]:
    seen: set[str] = set()
    result: list[WatchlistItem] = []
    for item in items:
        if item.token not in seen:
            seen.add(item.token)
            result.append(item)
    return result
