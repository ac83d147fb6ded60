"""Session and per-client state."""

from .store import Session, SessionStore
from .watchlist import Watchlist, WatchlistItem, WatchlistStore

__all__ = ["Session", "SessionStore", "Watchlist", "WatchlistItem", "WatchlistStore"]
