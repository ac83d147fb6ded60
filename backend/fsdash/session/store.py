"""In-memory store of authenticated upstream sessions."""

from __future__ import annotations

import itertools
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from ..errors import InvalidSession, SessionExpired
from ..market.models import UpstreamTokens

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT = 8 * 3600.0  # one trading day


@dataclass(frozen=True, slots=True)
class Session:
    id: str
    tokens: UpstreamTokens
    client_id: str
    origin: str
    created_at: float  # Unix seconds


class SessionStore:
    """Thread-safe map of session id -> Session with a fixed lifetime.

    Sessions expire ``session_timeout`` seconds after creation, regardless of
    activity. Expired entries are dropped lazily by ``validate`` and eagerly by
    ``sweep_expired``. Ids are never handed out twice.
    """

    def __init__(
        self,
        session_timeout: float = DEFAULT_SESSION_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._timeout = session_timeout
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._sequence = itertools.count(1)
        self._lock = Lock()

    @property
    def session_timeout(self) -> float:
        return self._timeout

    def create(self, tokens: UpstreamTokens, client_id: str, origin: str) -> str:
        """Store a new session and return its id."""
        with self._lock:
            now = self._clock()
            session_id = self._new_id(now)
            self._sessions[session_id] = Session(
                id=session_id,
                tokens=tokens,
                client_id=client_id,
                origin=origin,
                created_at=now,
            )
        logger.info("Session created for client %s from %s", client_id, origin)
        return session_id

    def get(self, session_id: str) -> Session:
        """Return the session without checking expiry. Raises InvalidSession."""
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise InvalidSession(session_id)
        return session

    def validate(self, session_id: str) -> Session:
        """Return the session if it is still within its lifetime.

        Raises InvalidSession if unknown, SessionExpired (after deleting the
        entry) if it outlived the timeout.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise InvalidSession(session_id)
            if self._is_expired(session, self._clock()):
                del self._sessions[session_id]
                expired = True
            else:
                expired = False
        if expired:
            logger.info("Session expired for client %s", session.client_id)
            raise SessionExpired(session_id)
        return session

    def destroy(self, session_id: str) -> None:
        """Remove a session. No-op if absent."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info("Session destroyed for client %s", session.client_id)

    def sweep_expired(self) -> int:
        """Remove every expired session. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [sid for sid, s in self._sessions.items() if self._is_expired(s, now)]
            for sid in stale:
                del self._sessions[sid]
        if stale:
            logger.info("Swept %d expired sessions", len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    # --- Internals ---

    def _is_expired(self, session: Session, now: float) -> bool:
        return now - session.created_at > self._timeout

    def _new_id(self, now: float) -> str:
        """Millisecond timestamp, per-store sequence number, random suffix.

        The sequence number alone keeps ids unique for the store's lifetime.
        Caller holds the lock.
        """
        return f"sess_{int(now * 1000):x}_{next(self._sequence):x}_{secrets.token_urlsafe(9)}"
