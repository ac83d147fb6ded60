"""Request dependencies shared by the HTTP routes."""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Header, HTTPException, status

from ..errors import InvalidSession, SessionExpired
from ..session.store import Session, SessionStore

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"


def session_dependency(sessions: SessionStore) -> Callable[..., Session]:
    """Build a dependency that resolves the ``X-Session-Id`` header to a live Session."""

    def current_session(
        session_id: str | None = Header(default=None, alias=SESSION_HEADER),
    ) -> Session:
        if not session_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Session id header was not provided",
            )
        try:
            return sessions.validate(session_id)
        except SessionExpired:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired"
            ) from None
        except InvalidSession:
            logger.warning("Rejected unknown session id")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session"
            ) from None

    return current_session
