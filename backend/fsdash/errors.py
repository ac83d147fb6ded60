"""Error taxonomy shared by the upstream, session and real-time layers."""

from __future__ import annotations


class FsDashError(Exception):
    """Base class for all application errors."""


class AuthFailure(FsDashError):
    """Upstream login was rejected, or the network failed during login."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class FetchFailure(FsDashError):
    """An upstream data call failed."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"{operation}: {reason}")
        self.operation = operation
        self.reason = reason


class SessionError(FsDashError):
    """Session lookup failed."""


class InvalidSession(SessionError):
    """No session exists for the given identifier."""


class SessionExpired(SessionError):
    """The session existed but outlived the session timeout."""


class MalformedMessage(FsDashError):
    """Inbound connection payload was not parseable or missed required fields."""


class WatchlistNotFound(FsDashError):
    """No watchlist with that id is visible to the requesting client."""


class ConfigError(FsDashError):
    """Required configuration is missing or invalid."""
