"""HTTP routes calling into the session, cache and upstream layers."""

from .deps import SESSION_HEADER, session_dependency
from .routes import create_api_router

__all__ = ["SESSION_HEADER", "create_api_router", "session_dependency"]
