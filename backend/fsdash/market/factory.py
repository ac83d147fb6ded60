"""Factory for creating the upstream client."""

from __future__ import annotations

import logging

from ..config import Settings
from .fallback import FallbackUpstreamClient
from .synthetic import SyntheticDataGenerator

logger = logging.getLogger(__name__)


def create_upstream_client(
    settings: Settings, generator: SyntheticDataGenerator
) -> FallbackUpstreamClient:
    """Create the upstream client based on configuration.

    - ANGEL_API_KEY set and non-empty → AngelOneClient behind the fallback
    - Otherwise → fallback client with nothing behind it (synthetic data only)

    Returns a client that is not logged in yet.
    """
    if settings.upstream_enabled:
        from .angel_client import AngelOneClient

        logger.info("Upstream: Angel One SmartAPI (synthetic fallback on failure)")
        return FallbackUpstreamClient(AngelOneClient(api_key=settings.angel_api_key), generator)

    logger.info("Upstream: synthetic data only")
    return FallbackUpstreamClient(None, generator)
