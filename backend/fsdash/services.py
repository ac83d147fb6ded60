"""Wiring of the stores, upstream client and fan-out for one application."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import Settings
from .errors import AuthFailure
from .market.cache import DataCache
from .market.factory import create_upstream_client
from .market.fallback import FallbackUpstreamClient
from .market.models import UpstreamTokens
from .market.synthetic import SyntheticDataGenerator
from .realtime.fanout import FanoutScheduler
from .realtime.gateway import ConnectionGateway
from .session.store import SessionStore
from .session.watchlist import WatchlistStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the routes and the lifespan need, built once per app.

    ``feed_tokens`` are the tokens of the server's own upstream login, used by
    the fan-out and by public market routes. None means synthetic data.
    """

    settings: Settings
    sessions: SessionStore
    cache: DataCache
    watchlists: WatchlistStore
    generator: SyntheticDataGenerator
    upstream: FallbackUpstreamClient
    feed_tokens: UpstreamTokens | None = None
    gateway: ConnectionGateway = field(init=False)
    scheduler: FanoutScheduler = field(init=False)

    def __post_init__(self) -> None:
        settings = self.settings
        self.gateway = ConnectionGateway(cache=self.cache, upstream_connected=lambda: self.feed_connected)
        self.scheduler = FanoutScheduler(
            gateway=self.gateway,
            upstream=self.upstream,
            cache=self.cache,
            generator=self.generator,
            symbols=settings.symbols,
            feed_tokens=lambda: self.feed_tokens,
            sessions=self.sessions,
            market_interval=settings.market_interval,
            pcr_interval=settings.pcr_interval,
            sentiment_interval=settings.sentiment_interval,
            heartbeat_interval=settings.heartbeat_interval,
            sweep_interval=settings.sweep_interval,
            cache_ttl=settings.cache_ttl,
        )

    @property
    def feed_connected(self) -> bool:
        """True while the server's own upstream login is in effect."""
        return self.feed_tokens is not None

    @classmethod
    def build(
        cls,
        settings: Settings,
        upstream: FallbackUpstreamClient | None = None,
        generator: SyntheticDataGenerator | None = None,
    ) -> Services:
        generator = generator or SyntheticDataGenerator()
        upstream = upstream or create_upstream_client(settings, generator)
        return cls(
            settings=settings,
            sessions=SessionStore(session_timeout=settings.session_timeout),
            cache=DataCache(),
            watchlists=WatchlistStore(),
            generator=generator,
            upstream=upstream,
        )

    async def login_feed(self) -> bool:
        """Log the server itself in with the configured credentials.

        Failure is logged and leaves the fan-out on synthetic data.
        """
        settings = self.settings
        if not settings.upstream_enabled:
            logger.info("No upstream credentials configured, using synthetic data")
            return False
        try:
            self.feed_tokens = await self.upstream.login(
                settings.angel_client_code, settings.angel_mpin, settings.angel_totp
            )
        except AuthFailure as e:
            logger.warning("Feed login failed (%s), using synthetic data", e.reason)
            return False
        logger.info("Feed login successful for %s", settings.angel_client_code)
        return True

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.gateway.close_all()
        self.sessions.clear()
