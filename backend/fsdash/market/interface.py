"""Abstract interface for the upstream broker."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import Candle, Holding, Instrument, Quote, StrikeRow, UpstreamTokens


class UpstreamClient(ABC):
    """Contract for broker adapters.

    Every call is a single request/response: no retries, no caching, and no
    writes to shared state. Data calls raise FetchFailure on any failure;
    ``login`` raises AuthFailure. Retry and fallback policy belong to the
    caller.

    Lifecycle:
        client = create_upstream_client(settings, generator)
        tokens = await client.login(client_id, mpin, totp)
        quote = await client.fetch_market_data(tokens, "NSE", "NIFTY", "99926000")
        # ...
        await client.logout(tokens, client_id)
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """True once a login has succeeded and no logout followed it."""

    @abstractmethod
    async def login(self, client_id: str, secret: str, totp: str) -> UpstreamTokens:
        """Authenticate and return the issued tokens.

        Network and timeout errors surface as ``AuthFailure("network")``;
        upstream rejections as ``AuthFailure(<upstream message>)``.
        """

    @abstractmethod
    async def logout(self, tokens: UpstreamTokens, client_id: str) -> None:
        """Terminate the upstream session. Best-effort; never raises FetchFailure."""

    @abstractmethod
    async def fetch_market_data(
        self, tokens: UpstreamTokens | None, exchange: str, symbol: str, token: str
    ) -> Quote:
        """Last traded price and change for one instrument."""

    @abstractmethod
    async def fetch_holdings(self, tokens: UpstreamTokens | None) -> list[Holding]:
        """Long-term holdings for the logged-in client."""

    @abstractmethod
    async def fetch_positions(self, tokens: UpstreamTokens | None) -> list[dict]:
        """Open intraday/derivative positions, as reported by the broker."""

    @abstractmethod
    async def search_instruments(
        self, tokens: UpstreamTokens | None, exchange: str, text: str
    ) -> list[Instrument]:
        """Instruments on ``exchange`` whose symbol matches ``text``."""

    @abstractmethod
    async def fetch_historical(
        self,
        tokens: UpstreamTokens | None,
        exchange: str,
        token: str,
        interval: str,
        from_: str,
        to: str,
    ) -> list[Candle]:
        """OHLCV candles for ``token`` between ``from_`` and ``to``."""

    @abstractmethod
    async def fetch_option_chain(
        self, tokens: UpstreamTokens | None, symbol: str, expiry: str
    ) -> list[StrikeRow]:
        """Option chain for ``symbol`` at ``expiry``.

        Brokers without a native option chain may raise FetchFailure; the
        fallback client synthesizes one in that case.
        """
