"""Upstream client decorator that degrades to synthetic data."""

from __future__ import annotations

import logging

from ..errors import AuthFailure, FetchFailure
from .interface import UpstreamClient
from .models import Candle, Holding, Instrument, Quote, StrikeRow, UpstreamTokens
from .seed_data import SYMBOL_TOKENS
from .synthetic import SyntheticDataGenerator

logger = logging.getLogger(__name__)


class FallbackUpstreamClient(UpstreamClient):
    """Wraps an optional real UpstreamClient with a SyntheticDataGenerator.

    Data calls go to the wrapped client when there is one and the caller has
    tokens; a FetchFailure (or no client / no tokens) yields synthetic data for
    that call only. Nothing is remembered between calls, so the next call tries
    the upstream again. Logins are never faked.
    """

    def __init__(self, inner: UpstreamClient | None, generator: SyntheticDataGenerator) -> None:
        self._inner = inner
        self._generator = generator

    @property
    def inner(self) -> UpstreamClient | None:
        return self._inner

    @property
    def is_connected(self) -> bool:
        return self._inner is not None and self._inner.is_connected

    async def login(self, client_id: str, secret: str, totp: str) -> UpstreamTokens:
        if self._inner is None:
            raise AuthFailure("upstream not configured")
        return await self._inner.login(client_id, secret, totp)

    async def logout(self, tokens: UpstreamTokens, client_id: str) -> None:
        if self._inner is not None:
            await self._inner.logout(tokens, client_id)

    async def fetch_market_data(
        self, tokens: UpstreamTokens | None, exchange: str, symbol: str, token: str
    ) -> Quote:
        if self._usable(tokens):
            try:
                return await self._inner.fetch_market_data(tokens, exchange, symbol, token)
            except FetchFailure as e:
                self._log_fallback(symbol, e)
        return self._generator.realtime_quote(symbol)

    async def fetch_holdings(self, tokens: UpstreamTokens | None) -> list[Holding]:
        if self._usable(tokens):
            try:
                return await self._inner.fetch_holdings(tokens)
            except FetchFailure as e:
                self._log_fallback("holdings", e)
        return self._generator.demo_holdings()

    async def fetch_positions(self, tokens: UpstreamTokens | None) -> list[dict]:
        if self._usable(tokens):
            try:
                return await self._inner.fetch_positions(tokens)
            except FetchFailure as e:
                self._log_fallback("positions", e)
        return []

    async def search_instruments(
        self, tokens: UpstreamTokens | None, exchange: str, text: str
    ) -> list[Instrument]:
        if self._usable(tokens):
            try:
                return await self._inner.search_instruments(tokens, exchange, text)
            except FetchFailure as e:
                self._log_fallback(text, e)
        return self._generator.search(text, exchange)

    async def fetch_historical(
        self,
        tokens: UpstreamTokens | None,
        exchange: str,
        token: str,
        interval: str,
        from_: str,
        to: str,
    ) -> list[Candle]:
        candles, _ = await self.fetch_historical_sourced(tokens, exchange, token, interval, from_, to)
        return candles

    async def fetch_historical_sourced(
        self,
        tokens: UpstreamTokens | None,
        exchange: str,
        token: str,
        interval: str,
        from_: str,
        to: str,
    ) -> tuple[list[Candle], bool]:
        """Like ``fetch_historical``, plus whether the candles came from the upstream.

        Callers that keep results beyond this call must only keep upstream ones.
        """
        if self._usable(tokens):
            try:
                candles = await self._inner.fetch_historical(tokens, exchange, token, interval, from_, to)
                return candles, True
            except FetchFailure as e:
                self._log_fallback(token, e)
        return self._generator.candles(_symbol_for_token(token), interval), False

    async def fetch_option_chain(
        self, tokens: UpstreamTokens | None, symbol: str, expiry: str
    ) -> list[StrikeRow]:
        if self._usable(tokens):
            try:
                chain = await self._inner.fetch_option_chain(tokens, symbol, expiry)
                if chain:
                    return chain
            except FetchFailure as e:
                self._log_fallback(symbol, e)
        return self._generator.option_chain(symbol)

    # --- Internal ---

    def _usable(self, tokens: UpstreamTokens | None) -> bool:
        return self._inner is not None and tokens is not None

    @staticmethod
    def _log_fallback(item: str, error: FetchFailure) -> None:
        logger.debug("Upstream %s failed for %s, using synthetic data: %s", error.operation, item, error.reason)


def _symbol_for_token(token: str) -> str:
    for symbol, known in SYMBOL_TOKENS.items():
        if known == token:
            return symbol
    return token
