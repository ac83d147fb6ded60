"""Angel One SmartAPI client for real market data."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from ..errors import AuthFailure, FetchFailure
from .interface import UpstreamClient
from .models import Candle, Holding, Instrument, Quote, StrikeRow, UpstreamTokens

logger = logging.getLogger(__name__)


class AngelOneClient(UpstreamClient):
    """UpstreamClient backed by the Angel One SmartAPI Python SDK.

    The SDK is synchronous and keeps its tokens on the connection object, so
    each call builds a connection for the caller's tokens and runs it in a
    worker thread. The only state kept here is the last issued token set.

    SmartAPI has no option-chain endpoint; ``fetch_option_chain`` always
    raises FetchFailure and the fallback client synthesizes the chain.
    """

    def __init__(self, api_key: str, timeout: float = 7.0) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self.last_tokens: UpstreamTokens | None = None

    @property
    def is_connected(self) -> bool:
        return self.last_tokens is not None

    async def login(self, client_id: str, secret: str, totp: str) -> UpstreamTokens:
        try:
            result = await asyncio.to_thread(self._login_sync, client_id, secret, totp)
        except Exception as e:
            logger.warning("SmartAPI login for %s failed: %s", client_id, e)
            raise AuthFailure("network") from e

        if not result or not result.get("status"):
            message = (result or {}).get("message") or "login rejected"
            logger.warning("SmartAPI rejected login for %s: %s", client_id, message)
            raise AuthFailure(message)

        data = result.get("data") or {}
        tokens = UpstreamTokens(
            auth_token=_strip_bearer(data.get("jwtToken", "")),
            refresh_token=data.get("refreshToken", ""),
            feed_token=data.get("feedToken", ""),
        )
        self.last_tokens = tokens
        logger.info("SmartAPI login successful for %s", client_id)
        return tokens

    async def logout(self, tokens: UpstreamTokens, client_id: str) -> None:
        try:
            await asyncio.to_thread(lambda: self._connect(tokens).terminateSession(client_id))
        except Exception as e:
            logger.warning("SmartAPI logout for %s failed: %s", client_id, e)
        if self.last_tokens == tokens:
            self.last_tokens = None

    async def fetch_market_data(
        self, tokens: UpstreamTokens | None, exchange: str, symbol: str, token: str
    ) -> Quote:
        data = await self._call("ltpData", tokens, exchange, symbol, token)
        try:
            ltp = float(data["ltp"])
            prev_close = float(data.get("close") or ltp)
        except (KeyError, TypeError, ValueError) as e:
            raise FetchFailure("ltpData", f"malformed quote for {symbol}: {e}") from e

        change = ltp - prev_close
        return Quote(
            symbol=symbol,
            price=round(ltp, 2),
            change=round(change, 2),
            change_percent=round(change / prev_close * 100, 2) if prev_close else 0.0,
            volume=int(data.get("volume") or 0),
            timestamp=time.time(),
        )

    async def fetch_holdings(self, tokens: UpstreamTokens | None) -> list[Holding]:
        rows = await self._call("holding", tokens) or []
        holdings: list[Holding] = []
        for row in rows:
            try:
                holdings.append(
                    Holding(
                        symbol=row["tradingsymbol"],
                        quantity=int(row["quantity"]),
                        avg_price=float(row["averageprice"]),
                        ltp=float(row["ltp"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping holding %s: %s", row.get("tradingsymbol", "???"), e)
        return holdings

    async def fetch_positions(self, tokens: UpstreamTokens | None) -> list[dict]:
        return list(await self._call("position", tokens) or [])

    async def search_instruments(
        self, tokens: UpstreamTokens | None, exchange: str, text: str
    ) -> list[Instrument]:
        rows = await self._call("searchScrip", tokens, exchange, text) or []
        return [
            Instrument(
                symbol=row.get("tradingsymbol", ""),
                token=str(row.get("symboltoken", "")),
                exchange=row.get("exchange", exchange),
            )
            for row in rows
        ]

    async def fetch_historical(
        self,
        tokens: UpstreamTokens | None,
        exchange: str,
        token: str,
        interval: str,
        from_: str,
        to: str,
    ) -> list[Candle]:
        params = {
            "exchange": exchange,
            "symboltoken": token,
            "interval": interval,
            "fromdate": from_,
            "todate": to,
        }
        rows = await self._call("getCandleData", tokens, params) or []
        try:
            return [
                Candle(
                    timestamp=str(ts),
                    open=float(o),
                    high=float(h),
                    low=float(lo),
                    close=float(c),
                    volume=int(v),
                )
                for ts, o, h, lo, c, v in rows
            ]
        except (TypeError, ValueError) as e:
            raise FetchFailure("getCandleData", f"malformed candle: {e}") from e

    async def fetch_option_chain(
        self, tokens: UpstreamTokens | None, symbol: str, expiry: str
    ) -> list[StrikeRow]:
        raise FetchFailure("optionChain", "unsupported")

    # --- Internal ---

    def _connect(self, tokens: UpstreamTokens | None = None) -> Any:
        """Build a SmartConnect for ``tokens``.

        Lazy import: the smartapi-python package is only needed when a real
        API key is configured.
        """
        from SmartApi import SmartConnect

        if tokens is None:
            return SmartConnect(api_key=self._api_key, timeout=self._timeout)
        return SmartConnect(
            api_key=self._api_key,
            access_token=tokens.auth_token,
            refresh_token=tokens.refresh_token,
            feed_token=tokens.feed_token,
            timeout=self._timeout,
        )

    def _login_sync(self, client_id: str, secret: str, totp: str) -> dict:
        return self._connect().generateSession(client_id, secret, totp)

    async def _call(self, method: str, tokens: UpstreamTokens | None, *args: Any) -> Any:
        """Run one SDK method in a thread and unwrap its ``data`` field."""
        if tokens is None:
            raise FetchFailure(method, "not logged in")
        try:
            result = await asyncio.to_thread(lambda: getattr(self._connect(tokens), method)(*args))
        except Exception as e:
            raise FetchFailure(method, str(e) or type(e).__name__) from e

        if not isinstance(result, dict) or not result.get("status"):
            message = result.get("message") if isinstance(result, dict) else "empty response"
            raise FetchFailure(method, message or "request rejected")
        return result.get("data")


def _strip_bearer(token: str) -> str:
    return token[len("Bearer ") :] if token.startswith("Bearer ") else token
