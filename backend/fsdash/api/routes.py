"""HTTP routes: login/logout, cache-backed market data, portfolio, watchlists."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from ..errors import AuthFailure, WatchlistNotFound
from ..market.cache import CacheSpace, historical_key, option_chain_key
from ..market.expiry import next_weekly_expiry
from ..market.models import portfolio_summary
from ..market.seed_data import DEFAULT_EXCHANGE, DEFAULT_PERIOD, symbol_token
from ..market.synthetic import put_call_ratio
from ..services import Services
from ..session.store import Session
from ..session.watchlist import WatchlistItem
from .deps import session_dependency

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    client_id: str = Field(min_length=1)
    secret: str = Field(min_length=1)
    totp: str = Field(min_length=1)


class BatchRequest(BaseModel):
    symbols: list[str] = Field(min_length=1)


class WatchlistItemBody(BaseModel):
    token: str = Field(min_length=1)
    symbol: str = Field(min_length=1)
    exchange: str = DEFAULT_EXCHANGE

    def to_item(self) -> WatchlistItem:
        return WatchlistItem(token=self.token, exchange=self.exchange.upper(), symbol=self.symbol.upper())


class WatchlistCreate(BaseModel):
    name: str = Field(min_length=1)
    items: list[WatchlistItemBody] = Field(default_factory=list)


class WatchlistReplace(BaseModel):
    items: list[WatchlistItemBody]
    name: str | None = None


def create_api_router(services: Services) -> APIRouter:
    """Create the /api router bound to one set of services."""
    router = APIRouter(prefix="/api")
    current_session = session_dependency(services.sessions)
    upstream = services.upstream
    cache = services.cache

    # --- Health / auth ---

    @router.get("/health", tags=["system"])
    async def health() -> dict:
        return {
            "status": "OK",
            "timestamp": time.time(),
            "upstream_connected": services.feed_connected,
            "connections": len(services.gateway),
            "sessions": len(services.sessions),
        }

    @router.post("/auth/login", tags=["auth"])
    async def login(body: LoginRequest, request: Request) -> dict:
        try:
            tokens = await upstream.login(body.client_id, body.secret, body.totp)
        except AuthFailure as e:
            logger.info("Login rejected for %s: %s", body.client_id, e.reason)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.reason) from None
        origin = request.client.host if request.client else "unknown"
        session_id = services.sessions.create(tokens, body.client_id, origin)
        return {"session_id": session_id, "client_id": body.client_id}

    @router.post("/auth/logout", tags=["auth"])
    async def logout(session: Session = Depends(current_session)) -> dict:
        services.sessions.destroy(session.id)
        await upstream.logout(session.tokens, session.client_id)
        return {"status": "logged_out"}

    # --- Market data (server feed tokens) ---

    async def fetch_quote(symbol: str) -> dict:
        quote = await upstream.fetch_market_data(
            services.feed_tokens, DEFAULT_EXCHANGE, symbol, symbol_token(symbol)
        )
        cache.put(CacheSpace.MARKET, symbol, quote)
        return quote.to_dict()

    @router.get("/market/{symbol}", tags=["market"])
    async def market(symbol: str) -> dict:
        return await fetch_quote(symbol.upper())

    @router.post("/market/batch", tags=["market"])
    async def market_batch(body: BatchRequest) -> dict:
        return {symbol.upper(): await fetch_quote(symbol.upper()) for symbol in body.symbols}

    async def fetch_chain(symbol: str, expiry: str) -> list:
        chain = await upstream.fetch_option_chain(services.feed_tokens, symbol, expiry)
        cache.put(CacheSpace.OPTION_CHAIN, option_chain_key(symbol, expiry), chain)
        return chain

    @router.get("/optionchain/{symbol}", tags=["market"])
    async def option_chain(symbol: str, expiry: str | None = None) -> dict:
        symbol = symbol.upper()
        expiry = expiry or next_weekly_expiry()
        chain = await fetch_chain(symbol, expiry)
        return {
            "symbol": symbol,
            "expiry": expiry,
            "data": [row.to_dict() for row in chain],
            "timestamp": time.time(),
        }

    @router.get("/pcr/{symbol}", tags=["market"])
    async def pcr(symbol: str, expiry: str | None = None) -> dict:
        symbol = symbol.upper()
        expiry = expiry or next_weekly_expiry()
        chain = cache.get(CacheSpace.OPTION_CHAIN, option_chain_key(symbol, expiry))
        if chain is None:
            chain = await fetch_chain(symbol, expiry)
        try:
            snapshot = put_call_ratio(chain)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None
        cache.put(CacheSpace.PCR, symbol, snapshot)
        return {"symbol": symbol, "expiry": expiry, **snapshot.to_dict()}

    @router.get("/history/{symbol}", tags=["market"])
    async def history(symbol: str, period: str = DEFAULT_PERIOD) -> dict:
        symbol = symbol.upper()
        period = period.upper()
        series = services.generator.historical_series(symbol, period)
        return {"symbol": symbol, "period": period, "data": series.to_dict()}

    # --- Per-session upstream data ---

    @router.get("/candles", tags=["market"])
    async def candles(
        token: str,
        interval: str,
        from_: str = Query(alias="from"),
        to: str = Query(),
        exchange: str = DEFAULT_EXCHANGE,
        session: Session = Depends(current_session),
    ) -> dict:
        key = historical_key(exchange, token, interval, from_, to)
        rows = cache.get(CacheSpace.HISTORICAL, key)
        if rows is None:
            rows, from_upstream = await upstream.fetch_historical_sourced(
                session.tokens, exchange, token, interval, from_, to
            )
            if from_upstream:
                cache.put(CacheSpace.HISTORICAL, key, rows)
        return {"exchange": exchange, "token": token, "interval": interval, "data": [c.to_dict() for c in rows]}

    @router.get("/portfolio", tags=["portfolio"])
    async def portfolio(session: Session = Depends(current_session)) -> dict:
        holdings = await upstream.fetch_holdings(session.tokens)
        positions = await upstream.fetch_positions(session.tokens)
        return {
            "summary": portfolio_summary(holdings),
            "holdings": [h.to_dict() for h in holdings],
            "positions": positions,
        }

    @router.get("/search", tags=["market"])
    async def search(q: str, exchange: str = DEFAULT_EXCHANGE, session: Session = Depends(current_session)) -> dict:
        instruments = await upstream.search_instruments(session.tokens, exchange.upper(), q)
        return {"results": [i.to_dict() for i in instruments]}

    # --- Watchlists (owned by the session's client identity) ---

    watchlists = services.watchlists

    @router.get("/watchlists", tags=["watchlists"])
    async def list_watchlists(session: Session = Depends(current_session)) -> dict:
        return {"watchlists": [w.to_dict() for w in watchlists.for_client(session.client_id)]}

    @router.post("/watchlists", tags=["watchlists"], status_code=status.HTTP_201_CREATED)
    async def create_watchlist(body: WatchlistCreate, session: Session = Depends(current_session)) -> dict:
        items = [item.to_item() for item in body.items]
        return watchlists.create(session.client_id, body.name, items).to_dict()

    @router.get("/watchlists/{watchlist_id}", tags=["watchlists"])
    async def get_watchlist(watchlist_id: str, session: Session = Depends(current_session)) -> dict:
        try:
            return watchlists.get(session.client_id, watchlist_id).to_dict()
        except WatchlistNotFound:
            raise _not_found(watchlist_id) from None

    @router.put("/watchlists/{watchlist_id}", tags=["watchlists"])
    async def replace_watchlist(
        watchlist_id: str, body: WatchlistReplace, session: Session = Depends(current_session)
    ) -> dict:
        items = [item.to_item() for item in body.items]
        try:
            return watchlists.replace(session.client_id, watchlist_id, items, name=body.name).to_dict()
        except WatchlistNotFound:
            raise _not_found(watchlist_id) from None

    @router.delete("/watchlists/{watchlist_id}", tags=["watchlists"])
    async def delete_watchlist(watchlist_id: str, session: Session = Depends(current_session)) -> dict:
        try:
            watchlists.delete(session.client_id, watchlist_id)
        except WatchlistNotFound:
            raise _not_found(watchlist_id) from None
        return {"status": "deleted", "id": watchlist_id}

    @router.post("/watchlists/{watchlist_id}/items", tags=["watchlists"])
    async def add_watchlist_item(
        watchlist_id: str, body: WatchlistItemBody, session: Session = Depends(current_session)
    ) -> dict:
        try:
            return watchlists.add_item(session.client_id, watchlist_id, body.to_item()).to_dict()
        except WatchlistNotFound:
            raise _not_found(watchlist_id) from None

    @router.delete("/watchlists/{watchlist_id}/items/{token}", tags=["watchlists"])
    async def remove_watchlist_item(
        watchlist_id: str, token: str, session: Session = Depends(current_session)
    ) -> dict:
        try:
            return watchlists.remove_item(session.client_id, watchlist_id, token).to_dict()
        except WatchlistNotFound:
            raise _not_found(watchlist_id) from None

    return router


def _not_found(watchlist_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Watchlist {watchlist_id} not found")
