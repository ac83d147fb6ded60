"""Periodic fan-out of market, PCR and sentiment data to connected clients."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from ..market.cache import CacheSpace, DataCache, option_chain_key
from ..market.expiry import next_weekly_expiry
from ..market.interface import UpstreamClient
from ..market.models import PCRSnapshot, Quote, Sentiment, UpstreamTokens
from ..market.seed_data import DEFAULT_EXCHANGE, symbol_token
from ..market.synthetic import SyntheticDataGenerator, put_call_ratio
from ..session.store import SessionStore
from .gateway import ConnectionGateway
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)


class FanoutScheduler:
    """Owns the periodic ticks that feed the connection gateway.

    Ticks (each its own PeriodicTask, so a slow upstream call in one never
    delays another):
        market     - quotes for the fixed symbols, filtered per subscriber
        pcr        - put-call ratio per symbol, to every connection
        sentiment  - one composite payload, to every connection
        heartbeat  - gateway liveness round
        sweep      - expire sessions and stale cache entries

    The market/pcr/sentiment ticks do nothing while no client is connected.
    Within a tick each symbol is fetched independently; one failing symbol is
    logged and skipped.
    """

    def __init__(
        self,
        gateway: ConnectionGateway,
        upstream: UpstreamClient,
        cache: DataCache,
        generator: SyntheticDataGenerator,
        symbols: Sequence[str],
        feed_tokens: Callable[[], UpstreamTokens | None] = lambda: None,
        sessions: SessionStore | None = None,
        market_interval: float = 5.0,
        pcr_interval: float = 10.0,
        sentiment_interval: float = 15.0,
        heartbeat_interval: float = 30.0,
        sweep_interval: float = 3600.0,
        cache_ttl: float = 24 * 3600.0,
    ) -> None:
        self._gateway = gateway
        self._upstream = upstream
        self._cache = cache
        self._generator = generator
        self._symbols = list(symbols)
        self._feed_tokens = feed_tokens
        self._sessions = sessions
        self._cache_ttl = cache_ttl
        self.tasks = [
            PeriodicTask("market-tick", market_interval, self.market_tick),
            PeriodicTask("pcr-tick", pcr_interval, self.pcr_tick),
            PeriodicTask("sentiment-tick", sentiment_interval, self.sentiment_tick),
            PeriodicTask("heartbeat", heartbeat_interval, self._gateway.heartbeat),
            PeriodicTask("sweep", sweep_interval, self.sweep),
        ]

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    @property
    def running(self) -> bool:
        return any(task.running for task in self.tasks)

    async def start(self) -> None:
        for task in self.tasks:
            await task.start()
        logger.info("Fan-out started for %d symbols", len(self._symbols))

    async def stop(self) -> None:
        """Cancel every tick. Safe to call multiple times."""
        for task in self.tasks:
            await task.stop()
        logger.info("Fan-out stopped")

    # --- Ticks ---

    async def market_tick(self) -> int:
        """Push each connection the quotes it subscribed to. Returns messages sent."""
        if not len(self._gateway):
            return 0

        quotes = await self._gather(self._fetch_quote, "quote")
        if not quotes:
            return 0

        timestamp = time.time()
        data = {symbol: quote.to_dict() for symbol, quote in quotes.items()}

        sends = []
        for connection in self._gateway.connections:
            wanted = connection.subscriptions.intersection(data)
            if not wanted:
                continue
            payload = {
                "type": "market_update",
                "timestamp": timestamp,
                "data": {symbol: data[symbol] for symbol in sorted(wanted)},
            }
            sends.append(self._gateway.send(connection, payload))

        results = await asyncio.gather(*sends)
        return sum(results)

    async def pcr_tick(self) -> int:
        """Broadcast one pcr_update per symbol to every connection."""
        if not len(self._gateway):
            return 0

        snapshots = await self._gather(self._fetch_pcr, "pcr")
        sent = 0
        for symbol, snapshot in snapshots.items():
            sent += await self._gateway.broadcast(
                None,
                {
                    "type": "pcr_update",
                    "symbol": symbol,
                    "timestamp": snapshot.timestamp,
                    "data": snapshot.to_dict(),
                },
            )
        return sent

    async def sentiment_tick(self) -> int:
        """Broadcast the composite market sentiment to every connection."""
        if not len(self._gateway):
            return 0

        composite = self.composite_sentiment()
        self._cache.put(CacheSpace.SENTIMENT, "overall", composite)
        return await self._gateway.broadcast(
            None,
            {"type": "sentiment_update", "timestamp": time.time(), "data": composite},
        )

    async def sweep(self) -> None:
        expired = self._sessions.sweep_expired() if self._sessions is not None else 0
        stale = self._cache.sweep_all(self._cache_ttl)
        logger.info("Maintenance sweep: %d sessions expired, %d cache entries dropped", expired, stale)

    # --- Data ---

    def composite_sentiment(self) -> dict:
        """Combine cached PCR and quotes per symbol into one market reading.

        Symbols missing from the cache are synthesized. Score is the mean of
        +1 (BULLISH) / -1 (BEARISH) / 0 over symbols; its sign picks the
        overall sentiment.
        """
        per_symbol: dict[str, dict] = {}
        advances = declines = 0
        score = 0

        for symbol in self._symbols:
            pcr = self._cache.get(CacheSpace.PCR, symbol)
            if pcr is None:
                pcr = put_call_ratio(self._generator.option_chain(symbol))
            quote = self._cache.get(CacheSpace.MARKET, symbol)
            if quote is None:
                quote = self._generator.realtime_quote(symbol)

            if quote.change > 0:
                advances += 1
            elif quote.change < 0:
                declines += 1
            if pcr.sentiment is Sentiment.BULLISH:
                score += 1
            elif pcr.sentiment is Sentiment.BEARISH:
                score -= 1

            per_symbol[symbol] = {
                "sentiment": pcr.sentiment.value,
                "pcr_ratio": pcr.to_dict()["pcr_ratio"],
                "change_percent": quote.change_percent,
            }

        if score > 0:
            overall = Sentiment.BULLISH
        elif score < 0:
            overall = Sentiment.BEARISH
        else:
            overall = Sentiment.NEUTRAL

        return {
            "overall": overall.value,
            "score": round(score / len(self._symbols), 2) if self._symbols else 0.0,
            "advances": advances,
            "declines": declines,
            "symbols": per_symbol,
        }

    async def _fetch_quote(self, symbol: str) -> Quote:
        quote = await self._upstream.fetch_market_data(
            self._feed_tokens(), DEFAULT_EXCHANGE, symbol, symbol_token(symbol)
        )
        self._cache.put(CacheSpace.MARKET, symbol, quote)
        return quote

    async def _fetch_pcr(self, symbol: str) -> PCRSnapshot:
        expiry = next_weekly_expiry()
        chain = await self._upstream.fetch_option_chain(self._feed_tokens(), symbol, expiry)
        self._cache.put(CacheSpace.OPTION_CHAIN, option_chain_key(symbol, expiry), chain)
        snapshot = put_call_ratio(chain)
        self._cache.put(CacheSpace.PCR, symbol, snapshot)
        return snapshot

    async def _gather(self, fetch: Callable, what: str) -> dict:
        """Run ``fetch`` for every symbol concurrently; drop the ones that fail."""
        results = await asyncio.gather(*(fetch(s) for s in self._symbols), return_exceptions=True)
        collected = {}
        for symbol, result in zip(self._symbols, results):
            if isinstance(result, BaseException):
                logger.warning("Skipping %s for %s this tick: %s", what, symbol, result)
                continue
            collected[symbol] = result
        return collected
