"""Connection gateway: per-client subscriptions, control messages, liveness."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from collections.abc import Callable
from typing import Any, Protocol

from ..errors import MalformedMessage
from ..market.cache import CacheSpace, DataCache

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """The part of a WebSocket the gateway uses."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class Connection:
    """One connected client.

    ``subscriptions`` and ``alive`` are only mutated by this connection's own
    message handler and by the gateway's timers.
    """

    def __init__(self, transport: Transport, origin: str = "unknown") -> None:
        self.id = uuid.uuid4().hex[:12]
        self.transport = transport
        self.origin = origin
        self.subscriptions: set[str] = set()
        self.alive = True

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, origin={self.origin!r}, subscriptions={sorted(self.subscriptions)})"


def parse_message(raw: str | bytes) -> dict:
    """Decode and validate one inbound control frame. Raises MalformedMessage.

    Accepted shapes:
        {"type": "subscribe", "symbols": ["NIFTY", ...]}   (or "symbol": "NIFTY")
        {"type": "unsubscribe"}
        {"type": "ping"}
        {"type": "heartbeat_ack"}
    """
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        raise MalformedMessage("invalid JSON") from None

    if not isinstance(message, dict):
        raise MalformedMessage("message must be a JSON object")

    msg_type = message.get("type")
    if msg_type == "subscribe":
        symbols = message.get("symbols")
        if symbols is None and isinstance(message.get("symbol"), str):
            symbols = [message["symbol"]]
        if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
            raise MalformedMessage("subscribe requires a list of symbol strings")
        return {"type": "subscribe", "symbols": _normalize_symbols(symbols)}
    if msg_type in ("unsubscribe", "ping", "heartbeat_ack"):
        return {"type": msg_type}
    if msg_type is None:
        raise MalformedMessage("missing message type")
    raise MalformedMessage(f"unknown message type: {msg_type}")


def _normalize_symbols(symbols: list[str]) -> list[str]:
    """Upper-case, strip, drop blanks and duplicates, keep order."""
    seen: set[str] = set()
    result: list[str] = []
    for symbol in symbols:
        symbol = symbol.upper().strip()
        if symbol and symbol not in seen:
            seen.add(symbol)
            result.append(symbol)
    return result


class ConnectionGateway:
    """Registry of live connections and the only path for sending to them.

    Per connection: Connected -> (Subscribed | Unsubscribed) -> Closed.
    A send that fails drops the connection on the spot, so a closed client
    stops being a broadcast target immediately.

    Heartbeat: each ``heartbeat()`` call terminates connections that did not
    acknowledge the previous heartbeat, then marks the rest not-alive and sends
    each a new one concurrently. A silent client is gone after at most two
    heartbeat periods.
    """

    def __init__(
        self,
        cache: DataCache | None = None,
        upstream_connected: Callable[[], bool] = lambda: False,
    ) -> None:
        self._cache = cache
        self._upstream_connected = upstream_connected
        self._connections: dict[str, Connection] = {}

    @property
    def connections(self) -> list[Connection]:
        """Snapshot of live connections."""
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: Connection) -> bool:
        return self._connections.get(connection.id) is connection

    # --- Lifecycle ---

    async def connect(self, transport: Transport, origin: str = "unknown") -> Connection:
        """Register an accepted transport and acknowledge it."""
        connection = Connection(transport, origin)
        self._connections[connection.id] = connection
        logger.info("Client connected: %s (%s), total %d", connection.id, origin, len(self))
        await self.send(
            connection,
            {
                "type": "connection_established",
                "connection_id": connection.id,
                "upstream_connected": self._upstream_connected(),
                "timestamp": time.time(),
            },
        )
        return connection

    def disconnect(self, connection: Connection) -> None:
        """Forget a connection. Idempotent."""
        if self._connections.pop(connection.id, None) is not None:
            connection.subscriptions.clear()
            logger.info("Client disconnected: %s, total %d", connection.id, len(self))

    async def terminate(self, connection: Connection) -> None:
        """Forcibly close and forget a connection."""
        self.disconnect(connection)
        try:
            await connection.transport.close(code=1001)
        except Exception as e:
            logger.debug("Close failed for %s: %s", connection.id, e)

    async def close_all(self) -> None:
        for connection in self.connections:
            await self.terminate(connection)

    # --- Inbound ---

    async def handle_message(self, connection: Connection, raw: str | bytes) -> None:
        """Apply one inbound frame. Malformed frames get an error reply only."""
        try:
            message = parse_message(raw)
        except MalformedMessage as e:
            logger.debug("Malformed message from %s: %s", connection.id, e)
            await self.send(connection, {"type": "error", "message": str(e)})
            return

        msg_type = message["type"]
        if msg_type == "subscribe":
            await self._subscribe(connection, message["symbols"])
        elif msg_type == "unsubscribe":
            connection.subscriptions = set()
            await self.send(connection, {"type": "unsubscription_confirmed"})
        elif msg_type == "ping":
            await self.send(connection, {"type": "pong", "timestamp": time.time()})
        elif msg_type == "heartbeat_ack":
            connection.alive = True

    async def _subscribe(self, connection: Connection, symbols: list[str]) -> None:
        # Replaces the previous set wholesale
        connection.subscriptions = set(symbols)
        logger.debug("Client %s subscribed to %s", connection.id, symbols)
        await self.send(connection, {"type": "subscription_confirmed", "symbols": symbols})

        if self._cache is None:
            return
        snapshot = {}
        for symbol in symbols:
            quote = self._cache.get(CacheSpace.MARKET, symbol)
            if quote is not None:
                snapshot[symbol] = quote.to_dict()
        if snapshot:
            await self.send(connection, {"type": "market_update", "timestamp": time.time(), "data": snapshot})

    # --- Outbound ---

    async def send(self, connection: Connection, payload: dict) -> bool:
        """Send to one connection. Returns False (and drops it) on failure."""
        if connection not in self:
            return False
        try:
            await connection.transport.send_json(payload)
            return True
        except Exception as e:
            logger.info("Send to %s failed, dropping connection: %s", connection.id, e)
            self.disconnect(connection)
            return False

    async def broadcast(
        self, predicate: Callable[[Connection], bool] | None, payload: dict
    ) -> int:
        """Send ``payload`` to every connection ``predicate`` accepts (all if None).

        Returns the number of successful sends.
        """
        targets = [c for c in self.connections if predicate is None or predicate(c)]
        if not targets:
            return 0
        results = await asyncio.gather(*(self.send(c, payload) for c in targets))
        return sum(results)

    async def heartbeat(self) -> int:
        """Run one heartbeat round. Returns how many connections were terminated."""
        stale = [c for c in self.connections if not c.alive]
        for connection in stale:
            logger.info("Client %s missed heartbeat, terminating", connection.id)
            await self.terminate(connection)

        targets = self.connections
        for connection in targets:
            connection.alive = False
        if targets:
            frame = {"type": "heartbeat", "timestamp": time.time()}
            await asyncio.gather(*(self.send(c, frame) for c in targets))
        return len(stale)
