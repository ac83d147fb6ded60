"""Tests for ConnectionGateway and inbound message parsing."""

import asyncio
import json

import pytest

from fsdash.errors import MalformedMessage
from fsdash.market.cache import CacheSpace, DataCache
from fsdash.market.models import Quote
from fsdash.realtime.gateway import ConnectionGateway, parse_message


class TestParseMessage:
    """Unit tests for parse_message."""

    def test_subscribe_normalizes_symbols(self):
        """Test upper-casing, stripping and de-duplication in order."""
        message = parse_message(json.dumps({"type": "subscribe", "symbols": [" nifty", "BANKNIFTY", "NIFTY", ""]}))
        assert message == {"type": "subscribe", "symbols": ["NIFTY", "BANKNIFTY"]}

    def test_subscribe_single_symbol(self):
        """Test the single-symbol form."""
        assert parse_message('{"type": "subscribe", "symbol": "finnifty"}')["symbols"] == ["FINNIFTY"]

    def test_control_messages(self):
        for msg_type in ("unsubscribe", "ping", "heartbeat_ack"):
            assert parse_message(json.dumps({"type": msg_type})) == {"type": msg_type}

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2]",
            "{}",
            '{"type": "dance"}',
            '{"type": "subscribe"}',
            '{"type": "subscribe", "symbols": "NIFTY"}',
            '{"type": "subscribe", "symbols": [1, 2]}',
        ],
    )
    def test_malformed(self, raw):
        """Test that bad frames raise MalformedMessage."""
        with pytest.raises(MalformedMessage):
            parse_message(raw)


@pytest.mark.asyncio
class TestConnectionGateway:
    """Unit tests for the ConnectionGateway."""

    async def test_connect_acknowledges(self, make_ws):
        """Test that a new connection gets connection_established."""
        gateway = ConnectionGateway(upstream_connected=lambda: True)
        ws = make_ws()
        connection = await gateway.connect(ws, "127.0.0.1")

        assert connection in gateway
        assert len(gateway) == 1
        ack = ws.sent[0]
        assert ack["type"] == "connection_established"
        assert ack["connection_id"] == connection.id
        assert ack["upstream_connected"] is True
        assert connection.subscriptions == set()

    async def test_subscribe_replaces_set(self, make_ws):
        """Test that each subscribe replaces the previous set."""
        gateway = ConnectionGateway()
        ws = make_ws()
        connection = await gateway.connect(ws)

        await gateway.handle_message(connection, '{"type": "subscribe", "symbols": ["NIFTY", "BANKNIFTY"]}')
        await gateway.handle_message(connection, '{"type": "subscribe", "symbols": ["FINNIFTY"]}')

        assert connection.subscriptions == {"FINNIFTY"}
        confirmations = ws.of_type("subscription_confirmed")
        assert [c["symbols"] for c in confirmations] == [["NIFTY", "BANKNIFTY"], ["FINNIFTY"]]

    async def test_subscribe_sends_cached_snapshot(self, make_ws):
        """Test that a subscriber immediately receives cached quotes."""
        cache = DataCache()
        cache.put(CacheSpace.MARKET, "NIFTY", Quote(symbol="NIFTY", price=1.0, change=0.0, change_percent=0.0))
        gateway = ConnectionGateway(cache=cache)
        ws = make_ws()
        connection = await gateway.connect(ws)

        await gateway.handle_message(connection, '{"type": "subscribe", "symbols": ["NIFTY", "BANKNIFTY"]}')

        updates = ws.of_type("market_update")
        assert len(updates) == 1
        assert list(updates[0]["data"]) == ["NIFTY"]

    async def test_unsubscribe_clears(self, make_ws):
        gateway = ConnectionGateway()
        ws = make_ws()
        connection = await gateway.connect(ws)
        await gateway.handle_message(connection, '{"type": "subscribe", "symbols": ["NIFTY"]}')

        await gateway.handle_message(connection, '{"type": "unsubscribe"}')

        assert connection.subscriptions == set()
        assert ws.of_type("unsubscription_confirmed")

    async def test_ping_pong(self, make_ws):
        gateway = ConnectionGateway()
        ws = make_ws()
        connection = await gateway.connect(ws)
        await gateway.handle_message(connection, '{"type": "ping"}')
        assert "timestamp" in ws.of_type("pong")[0]

    async def test_malformed_message_gets_error_and_keeps_state(self, make_ws):
        """Test that a bad frame leaves the subscription and connection intact."""
        gateway = ConnectionGateway()
        ws = make_ws()
        connection = await gateway.connect(ws)
        await gateway.handle_message(connection, '{"type": "subscribe", "symbols": ["NIFTY"]}')

        await gateway.handle_message(connection, "{{{")

        assert ws.of_type("error")
        assert connection.subscriptions == {"NIFTY"}
        assert connection in gateway

    async def test_failed_send_drops_connection(self, make_ws):
        """Test that a send failure removes the connection immediately."""
        gateway = ConnectionGateway()
        ws = make_ws()
        connection = await gateway.connect(ws)
        ws.fail_on_send = True

        assert await gateway.send(connection, {"type": "x"}) is False
        assert connection not in gateway
        assert await gateway.send(connection, {"type": "x"}) is False

    async def test_broadcast_with_predicate(self, make_ws):
        """Test that broadcast filters targets and counts sends."""
        gateway = ConnectionGateway()
        a, b, dead = make_ws(), make_ws(), make_ws()
        conn_a = await gateway.connect(a)
        await gateway.connect(b)
        await gateway.connect(dead)
        conn_a.subscriptions = {"NIFTY"}
        dead.fail_on_send = True

        assert await gateway.broadcast(lambda c: "NIFTY" in c.subscriptions, {"type": "only_a"}) == 1
        assert await gateway.broadcast(None, {"type": "everyone"}) == 2
        assert len(a.of_type("only_a")) == 1
        assert b.of_type("only_a") == []
        assert len(gateway) == 2

    async def test_broadcast_without_connections(self):
        assert await ConnectionGateway().broadcast(None, {"type": "x"}) == 0

    async def test_silent_client_terminated_within_two_rounds(self, make_ws):
        """Test that a client that never acks is closed by the second round."""
        gateway = ConnectionGateway()
        ws = make_ws()
        connection = await gateway.connect(ws)

        assert await gateway.heartbeat() == 0
        assert ws.of_type("heartbeat")
        assert await gateway.heartbeat() == 1

        assert connection not in gateway
        assert ws.closed
        assert ws.close_code == 1001

    async def test_answering_client_never_terminated(self, make_ws):
        """Test that acking every heartbeat keeps the connection."""
        gateway = ConnectionGateway()
        ws = make_ws()
        connection = await gateway.connect(ws)

        for _ in range(5):
            assert await gateway.heartbeat() == 0
            await gateway.handle_message(connection, '{"type": "heartbeat_ack"}')

        assert connection in gateway
        assert len(ws.of_type("heartbeat")) == 5
        assert not ws.closed

    async def test_stalled_client_does_not_hold_up_heartbeat(self, make_ws):
        """Test that one slow send does not keep the heartbeat from other clients."""
        release = asyncio.Event()

        class StalledWebSocket(make_ws):
            stall = False

            async def send_json(self, data) -> None:
                if self.stall:
                    await release.wait()
                await super().send_json(data)

        gateway = ConnectionGateway()
        stalled = StalledWebSocket()
        await gateway.connect(stalled)
        others = [make_ws() for _ in range(2)]
        for ws in others:
            await gateway.connect(ws)
        stalled.stall = True

        heartbeat = asyncio.create_task(gateway.heartbeat())
        await asyncio.sleep(0.05)

        assert all(ws.of_type("heartbeat") for ws in others)
        assert not heartbeat.done()

        release.set()
        assert await heartbeat == 0
        assert stalled.of_type("heartbeat")

    async def test_disconnect_is_idempotent(self, make_ws):
        gateway = ConnectionGateway()
        connection = await gateway.connect(make_ws())
        gateway.disconnect(connection)
        gateway.disconnect(connection)  # Should not raise
        assert len(gateway) == 0

    async def test_close_all(self, make_ws):
        gateway = ConnectionGateway()
        sockets = [make_ws() for _ in range(3)]
        for ws in sockets:
            await gateway.connect(ws)
        await gateway.close_all()
        assert len(gateway) == 0
        assert all(ws.closed for ws in sockets)
