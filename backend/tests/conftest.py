"""Pytest configuration and fixtures."""

import time

import pytest

from fsdash.errors import AuthFailure, FetchFailure
from fsdash.market.interface import UpstreamClient
from fsdash.market.models import Candle, Holding, Instrument, Quote, StrikeRow, UpstreamTokens


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


class FakeClock:
    """Manually advanced clock for expiry and TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWebSocket:
    """Records frames sent by the gateway; can be told to fail on send."""

    def __init__(self, fail_on_send: bool = False) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self.close_code: int | None = None
        self.fail_on_send = fail_on_send

    async def send_json(self, data) -> None:
        if self.fail_on_send:
            raise ConnectionResetError("peer gone")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.close_code = code

    def of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.sent if m.get("type") == msg_type]


class StubUpstream(UpstreamClient):
    """In-memory UpstreamClient with scriptable failures."""

    def __init__(self) -> None:
        self.login_results: list = []  # UpstreamTokens or AuthFailure, consumed in order
        self.failing_symbols: set[str] = set()
        self.fail_everything = False
        self.calls: list[tuple] = []
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def login(self, client_id, secret, totp):
        self.calls.append(("login", client_id))
        result = self.login_results.pop(0) if self.login_results else UpstreamTokens(auth_token=f"jwt-{client_id}")
        if isinstance(result, AuthFailure):
            raise result
        self._connected = True
        return result

    async def logout(self, tokens, client_id):
        self.calls.append(("logout", client_id))
        self._connected = False

    def _check(self, operation: str, item: str = "") -> None:
        self.calls.append((operation, item))
        if self.fail_everything or item in self.failing_symbols:
            raise FetchFailure(operation, "stubbed failure")

    async def fetch_market_data(self, tokens, exchange, symbol, token):
        self._check("quote", symbol)
        return Quote(symbol=symbol, price=100.0, change=1.0, change_percent=1.0, volume=10, timestamp=time.time())

    async def fetch_holdings(self, tokens):
        self._check("holdings")
        return [Holding(symbol="SBIN", quantity=10, avg_price=500.0, ltp=550.0)]

    async def fetch_positions(self, tokens):
        self._check("positions")
        return [{"tradingsymbol": "NIFTY24JANFUT", "netqty": "50"}]

    async def search_instruments(self, tokens, exchange, text):
        self._check("search", text)
        return [Instrument(symbol=f"{text.upper()}-EQ", token="3045", exchange=exchange)]

    async def fetch_historical(self, tokens, exchange, token, interval, from_, to):
        self._check("historical", token)
        return [Candle(timestamp=from_, open=1.0, high=2.0, low=0.5, close=1.5, volume=100)]

    async def fetch_option_chain(self, tokens, symbol, expiry):
        self._check("option_chain", symbol)
        return [
            StrikeRow(
                strike=100.0,
                call_ltp=5.0,
                call_oi=1000,
                call_volume=10,
                call_iv=20.0,
                put_ltp=4.0,
                put_oi=700,
                put_volume=10,
                put_iv=21.0,
            )
        ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_upstream() -> StubUpstream:
    return StubUpstream()


@pytest.fixture
def feed_tokens() -> UpstreamTokens:
    return UpstreamTokens(auth_token="feed-jwt", refresh_token="feed-refresh", feed_token="feed")


@pytest.fixture
def make_ws():
    """Factory for FakeWebSocket instances."""
    return FakeWebSocket
