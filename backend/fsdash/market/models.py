"""Data models for market data."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import Enum


class Sentiment(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True, slots=True)
class UpstreamTokens:
    """Tokens issued by a successful upstream login."""

    auth_token: str
    refresh_token: str = ""
    feed_token: str = ""


@dataclass(frozen=True, slots=True)
class Quote:
    """Immutable snapshot of a single symbol's quote at a point in time."""

    symbol: str
    price: float
    change: float
    change_percent: float
    volume: int = 0
    timestamp: float = field(default_factory=time.time)  # Unix seconds

    @property
    def direction(self) -> str:
        """'up', 'down', or 'flat'."""
        if self.change > 0:
            return "up"
        elif self.change < 0:
            return "down"
        return "flat"

    def to_dict(self) -> dict:
        """Serialize for JSON / WebSocket transmission."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "volume": self.volume,
            "timestamp": self.timestamp,
            "direction": self.direction,
        }


@dataclass(frozen=True, slots=True)
class StrikeRow:
    """One strike of an option chain, call and put legs side by side."""

    strike: float
    call_ltp: float
    call_oi: int
    call_volume: int
    call_iv: float
    put_ltp: float
    put_oi: int
    put_volume: int
    put_iv: float

    def to_dict(self) -> dict:
        return {
            "strike": self.strike,
            "call_ltp": self.call_ltp,
            "call_oi": self.call_oi,
            "call_volume": self.call_volume,
            "call_iv": self.call_iv,
            "put_ltp": self.put_ltp,
            "put_oi": self.put_oi,
            "put_volume": self.put_volume,
            "put_iv": self.put_iv,
        }


@dataclass(frozen=True, slots=True)
class PCRSnapshot:
    """Put-call ratio over an option chain.

    ``ratio`` is ``math.inf`` when there is put open interest but no call
    open interest; it serializes as ``None`` in that case.
    """

    ratio: float
    total_call_oi: int
    total_put_oi: int
    sentiment: Sentiment
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "pcr_ratio": round(self.ratio, 2) if math.isfinite(self.ratio) else None,
            "call_oi": self.total_call_oi,
            "put_oi": self.total_put_oi,
            "sentiment": self.sentiment.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class Candle:
    timestamp: str  # ISO-8601
    open: float
    high: float
    low: float
    close: float
    volume: int

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True, slots=True)
class HistoricalSeries:
    labels: list[str]
    candles: list[Candle]

    def to_dict(self) -> dict:
        return {"labels": list(self.labels), "data": [c.to_dict() for c in self.candles]}


@dataclass(frozen=True, slots=True)
class Instrument:
    symbol: str
    token: str
    exchange: str

    def to_dict(self) -> dict:
        return {"symbol": self.symbol, "token": self.token, "exchange": self.exchange}


@dataclass(frozen=True, slots=True)
class Holding:
    """A long-term holding in the client's demat account."""

    symbol: str
    quantity: int
    avg_price: float
    ltp: float

    @property
    def value(self) -> float:
        return self.quantity * self.ltp

    @property
    def invested(self) -> float:
        return self.quantity * self.avg_price

    @property
    def pnl(self) -> float:
        return self.value - self.invested

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "quantity": self.quantity,
            "avg_price": self.avg_price,
            "ltp": self.ltp,
            "pnl": round(self.pnl, 2),
        }


def portfolio_summary(holdings: list[Holding]) -> dict:
    """Aggregate value, invested amount and P&L over a list of holdings."""
    total_value = sum(h.value for h in holdings)
    total_invested = sum(h.invested for h in holdings)
    total_pnl = total_value - total_invested
    return {
        "total_value": round(total_value, 2),
        "total_invested": round(total_invested, 2),
        "total_pnl": round(total_pnl, 2),
        "total_pnl_percent": round(total_pnl / total_invested * 100, 2) if total_invested else 0.0,
        "holdings_count": len(holdings),
    }
