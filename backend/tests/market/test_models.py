"""Tests for market data models."""

import math

import pytest

from fsdash.market.models import Holding, PCRSnapshot, Quote, Sentiment, portfolio_summary


class TestQuote:
    """Unit tests for the Quote model."""

    def test_direction_up(self):
        """Test direction calculation (up)."""
        quote = Quote(symbol="NIFTY", price=21800.0, change=75.0, change_percent=0.35, timestamp=1.0)
        assert quote.direction == "up"

    def test_direction_down(self):
        """Test direction calculation (down)."""
        quote = Quote(symbol="NIFTY", price=21700.0, change=-25.0, change_percent=-0.12, timestamp=1.0)
        assert quote.direction == "down"

    def test_direction_flat(self):
        """Test direction calculation (flat)."""
        quote = Quote(symbol="NIFTY", price=21725.0, change=0.0, change_percent=0.0, timestamp=1.0)
        assert quote.direction == "flat"

    def test_to_dict(self):
        """Test serialization to dictionary."""
        quote = Quote(
            symbol="NIFTY", price=21800.0, change=75.0, change_percent=0.35, volume=1000, timestamp=1234567890.0
        )
        result = quote.to_dict()

        assert result == {
            "symbol": "NIFTY",
            "price": 21800.0,
            "change": 75.0,
            "change_percent": 0.35,
            "volume": 1000,
            "timestamp": 1234567890.0,
            "direction": "up",
        }

    def test_immutability(self):
        """Test that Quote is immutable."""
        quote = Quote(symbol="NIFTY", price=1.0, change=0.0, change_percent=0.0)

        with pytest.raises(AttributeError):
            quote.price = 2.0  # Should raise error


class TestPCRSnapshot:
    """Unit tests for PCRSnapshot serialization."""

    def test_ratio_rounded(self):
        """Test that the ratio is rounded to two decimals on output."""
        snapshot = PCRSnapshot(
            ratio=0.876543, total_call_oi=100, total_put_oi=88, sentiment=Sentiment.NEUTRAL, timestamp=1.0
        )
        assert snapshot.to_dict()["pcr_ratio"] == 0.88
        assert snapshot.to_dict()["sentiment"] == "NEUTRAL"

    def test_infinite_ratio_serializes_as_none(self):
        """An infinite ratio has no JSON number, so it becomes null."""
        snapshot = PCRSnapshot(
            ratio=math.inf, total_call_oi=0, total_put_oi=10, sentiment=Sentiment.BEARISH, timestamp=1.0
        )
        assert snapshot.to_dict()["pcr_ratio"] is None


class TestPortfolioSummary:
    """Tests for the holdings summary."""

    def test_summary_totals(self):
        """Test value, invested and P&L aggregation."""
        holdings = [
            Holding(symbol="TCS", quantity=10, avg_price=100.0, ltp=110.0),
            Holding(symbol="INFY", quantity=5, avg_price=200.0, ltp=190.0),
        ]
        summary = portfolio_summary(holdings)

        assert summary["total_value"] == 2050.0
        assert summary["total_invested"] == 2000.0
        assert summary["total_pnl"] == 50.0
        assert summary["total_pnl_percent"] == 2.5
        assert summary["holdings_count"] == 2

    def test_empty_portfolio(self):
        """Test that an empty portfolio does not divide by zero."""
        summary = portfolio_summary([])
        assert summary["total_pnl_percent"] == 0.0
        assert summary["holdings_count"] == 0

    def test_holding_pnl(self):
        """Test per-holding P&L."""
        holding = Holding(symbol="TCS", quantity=30, avg_price=3650.0, ltp=3720.15)
        assert holding.to_dict()["pnl"] == pytest.approx(2104.5)
