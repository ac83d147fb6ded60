"""Synthetic market data used when the upstream is unavailable."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import numpy as np

from .models import (
    Candle,
    HistoricalSeries,
    Holding,
    Instrument,
    PCRSnapshot,
    Quote,
    Sentiment,
    StrikeRow,
)
from .seed_data import (
    BASE_DATA,
    DEFAULT_EXCHANGE,
    DEFAULT_PERIOD,
    DEFAULT_SYMBOL,
    DEMO_HOLDINGS,
    HISTORY_PERIODS,
    STRIKE_STEP,
    SYMBOL_TOKENS,
)


BULLISH_BELOW = 0.8
BEARISH_ABOVE = 1.2


def classify_pcr(ratio: float) -> Sentiment:
    """BULLISH below 0.8, BEARISH above 1.2, NEUTRAL in between (inclusive)."""
    if ratio < BULLISH_BELOW:
        return Sentiment.BULLISH
    if ratio > BEARISH_ABOVE:
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL


def put_call_ratio(chain: list[StrikeRow]) -> PCRSnapshot:
    """Aggregate open interest over a chain and classify the ratio.

    Zero call OI with non-zero put OI yields an infinite ratio (BEARISH).
    A chain with no open interest on either side raises ValueError.
    """
    total_call_oi = sum(row.call_oi for row in chain)
    total_put_oi = sum(row.put_oi for row in chain)

    if total_call_oi == 0:
        if total_put_oi == 0:
            raise ValueError("option chain has no open interest")
        ratio = float("inf")
    else:
        ratio = total_put_oi / total_call_oi

    return PCRSnapshot(
        ratio=ratio,
        total_call_oi=total_call_oi,
        total_put_oi=total_put_oi,
        sentiment=classify_pcr(ratio),
    )


class SyntheticDataGenerator:
    """Plausible quotes, option chains and candles around fixed base prices.

    Shapes are deterministic (base prices, strike ladder, period table); values
    are randomized. Pass ``seed`` for reproducible output.

    Formulas:
        quote price   = base * (1 + U(-0.01, 0.01))
        strike premium = max(intrinsic + max(50 - |strike - base| / 20, 5) + U(-10, 10), 0.05)
        candle close  = previous close * (1 + U(-0.01, 0.01)), starting at base
    """

    VOLATILITY = 0.02  # full width of the quote band (±1%)
    VOLUME_VARIATION = 0.3  # full width of the volume band (±15%)

    def __init__(self, seed: int | None = None) -> None:
        self._rng = np.random.default_rng(seed)

    # --- Public API ---

    def base_price(self, symbol: str) -> float:
        return BASE_DATA.get(symbol, BASE_DATA[DEFAULT_SYMBOL])["price"]

    def realtime_quote(self, symbol: str) -> Quote:
        base = BASE_DATA.get(symbol, BASE_DATA[DEFAULT_SYMBOL])
        base_price = base["price"]

        change = (self._rng.random() - 0.5) * self.VOLATILITY * base_price
        price = base_price + change
        volume = int(base["volume"] * (1 + (self._rng.random() - 0.5) * self.VOLUME_VARIATION))

        return Quote(
            symbol=symbol,
            price=round(price, 2),
            change=round(change, 2),
            change_percent=round(change / base_price * 100, 2),
            volume=volume,
        )

    def option_chain(self, symbol: str, strike_count: int = 15) -> list[StrikeRow]:
        base_price = self.base_price(symbol)
        atm_strike = round(base_price / STRIKE_STEP) * STRIKE_STEP

        rows: list[StrikeRow] = []
        for i in range(-strike_count, strike_count + 1):
            strike = atm_strike + i * STRIKE_STEP
            distance = abs(strike - base_price)
            time_value = max(50 - distance / 20, 5)
            call_intrinsic = max(base_price - strike, 0)
            put_intrinsic = max(strike - base_price, 0)

            rows.append(
                StrikeRow(
                    strike=float(strike),
                    call_ltp=self._premium(call_intrinsic, time_value),
                    call_oi=int(self._rng.integers(10_000, 60_000)),
                    call_volume=int(self._rng.integers(1_000, 11_000)),
                    call_iv=round(float(self._rng.uniform(15, 45)), 2),
                    put_ltp=self._premium(put_intrinsic, time_value),
                    put_oi=int(self._rng.integers(10_000, 60_000)),
                    put_volume=int(self._rng.integers(1_000, 11_000)),
                    put_iv=round(float(self._rng.uniform(15, 45)), 2),
                )
            )
        return rows

    def put_call_ratio(self, chain: list[StrikeRow]) -> PCRSnapshot:
        return put_call_ratio(chain)

    def historical_series(
        self, symbol: str, period: str = DEFAULT_PERIOD, now: datetime | None = None
    ) -> HistoricalSeries:
        """Candles ending at ``now``; unknown periods fall back to 1D."""
        points, granularity = HISTORY_PERIODS.get(period, HISTORY_PERIODS[DEFAULT_PERIOD])
        step = timedelta(hours=1) if granularity == "hour" else timedelta(days=1)
        end = now or datetime.now(timezone.utc)

        close = self.base_price(symbol)
        labels: list[str] = []
        candles: list[Candle] = []
        for i in range(points):
            stamp = (end - step * (points - i)).isoformat()
            close *= 1 + (self._rng.random() - 0.5) * self.VOLATILITY
            labels.append(stamp)
            candles.append(
                Candle(
                    timestamp=stamp,
                    open=round(close * 0.999, 2),
                    high=round(close * 1.002, 2),
                    low=round(close * 0.998, 2),
                    close=round(close, 2),
                    volume=int(self._rng.integers(100_000, 1_100_000)),
                )
            )
        return HistoricalSeries(labels=labels, candles=candles)

    def candles(self, symbol: str, interval: str) -> list[Candle]:
        """Stand-in for an upstream candle query: hourly series for intraday
        intervals, daily otherwise."""
        period = "1W" if interval.upper() in ("ONE_DAY", "1D", "DAY") else "1D"
        return self.historical_series(symbol, period).candles

    def demo_holdings(self) -> list[Holding]:
        return [Holding(**h) for h in DEMO_HOLDINGS]

    def search(self, text: str, exchange: str = DEFAULT_EXCHANGE) -> list[Instrument]:
        needle = text.strip().upper()
        return [
            Instrument(symbol=symbol, token=token, exchange=exchange)
            for symbol, token in SYMBOL_TOKENS.items()
            if needle in symbol
        ]

    # --- Internals ---

    def _premium(self, intrinsic: float, time_value: float) -> float:
        noise = float(self._rng.uniform(-10, 10))
        return round(max(intrinsic + time_value + noise, 0.05), 2)
