"""Seed data for the synthetic generator and the upstream symbol lookup."""

# Base price and daily volume per index
BASE_DATA: dict[str, dict[str, float]] = {
    "NIFTY": {"price": 21725.00, "volume": 145_000_000},
    "BANKNIFTY": {"price": 46850.00, "volume": 98_000_000},
    "FINNIFTY": {"price": 20150.00, "volume": 42_000_000},
    "MIDCPNIFTY": {"price": 10450.00, "volume": 28_000_000},
}

# Used for symbols not in BASE_DATA
DEFAULT_SYMBOL = "NIFTY"

# SmartAPI symbol tokens for the index instruments
SYMBOL_TOKENS: dict[str, str] = {
    "NIFTY": "99926000",
    "BANKNIFTY": "99926009",
    "FINNIFTY": "99926037",
    "MIDCPNIFTY": "99926074",
}

DEFAULT_EXCHANGE = "NSE"

STRIKE_STEP = 100

# Offline portfolio shown when the upstream is unavailable
DEMO_HOLDINGS: list[dict] = [
    {"symbol": "RELIANCE", "quantity": 50, "avg_price": 2485.50, "ltp": 2542.30},
    {"symbol": "TCS", "quantity": 30, "avg_price": 3650.00, "ltp": 3720.15},
    {"symbol": "HDFCBANK", "quantity": 65, "avg_price": 1520.30, "ltp": 1485.75},
    {"symbol": "INFY", "quantity": 55, "avg_price": 1680.20, "ltp": 1724.80},
    {"symbol": "ICICIBANK", "quantity": 80, "avg_price": 980.50, "ltp": 1025.30},
]

# period -> (number of points, granularity)
HISTORY_PERIODS: dict[str, tuple[int, str]] = {
    "1D": (24, "hour"),
    "1W": (7, "day"),
    "1M": (30, "day"),
    "3M": (90, "day"),
    "1Y": (365, "day"),
}
DEFAULT_PERIOD = "1D"


def symbol_token(symbol: str) -> str:
    """SmartAPI token for a symbol; unknown symbols are passed through as-is."""
    return SYMBOL_TOKENS.get(symbol, symbol)
