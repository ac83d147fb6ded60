"""Market data subsystem for FS DASH.

Public API:
    Quote, StrikeRow, PCRSnapshot, ... - Immutable data models
    DataCache / CacheSpace   - Thread-safe expiring cache with independent spaces
    UpstreamClient           - Abstract interface for the broker
    FallbackUpstreamClient   - Decorator degrading to synthetic data
    SyntheticDataGenerator   - Offline quotes, option chains, candles
    create_upstream_client   - Factory that selects SmartAPI or synthetic only
"""

from .cache import CacheSpace, DataCache
from .factory import create_upstream_client
from .fallback import FallbackUpstreamClient
from .interface import UpstreamClient
from .models import (
    Candle,
    HistoricalSeries,
    Holding,
    Instrument,
    PCRSnapshot,
    Quote,
    Sentiment,
    StrikeRow,
    UpstreamTokens,
)
from .synthetic import SyntheticDataGenerator, classify_pcr, put_call_ratio

__all__ = [
    "CacheSpace",
    "Candle",
    "DataCache",
    "FallbackUpstreamClient",
    "HistoricalSeries",
    "Holding",
    "Instrument",
    "PCRSnapshot",
    "Quote",
    "Sentiment",
    "StrikeRow",
    "SyntheticDataGenerator",
    "UpstreamClient",
    "UpstreamTokens",
    "classify_pcr",
    "create_upstream_client",
    "put_call_ratio",
]
