"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import ConfigError

DEFAULT_SYMBOLS: tuple[str, ...] = ("NIFTY", "BANKNIFTY", "FINNIFTY", "MIDCPNIFTY")


@dataclass(frozen=True)
class Settings:
    """Everything the application reads from the environment.

    Core components never read the environment themselves; they receive these
    values as constructor arguments from ``create_app``.
    """

    angel_api_key: str = ""
    angel_client_code: str = ""
    angel_mpin: str = ""
    angel_totp: str = ""

    host: str = "0.0.0.0"
    port: int = 25602
    log_level: str = "INFO"

    session_timeout: float = 8 * 3600.0
    cache_ttl: float = 24 * 3600.0

    market_interval: float = 5.0
    pcr_interval: float = 10.0
    sentiment_interval: float = 15.0
    heartbeat_interval: float = 30.0
    sweep_interval: float = 3600.0

    symbols: tuple[str, ...] = DEFAULT_SYMBOLS

    @property
    def upstream_enabled(self) -> bool:
        return bool(self.angel_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Raises ConfigError on unparseable numbers, non-positive intervals,
        an empty symbol list, or an API key without client code / MPIN.
        """
        env = os.environ if environ is None else environ

        api_key = env.get("ANGEL_API_KEY", "").strip()
        client_code = env.get("ANGEL_CLIENT_CODE", "").strip()
        mpin = env.get("ANGEL_MPIN", "").strip()
        if api_key and not (client_code and mpin):
            raise ConfigError("ANGEL_API_KEY is set but ANGEL_CLIENT_CODE or ANGEL_MPIN is missing")

        raw_symbols = env.get("FSDASH_SYMBOLS")
        if raw_symbols is None:
            symbols = DEFAULT_SYMBOLS
        else:
            symbols = tuple(s.strip().upper() for s in raw_symbols.split(",") if s.strip())
            if not symbols:
                raise ConfigError("FSDASH_SYMBOLS must name at least one symbol")

        return cls(
            angel_api_key=api_key,
            angel_client_code=client_code,
            angel_mpin=mpin,
            angel_totp=env.get("ANGEL_TOTP", "").strip(),
            host=env.get("FSDASH_HOST", cls.host),
            port=int(_number(env, "FSDASH_PORT", cls.port)),
            log_level=env.get("FSDASH_LOG_LEVEL", cls.log_level).upper(),
            session_timeout=_positive(env, "FSDASH_SESSION_TIMEOUT", cls.session_timeout),
            cache_ttl=_positive(env, "FSDASH_CACHE_TTL", cls.cache_ttl),
            market_interval=_positive(env, "FSDASH_MARKET_INTERVAL", cls.market_interval),
            pcr_interval=_positive(env, "FSDASH_PCR_INTERVAL", cls.pcr_interval),
            sentiment_interval=_positive(env, "FSDASH_SENTIMENT_INTERVAL", cls.sentiment_interval),
            heartbeat_interval=_positive(env, "FSDASH_HEARTBEAT_INTERVAL", cls.heartbeat_interval),
            sweep_interval=_positive(env, "FSDASH_SWEEP_INTERVAL", cls.sweep_interval),
            symbols=symbols,
        )


def _number(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _positive(env: Mapping[str, str], name: str, default: float) -> float:
    value = _number(env, name, default)
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value
