"""QuantDeck — application configuration.

Loads .env variables into a typed config object.
Every variable is optional; defaults reproduce the engine's fixed constants.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    initial_capital: float
    warmup_index: int
    position_fraction: float  # share of free cash committed per entry
    poll_interval_seconds: float
    history_timeframe: str
    history_limit: int
    binance_base_url: str
    log_level: str
    api_port: int


def default_config() -> Config:
    """Return a ``Config`` with every field at its default value."""
    return Config(
        initial_capital=10_000.0,
        warmup_index=50,
        position_fraction=0.95,
        poll_interval_seconds=300.0,
        history_timeframe="1h",
        history_limit=100,
        binance_base_url="https://api.binance.com",
        log_level="INFO",
        api_port=8080,
    )


def _parse(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for environment variable {name}: {raw!r}"
        ) from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the variable when a value
    cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    config = Config(
        initial_capital=_parse("INITIAL_CAPITAL", "10000", float),
        warmup_index=_parse("BACKTEST_WARMUP_INDEX", "50", int),
        position_fraction=_parse("POSITION_FRACTION", "0.95", float),
        poll_interval_seconds=_parse("SIGNAL_POLL_SECONDS", "300", float),
        history_timeframe=os.environ.get("HISTORY_TIMEFRAME", "1h"),
        history_limit=_parse("HISTORY_LIMIT", "100", int),
        binance_base_url=os.environ.get(
            "BINANCE_BASE_URL", "https://api.binance.com"
        ).rstrip("/"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        api_port=_parse("API_PORT", "8080", int),
    )

    if config.initial_capital <= 0:
        raise ValueError("INITIAL_CAPITAL must be positive")
    if config.warmup_index < 1:
        raise ValueError("BACKTEST_WARMUP_INDEX must be at least 1")
    if not 0 < config.position_fraction <= 1:
        raise ValueError("POSITION_FRACTION must be in (0, 1]")
    if config.poll_interval_seconds <= 0:
        raise ValueError("SIGNAL_POLL_SECONDS must be positive")
    if config.history_limit < 1:
        raise ValueError("HISTORY_LIMIT must be at least 1")

    return config
