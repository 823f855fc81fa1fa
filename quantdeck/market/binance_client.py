"""Binance public REST client — historical kline (candle) fetching.

Only the unauthenticated market-data endpoint is used; no orders are ever
placed.
"""

import asyncio
import logging
from typing import Optional

import httpx

from quantdeck.config import Config, default_config
from quantdeck.strategy.models import Candle

logger = logging.getLogger("quantdeck.market")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {429, 502, 503, 504}
_TIMEOUT = 30.0

_MAX_LIMIT = 1000  # Binance caps klines per request


def to_exchange_symbol(symbol: str) -> str:
    """``"BTC/USDT"`` -> ``"BTCUSDT"``."""
    return symbol.replace("/", "").upper()


class BinanceClient:
    """Async client for Binance spot market data."""

    def __init__(
        self,
        config: Optional[Config] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or default_config()
        self._transport = transport  # injected in tests
        self._base_url = self._config.binance_base_url
        self._headers = {"Accept": "application/json"}

    # ── HTTP ─────────────────────────────────────────────────────────────

    async def _get(self, path: str, params: dict) -> httpx.Response:
        """GET ``path`` relative to the configured base URL.

        One connection is reused across attempts.  429 and 502/503/504
        responses and transport failures are retried, sleeping
        ``_RETRY_BASE_DELAY * 2**n`` between attempts; the final failure is
        raised as-is.  Any other error status raises on the first attempt.
        """
        url = f"{self._base_url}{path}"
        async with httpx.AsyncClient(
            transport=self._transport,
            headers=self._headers,
            timeout=_TIMEOUT,
        ) as client:
            for attempt in range(1, _MAX_RETRIES + 1):
                final = attempt == _MAX_RETRIES
                try:
                    resp = await client.get(url, params=params)
                except httpx.TransportError as exc:
                    if final:
                        raise
                    failure = type(exc).__name__
                else:
                    if final or resp.status_code not in _RETRYABLE_STATUS_CODES:
                        resp.raise_for_status()
                        return resp
                    failure = f"HTTP {resp.status_code}"

                delay = _RETRY_BASE_DELAY * 2 ** (attempt - 1)
                logger.warning(
                    "GET %s %s failed (%s), attempt %d of %d; next in %.1fs",
                    path, params.get("symbol", ""), failure, attempt, _MAX_RETRIES, delay,
                )
                await asyncio.sleep(delay)

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        timeframe: str,
        limit: int = 100,
    ) -> list[Candle]:
        """Fetch klines from ``/api/v3/klines``.

        Args:
            symbol: e.g. ``"BTC/USDT"`` or ``"BTCUSDT"``
            timeframe: Binance interval, e.g. ``"1h"``, ``"4h"``, ``"1d"``
            limit: number of candles (1..1000)

        Returns:
            List of ``Candle`` objects ordered oldest-first.
        """
        if not 1 <= limit <= _MAX_LIMIT:
            raise ValueError(f"limit must be between 1 and {_MAX_LIMIT}")

        params = {
            "symbol": to_exchange_symbol(symbol),
            "interval": timeframe,
            "limit": limit,
        }
        resp = await self._get("/api/v3/klines", params)

        candles = [Candle.from_kline(row) for row in resp.json()]
        candles.sort(key=lambda c: c.timestamp)
        logger.debug("Fetched %d %s candles for %s", len(candles), timeframe, symbol)
        return candles
