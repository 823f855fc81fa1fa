"""Tests for quantdeck.market.binance_client — kline fetching with mocked HTTP."""

import httpx
import pytest

from quantdeck.config import default_config
from quantdeck.market import binance_client
from quantdeck.market.binance_client import BinanceClient, to_exchange_symbol
from quantdeck.strategy.models import Candle

# ── Mock Binance responses ──────────────────────────────────────────────

MOCK_KLINES_RESPONSE = [
    [
        1_704_070_800_000, "42100.10", "42250.00", "42010.55", "42200.00", "152.331",
        1_704_074_399_999, "6421144.21", 5120, "80.1", "3377021.9", "0",
    ],
    [
        1_704_067_200_000, "42000.00", "42150.00", "41950.00", "42100.10", "120.5",
        1_704_070_799_999, "5061234.00", 4300, "61.2", "2571234.0", "0",
    ],
]


def _make_client(handler) -> BinanceClient:
    return BinanceClient(default_config(), transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch):
    monkeypatch.setattr(binance_client, "_RETRY_BASE_DELAY", 0.0)


class TestSymbol:
    def test_strips_slash(self):
        assert to_exchange_symbol("BTC/USDT") == "BTCUSDT"
        assert to_exchange_symbol("ethusdt") == "ETHUSDT"


class TestFetchCandles:
    @pytest.mark.asyncio
    async def test_parse_klines(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json=MOCK_KLINES_RESPONSE)

        candles = await _make_client(handler).fetch_candles("BTC/USDT", "1h", 2)

        assert seen["url"].path == "/api/v3/klines"
        assert seen["url"].params["symbol"] == "BTCUSDT"
        assert seen["url"].params["interval"] == "1h"
        assert seen["url"].params["limit"] == "2"

        assert len(candles) == 2
        first = candles[0]
        assert isinstance(first, Candle)
        # Sorted oldest-first even though the response was not.
        assert first.timestamp == 1_704_067_200_000
        assert first.open == pytest.approx(42000.0)
        assert first.high == pytest.approx(42150.0)
        assert first.low == pytest.approx(41950.0)
        assert first.close == pytest.approx(42100.1)
        assert first.volume == pytest.approx(120.5)

    @pytest.mark.asyncio
    async def test_retries_on_503(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json=MOCK_KLINES_RESPONSE)

        candles = await _make_client(handler).fetch_candles("BTC/USDT", "1h", 2)
        assert len(calls) == 3
        assert len(candles) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429)

        with pytest.raises(httpx.HTTPStatusError):
            await _make_client(handler).fetch_candles("BTC/USDT", "1h", 2)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_transport_error_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=MOCK_KLINES_RESPONSE)

        candles = await _make_client(handler).fetch_candles("BTC/USDT", "1h", 2)
        assert len(calls) == 2
        assert len(candles) == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."})

        with pytest.raises(httpx.HTTPStatusError):
            await _make_client(handler).fetch_candles("NOPE/USDT", "1h", 2)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_limit_bounds(self):
        client = _make_client(lambda request: httpx.Response(200, json=[]))
        with pytest.raises(ValueError):
            await client.fetch_candles("BTC/USDT", "1h", 0)
        with pytest.raises(ValueError):
            await client.fetch_candles("BTC/USDT", "1h", 1001)

    @pytest.mark.asyncio
    async def test_transport_error_raised_after_max_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(httpx.ReadTimeout):
            await _make_client(handler).fetch_candles("BTC/USDT", "1h", 2)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_backoff_doubles_between_attempts(self, monkeypatch):
        delays = []

        async def _record(delay):
            delays.append(delay)

        monkeypatch.setattr(binance_client, "_RETRY_BASE_DELAY", 2.0)
        monkeypatch.setattr(binance_client.asyncio, "sleep", _record)
        client = _make_client(lambda request: httpx.Response(502))
        with pytest.raises(httpx.HTTPStatusError):
            await client.fetch_candles("BTC/USDT", "1h", 2)
        assert delays == [2.0, 4.0]
