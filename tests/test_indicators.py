"""Tests for quantdeck.strategy.indicators — pure indicator math."""

import pytest

from quantdeck.strategy.indicators import (
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
    true_ranges,
)
from quantdeck.strategy.models import Candle


def _make_candles(closes: list[float], spread: float = 1.0) -> list[Candle]:
    return [
        Candle(
            timestamp=1_700_000_000_000 + i * 3_600_000,
            open=c,
            high=c + spread,
            low=c - spread,
            close=c,
            volume=1000.0,
        )
        for i, c in enumerate(closes)
    ]


class TestSMA:
    def test_basic(self):
        assert calculate_sma([1, 2, 3, 4, 5], 3) == [2, 3, 4]

    def test_short_input_is_empty(self):
        assert calculate_sma([1, 2], 3) == []
        assert calculate_sma([], 3) == []

    def test_period_equal_to_length(self):
        assert calculate_sma([2, 4, 6], 3) == [4]


class TestEMA:
    def test_seeded_with_first_value(self):
        # k = 0.5: 10 -> 15 -> 17.5 ; first point emitted at index 2
        assert calculate_ema([10, 20, 20], 3) == pytest.approx([17.5])

    def test_length(self):
        assert len(calculate_ema(list(range(30)), 10)) == 21

    def test_short_input_is_empty(self):
        assert calculate_ema([1, 2, 3], 5) == []

    def test_deterministic(self):
        values = [100 + (i % 7) * 0.3 - (i % 3) * 0.1 for i in range(120)]
        assert calculate_ema(values, 12) == calculate_ema(values, 12)

    def test_constant_series(self):
        assert calculate_ema([5.0] * 10, 4) == [5.0] * 7


class TestRSI:
    def test_monotonic_rise_is_100(self):
        values = [100 + i for i in range(40)]
        rsi = calculate_rsi(values, 14)
        assert rsi
        assert all(v == 100.0 for v in rsi)

    def test_monotonic_fall_is_0(self):
        values = [100 - i for i in range(40)]
        assert calculate_rsi(values, 14)[-1] == pytest.approx(0.0)

    def test_length(self):
        assert len(calculate_rsi(list(range(30)), 14)) == 16

    def test_needs_period_plus_one(self):
        assert calculate_rsi(list(range(14)), 14) == []
        assert len(calculate_rsi(list(range(15)), 14)) == 1

    def test_range(self):
        values = [100 + ((i * 37) % 11) - 5 for i in range(80)]
        assert all(0 <= v <= 100 for v in calculate_rsi(values))

    def test_flat_series_is_100(self):
        # No losses at all, so avg_loss stays 0.
        assert calculate_rsi([50.0] * 20, 14) == [100.0] * 6


class TestMACD:
    def test_lengths(self):
        values = [100 + i * 0.5 for i in range(60)]
        result = calculate_macd(values, 12, 26, 9)
        assert len(result.macd) == 60 - 26 + 1
        assert len(result.signal) == 60 - 26 - 9 + 2
        assert len(result.histogram) == len(result.signal)

    def test_histogram_is_macd_minus_signal(self):
        values = [100 + (i % 5) * 0.7 + i * 0.1 for i in range(80)]
        result = calculate_macd(values)
        lag = len(result.macd) - len(result.signal)
        for j, h in enumerate(result.histogram):
            assert h == pytest.approx(result.macd[j + lag] - result.signal[j])

    def test_short_input_is_empty(self):
        result = calculate_macd(list(range(30)), 12, 26, 9)
        assert result.macd == []
        assert result.signal == []
        assert result.histogram == []

    def test_deterministic(self):
        values = [100 + (i % 9) * 0.4 for i in range(100)]
        assert calculate_macd(values) == calculate_macd(values)

    def test_rising_series_macd_positive(self):
        values = [100 + i for i in range(60)]
        assert calculate_macd(values).macd[-1] > 0


class TestBollinger:
    def test_constant_series_has_zero_width(self):
        bands = calculate_bollinger([10.0] * 25, 20, 2.0)
        assert bands.upper == bands.middle == bands.lower
        assert bands.bandwidth() == 0.0

    def test_population_std(self):
        # Window [1, 3]: mean 2, population sigma 1
        bands = calculate_bollinger([1, 3], 2, 2.0)
        assert bands.middle == [2]
        assert bands.upper == [pytest.approx(4.0)]
        assert bands.lower == [pytest.approx(0.0)]

    def test_bands_ordered(self):
        values = [100 + ((i * 13) % 7) for i in range(40)]
        bands = calculate_bollinger(values)
        for u, m, lo in zip(bands.upper, bands.middle, bands.lower):
            assert lo <= m <= u

    def test_short_input_is_empty(self):
        bands = calculate_bollinger([1.0] * 5, 20)
        assert bands.upper == [] and bands.middle == [] and bands.lower == []


class TestATR:
    def test_constant_range(self):
        candles = _make_candles([100.0] * 20, spread=1.0)
        atr = calculate_atr(candles, 14)
        assert len(atr) == 20 - 14
        assert atr == [pytest.approx(2.0)] * 6

    def test_true_range_uses_previous_close(self):
        candles = [
            Candle(0, 10, 11, 9, 10, 1),
            Candle(1, 15, 16, 14, 15, 1),  # gap up: |16 - 10| = 6
        ]
        assert true_ranges(candles) == [6]

    def test_short_input_is_empty(self):
        assert calculate_atr(_make_candles([1.0] * 14), 14) == []
