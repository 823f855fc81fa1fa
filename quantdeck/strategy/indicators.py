"""Technical indicators — SMA, EMA, RSI, MACD, Bollinger Bands, ATR. Pure functions, no I/O.

Every series is aligned to a suffix of its input: an indicator with a
warm-up of ``w`` samples returns ``len(values) - w + 1`` points, and point 0
corresponds to input index ``w - 1``.  Inputs shorter than the warm-up give
an empty list, never an exception.
"""

import math
from dataclasses import dataclass
from typing import Sequence

from quantdeck.strategy.models import Candle


def calculate_sma(values: Sequence[float], period: int) -> list[float]:
    """Arithmetic mean of each trailing window of *period* values.

    Returns ``len(values) - period + 1`` points, or ``[]`` when there are
    fewer than *period* values.
    """
    if period <= 0 or len(values) < period:
        return []
    return [
        sum(values[i - period + 1 : i + 1]) / period
        for i in range(period - 1, len(values))
    ]


def calculate_ema(values: Sequence[float], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    Uses the standard EMA recurrence:
        ``EMA_today = value × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The recurrence is seeded with the first raw value (not the SMA of the
    first *period* values) and runs over the whole input; the first
    ``period - 1`` points are treated as warm-up and dropped, so the output
    has ``len(values) - period + 1`` points.
    """
    if period <= 0 or len(values) < period:
        return []

    k = 2.0 / (period + 1)
    ema = values[0]
    result: list[float] = []
    for i, value in enumerate(values):
        if i > 0:
            ema = value * k + ema * (1 - k)
        if i >= period - 1:
            result.append(ema)
    return result


# ── RSI ──────────────────────────────────────────────────────────────────


def _rsi_from_avgs(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def calculate_rsi(values: Sequence[float], period: int = 14) -> list[float]:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = value[i] - value[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RSI = 100 when avg_loss is 0, else 100 - 100 / (1 + gain/loss)

    Requires ``period + 1`` values; point 0 corresponds to input index
    *period*.
    """
    if period <= 0 or len(values) < period + 1:
        return []

    deltas = [values[i] - values[i - 1] for i in range(1, len(values))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    rsi = [_rsi_from_avgs(avg_gain, avg_loss)]

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        rsi.append(_rsi_from_avgs(avg_gain, avg_loss))

    return rsi


# ── MACD ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram.

    ``macd`` starts at input index ``slow - 1``; ``signal`` and
    ``histogram`` cover the last ``len(signal)`` MACD points.
    """

    macd: list[float]
    signal: list[float]
    histogram: list[float]


def calculate_macd(
    values: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """Moving Average Convergence Divergence.

    MACD = EMA(fast) − EMA(slow), with the fast series trimmed so both start
    at the slow series' first point.  Signal = EMA(MACD, *signal_period*);
    histogram = MACD − signal over the overlapping tail.

    All three lists are empty when there are fewer than
    ``slow_period + signal_period - 1`` values.
    """
    empty = MACDResult(macd=[], signal=[], histogram=[])
    fast = calculate_ema(values, fast_period)
    slow = calculate_ema(values, slow_period)
    if not slow or not fast:
        return empty

    offset = len(fast) - len(slow)
    macd = [fast[j + offset] - slow[j] for j in range(len(slow))]

    signal = calculate_ema(macd, signal_period)
    if not signal:
        return empty

    lag = len(macd) - len(signal)
    histogram = [macd[j + lag] - signal[j] for j in range(len(signal))]
    return MACDResult(macd=macd, signal=signal, histogram=histogram)


# ── Bollinger Bands ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class BollingerBands:
    """Upper, middle and lower bands, each aligned like ``calculate_sma``."""

    upper: list[float]
    middle: list[float]
    lower: list[float]

    def bandwidth(self, index: int = -1) -> float:
        """``(upper - lower) / middle`` at *index*; 0 when middle is 0."""
        middle = self.middle[index]
        if middle == 0:
            return 0.0
        return (self.upper[index] - self.lower[index]) / middle


def calculate_bollinger(
    values: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands:
    """Calculate Bollinger Bands.

    Middle = SMA(value, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    σ is the population standard deviation of the same trailing window.
    """
    middle = calculate_sma(values, period)
    upper: list[float] = []
    lower: list[float] = []

    for j, sma in enumerate(middle):
        window = values[j : j + period]
        variance = sum((x - sma) ** 2 for x in window) / period
        sigma = math.sqrt(variance)
        upper.append(sma + std_dev * sigma)
        lower.append(sma - std_dev * sigma)

    return BollingerBands(upper=upper, middle=middle, lower=lower)


# ── ATR ──────────────────────────────────────────────────────────────────


def true_ranges(candles: Sequence[Candle]) -> list[float]:
    """True range of every candle after the first.

    TR = max(high - low, |high - prev_close|, |low - prev_close|)
    """
    result: list[float] = []
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        result.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
    return result


def calculate_atr(candles: Sequence[Candle], period: int = 14) -> list[float]:
    """Average True Range — simple mean of the trailing *period* true ranges.

    Not Wilder-smoothed.  Requires ``period + 1`` candles (the first candle
    only supplies a previous close); point 0 corresponds to candle index
    *period*.
    """
    if period <= 0 or len(candles) < period + 1:
        return []
    return calculate_sma(true_ranges(candles), period)
