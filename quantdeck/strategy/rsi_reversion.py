"""RSI mean-reversion strategy — buys oversold / sells overbought readings.

Optional filters: a long-SMA trend filter, price/RSI divergence and a
volume spike, each of which raises strength or confidence when it fires.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from quantdeck.strategy.base import BaseStrategy, rsi_reading
from quantdeck.strategy.indicators import calculate_rsi, calculate_sma
from quantdeck.strategy.models import Action, Candle, IndicatorReading, Signal
from quantdeck.strategy.params import RSIParams

logger = logging.getLogger("quantdeck")

_VOLUME_SPIKE = 1.5
_TARGET_MULTIPLE = 1.5


@dataclass(frozen=True)
class Divergence:
    """Price/RSI divergence flags for the most recent window."""

    bullish: bool
    bearish: bool


def detect_divergence(
    candles: Sequence[Candle],
    rsi_values: Sequence[float],
    lookback: int = 10,
) -> Divergence:
    """Compare the last *lookback* candles against the *lookback* before them.

    Bullish: the recent window's lowest low undercuts the prior window's
    lowest low while RSI at the recent low is higher than RSI at the prior
    low.  Bearish mirrors this on highs.

    *rsi_values* must be aligned to a suffix of *candles*.  RSI points are
    matched to candles by timestamp, so both extremes are always read from
    the same bar the price extreme came from.
    """
    none = Divergence(bullish=False, bearish=False)
    if len(rsi_values) < 2 * lookback or len(candles) < len(rsi_values):
        return none

    offset = len(candles) - len(rsi_values)
    rsi_at = {
        c.timestamp: value
        for c, value in zip(candles[offset:], rsi_values)
    }

    recent = candles[-lookback:]
    prior = candles[-2 * lookback : -lookback]

    recent_low = min(recent, key=lambda c: c.low)
    prior_low = min(prior, key=lambda c: c.low)
    bullish = (
        recent_low.low < prior_low.low
        and rsi_at[recent_low.timestamp] > rsi_at[prior_low.timestamp]
    )

    recent_high = max(recent, key=lambda c: c.high)
    prior_high = max(prior, key=lambda c: c.high)
    bearish = (
        recent_high.high > prior_high.high
        and rsi_at[recent_high.timestamp] < rsi_at[prior_high.timestamp]
    )

    return Divergence(bullish=bullish, bearish=bearish)


class RSIReversionStrategy(BaseStrategy):
    """RSI oversold / overbought reversal strategy."""

    params_type = RSIParams
    params: RSIParams

    def name(self) -> str:
        return "RSI Oversold/Overbought"

    def description(self) -> str:
        return (
            "RSI mean reversion strategy with trend confirmation "
            "and divergence detection"
        )

    def warmup(self) -> int:
        return max(self.params.rsi_period, self.params.sma_filter_period) + 20

    def _evaluate(self, candles: Sequence[Candle]) -> Signal:
        p = self.params
        closes = [c.close for c in candles]
        price = closes[-1]

        rsi = calculate_rsi(closes, p.rsi_period)
        sma = calculate_sma(closes, p.sma_filter_period)
        if len(rsi) < 10 or not sma:
            return self._insufficient(candles)

        rsi_now = rsi[-1]
        rsi_prev = rsi[-2]
        sma_now = sma[-1]

        volume_spike = candles[-1].volume > self._average_volume(candles) * _VOLUME_SPIKE
        trend_bullish = not p.trend_filter or price > sma_now
        trend_bearish = not p.trend_filter or price < sma_now

        if p.divergence_detection:
            divergence = detect_divergence(candles, rsi)
        else:
            divergence = Divergence(bullish=False, bearish=False)

        indicators = [
            rsi_reading(rsi_now),
            IndicatorReading(
                name="Trend",
                value=price - sma_now,
                signal="BUY" if trend_bullish else "SELL",
                strength=min(abs((price - sma_now) / sma_now) * 100, 100.0) if sma_now else 0.0,
            ),
        ]

        action: Action = "HOLD"
        strength = 0.0
        confidence = 0.0
        reasoning: list[str] = []

        if rsi_now <= p.oversold_level and trend_bullish:
            action = "BUY"
            strength = max(60.0, 100 - rsi_now * 2)
            confidence = 70.0
            reasoning.append(f"RSI oversold at {rsi_now:.2f}")
            if p.trend_filter:
                reasoning.append("Price above trend SMA")

            if rsi_now <= p.extreme_oversold:
                strength += 15
                confidence += 10
                reasoning.append("Extreme oversold condition")
            if divergence.bullish:
                strength += 10
                confidence += 10
                reasoning.append("Bullish divergence detected")
            if volume_spike and p.volume_confirmation:
                confidence += 10
                reasoning.append("Volume confirmation")
            if rsi_prev < rsi_now:
                confidence += 5
                reasoning.append("RSI momentum improving")

        elif rsi_now >= p.overbought_level and trend_bearish:
            action = "SELL"
            strength = max(60.0, rsi_now * 1.2)
            confidence = 70.0
            reasoning.append(f"RSI overbought at {rsi_now:.2f}")
            if p.trend_filter:
                reasoning.append("Price below trend SMA")

            if rsi_now >= p.extreme_overbought:
                strength += 15
                confidence += 10
                reasoning.append("Extreme overbought condition")
            if divergence.bearish:
                strength += 10
                confidence += 10
                reasoning.append("Bearish divergence detected")
            if volume_spike and p.volume_confirmation:
                confidence += 10
                reasoning.append("Volume confirmation")
            if rsi_prev > rsi_now:
                confidence += 5
                reasoning.append("RSI momentum deteriorating")

        if action != "HOLD":
            logger.debug("RSI: %s at RSI %.1f (%s)", action, rsi_now, "; ".join(reasoning))

        # Wider stop when RSI sits on the weak side of 50.
        multiplier = 2.0 if rsi_now > 50 else 2.5
        unit = self._risk_unit(candles) * multiplier
        if action == "BUY":
            stop, target = price - unit, price + unit * _TARGET_MULTIPLE
        else:
            stop, target = price + unit, price - unit * _TARGET_MULTIPLE

        return self._build_signal(
            action, strength, confidence, price, stop, target,
            indicators, reasoning,
        )
