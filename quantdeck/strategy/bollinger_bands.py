"""Bollinger Bands strategy — squeeze breakouts and band-touch mean reversion.

Flow:
    1. Bands, bandwidth and squeeze / expansion state.
    2. Squeeze breakout: squeeze + expansion + volume → trade toward the
       side of the middle band the close sits on.
    3. Otherwise mean reversion: buy at/near the lower band, sell at/near
       the upper band, with volume and optional trend confirmation.
"""

import logging
from typing import Sequence

from quantdeck.strategy.base import BaseStrategy, rsi_reading
from quantdeck.strategy.indicators import calculate_bollinger, calculate_rsi, calculate_sma
from quantdeck.strategy.models import Action, Candle, IndicatorReading, Signal
from quantdeck.strategy.params import BollingerParams

logger = logging.getLogger("quantdeck")

_EXPANSION_RATIO = 1.1
_VOLUME_SURGE = 1.2
_NEAR_BAND = 0.1  # fraction of band width counted as "near" a band


class BollingerBandsStrategy(BaseStrategy):
    """Volatility strategy with squeeze detection and band-touch entries."""

    params_type = BollingerParams
    params: BollingerParams

    def name(self) -> str:
        return "Bollinger Bands"

    def description(self) -> str:
        return (
            "Bollinger Bands strategy with squeeze detection, bandwidth "
            "analysis, and mean reversion signals"
        )

    def warmup(self) -> int:
        longest = self.params.period
        if self.params.trend_filter:
            longest = max(longest, self.params.ma_filter_period)
        return longest + 20

    def _evaluate(self, candles: Sequence[Candle]) -> Signal:
        p = self.params
        closes = [c.close for c in candles]
        price = closes[-1]

        bands = calculate_bollinger(closes, p.period, p.standard_deviations)
        if len(bands.middle) < 10:
            return self._insufficient(candles)

        upper = bands.upper[-1]
        middle = bands.middle[-1]
        lower = bands.lower[-1]

        rsi_now = 50.0
        if p.rsi_confirmation:
            rsi = calculate_rsi(closes)
            if rsi:
                rsi_now = rsi[-1]

        bandwidth = bands.bandwidth(-1)
        prev_bandwidth = bands.bandwidth(-2)
        squeeze = bandwidth < p.squeeze_threshold
        expansion = bandwidth > prev_bandwidth * _EXPANSION_RATIO

        width = upper - lower
        position = (price - lower) / width if width > 0 else 0.5
        at_upper = price >= upper
        at_lower = price <= lower
        near_upper = position > 1 - _NEAR_BAND
        near_lower = position < _NEAR_BAND

        volume_confirmed = (
            not p.volume_confirmation
            or candles[-1].volume > self._average_volume(candles) * _VOLUME_SURGE
        )

        trend_bullish = True
        trend_bearish = True
        if p.trend_filter:
            ma = calculate_sma(closes, p.ma_filter_period)
            trend_bullish = price > ma[-1]
            trend_bearish = price < ma[-1]

        indicators = [
            IndicatorReading(
                name="BB Position",
                value=position * 100,
                signal="BUY" if position > 0.5 else "SELL",
                strength=min(abs(position - 0.5) * 200, 100.0),
            ),
            IndicatorReading(
                name="Bandwidth",
                value=bandwidth * 100,
                signal="BUY" if expansion else "SELL",
                strength=min(bandwidth * 500, 100.0),
            ),
        ]
        if p.rsi_confirmation:
            indicators.append(rsi_reading(rsi_now))

        action: Action = "HOLD"
        strength = 0.0
        confidence = 0.0
        reasoning: list[str] = []

        if squeeze and expansion and volume_confirmed and price != middle:
            if price > middle:
                action = "BUY"
                reasoning.append("Bullish breakout from Bollinger Band squeeze")
            else:
                action = "SELL"
                reasoning.append("Bearish breakout from Bollinger Band squeeze")
            strength = 80.0
            confidence = 85.0
            reasoning.append("High probability squeeze breakout pattern")

        elif (at_lower or near_lower) and volume_confirmed and trend_bullish:
            action = "BUY"
            strength = 70.0
            confidence = 75.0
            reasoning.append("Price touching or near lower Bollinger Band")

            if at_lower:
                strength += 10
                confidence += 10
                reasoning.append("Price at lower band - strong mean reversion signal")
            if squeeze:
                strength += 15
                confidence += 10
                reasoning.append("Bollinger Band squeeze detected - volatility expansion expected")
            if p.rsi_confirmation and rsi_now < 40:
                strength += 10
                confidence += 10
                reasoning.append("RSI confirms oversold condition")
            if expansion:
                strength += 5
                reasoning.append("Band expansion supports directional move")
            if p.trend_filter:
                reasoning.append("Price above trend SMA")

        elif (at_upper or near_upper) and volume_confirmed and trend_bearish:
            action = "SELL"
            strength = 70.0
            confidence = 75.0
            reasoning.append("Price touching or near upper Bollinger Band")

            if at_upper:
                strength += 10
                confidence += 10
                reasoning.append("Price at upper band - strong mean reversion signal")
            if squeeze:
                strength += 15
                confidence += 10
                reasoning.append("Bollinger Band squeeze detected - volatility expansion expected")
            if p.rsi_confirmation and rsi_now > 60:
                strength += 10
                confidence += 10
                reasoning.append("RSI confirms overbought condition")
            if expansion:
                strength += 5
                reasoning.append("Band expansion supports directional move")
            if p.trend_filter:
                reasoning.append("Price below trend SMA")

        if action != "HOLD":
            if p.volume_confirmation:
                reasoning.append("Volume confirmation present")
            logger.debug(
                "Bollinger: %s (bandwidth %.4f, squeeze=%s, expansion=%s)",
                action, bandwidth, squeeze, expansion,
            )

        # Risk scales with bandwidth, bounded to 1.5-3x ATR.
        unit = self._risk_unit(candles) * max(1.5, min(3.0, bandwidth * 10))
        if action == "BUY":
            stop = min(price - unit, lower)
            target = max(price + unit * 1.5, middle)
        else:
            stop = max(price + unit, upper)
            target = min(price - unit * 1.5, middle)

        return self._build_signal(
            action, strength, confidence, price, stop, target,
            indicators, reasoning,
        )
